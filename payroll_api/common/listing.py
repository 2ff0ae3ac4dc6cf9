from flask import request
from sqlalchemy import or_

MAX_LIMIT = 200


def page_args(default_limit=20):
    """(page, limit) from ?page=&limit=, clamped; junk falls back to the defaults."""
    page = request.args.get("page", 1, type=int) or 1
    limit = request.args.get("limit", default_limit, type=int) or default_limit
    return max(page, 1), min(max(limit, 1), MAX_LIMIT)


def apply_q_search(query, *cols):
    term = (request.args.get("q") or "").strip()
    if not term:
        return query
    return query.filter(or_(*[c.ilike(f"%{term}%") for c in cols]))


def paginate(query, default_limit=20):
    """Return (items, meta) for the current request's page/limit."""
    page, limit = page_args(default_limit)
    total = query.order_by(None).count()
    items = query.limit(limit).offset((page - 1) * limit).all()
    return items, {"page": page, "limit": limit, "total": total}
