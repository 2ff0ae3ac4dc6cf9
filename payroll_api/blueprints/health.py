from flask import Blueprint
from sqlalchemy import text

from payroll_api.common.http import ok, fail
from payroll_api.extensions import db

bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@bp.get("")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        return fail(f"database unavailable: {e.__class__.__name__}", status=503)
    return ok({"status": "ok"})
