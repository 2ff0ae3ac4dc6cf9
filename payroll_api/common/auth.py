# payroll_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Optional, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from payroll_api.common.errors import AuthorizationError
from payroll_api.common.http import fail
from payroll_api.extensions import db
from payroll_api.models.user import User
from payroll_api.models.security import Role, UserRole

# role codes that see everyone's records; plain "employee" users see their own
STAFF_ROLES = ("admin", "hr", "finance", "md")


def _collect_roles_from_db(user_id: int) -> Set[str]:
    q = (
        db.session.query(Role.code)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in q.all()}


def current_user_id() -> Optional[int]:
    uid = get_jwt_identity()
    return int(uid) if str(uid).isdigit() else None


def current_roles() -> Set[str]:
    claims = get_jwt() or {}
    roles = set(claims.get("roles") or [])
    if roles:
        return roles
    uid = current_user_id()
    return _collect_roles_from_db(uid) if uid else set()


def is_staff() -> bool:
    return any(r in STAFF_ROLES for r in current_roles())


def current_employee_id() -> Optional[int]:
    uid = current_user_id()
    if uid is None:
        return None
    user = db.session.get(User, uid)
    return user.employee_id if user else None


def ensure_can_view(employee_id: int):
    """Non-staff callers may only read records that belong to their own employee profile."""
    if is_staff():
        return
    if current_employee_id() != employee_id:
        raise AuthorizationError("You can only view your own records")


# ---------- decorators ----------

def requires_roles(*codes: str):
    """
    Require that the current user has AT LEAST ONE of the given role codes.
    - Uses roles in JWT if present; falls back to DB.
    - 'admin' role always passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            claims = get_jwt() or {}
            jwt_roles = set(claims.get("roles") or [])
            if "admin" in jwt_roles:
                return fn(*args, **kwargs)

            uid = current_user_id()
            if uid is None:
                return fail("Unauthorized", status=401)

            roles: Set[str]
            if jwt_roles:
                roles = jwt_roles
            else:
                user = db.session.get(User, uid)
                if not user:
                    return fail("Unauthorized", status=401)
                roles = _collect_roles_from_db(user.id)

            if "admin" in roles:
                return fn(*args, **kwargs)

            if not any(r in roles for r in codes):
                return fail(f"Forbidden: requires one of {', '.join(codes)}", status=403, code="FORBIDDEN")

            return fn(*args, **kwargs)
        return inner
    return outer
