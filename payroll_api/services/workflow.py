# payroll_api/services/workflow.py
"""Helpers shared by the approval pipelines: lookups, status guards, audit log, commit."""
from datetime import datetime, date
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from payroll_api.common.errors import ValidationError, NotFoundError, StateGuardError, ConflictError
from payroll_api.extensions import db
from payroll_api.models.workflow import WorkflowAction

MIN_YEAR, MAX_YEAR = 2020, 2030


def get_or_404(model, pk, label: str):
    obj = db.session.get(model, pk) if pk is not None else None
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def as_int(value, field: str, *, required=True, default=None) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required and default is None:
            raise ValidationError(f"{field} is required")
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        f = float(str(value).strip())
        whole = int(f)
    except (ValueError, OverflowError):
        raise ValidationError(f"{field} must be an integer")
    if f != whole:
        raise ValidationError(f"{field} must be a whole number")
    return whole


def as_bool(value, default=None):
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in ("1", "true", "yes", "y", "on"):
        return True
    if s in ("0", "false", "no", "n", "off"):
        return False
    raise ValidationError(f"Invalid boolean value: {value!r}")


def as_date(value, field: str) -> date:
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f"{field} is required")
    for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(str(value).strip()[:10], fmt).date()
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


def require_text(value, field: str) -> str:
    s = (value or "").strip() if isinstance(value, str) else ""
    if not s:
        raise ValidationError(f"{field} is required")
    return s


def validate_period(month, year):
    m = as_int(month, "month")
    y = as_int(year, "year")
    if not 1 <= m <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not MIN_YEAR <= y <= MAX_YEAR:
        raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    return m, y


def ensure_status(obj, allowed: Iterable[str], message: Optional[str] = None):
    allowed = tuple(allowed)
    if obj.status not in allowed:
        raise StateGuardError(
            message or f"Cannot perform this action in '{obj.status}' status",
            payload={"status": obj.status, "allowed": list(allowed)},
        )


def log_action(entity_type: str, entity_id: int, action: str, from_status: Optional[str],
               to_status: str, actor_id: Optional[int] = None, comment: Optional[str] = None):
    db.session.add(WorkflowAction(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        from_status=from_status,
        to_status=to_status,
        comment=comment,
        acted_by_user_id=actor_id,
        acted_at=datetime.utcnow(),
    ))


def transition(obj, entity_type: str, action: str, to_status: str,
               actor_id: Optional[int] = None, comment: Optional[str] = None):
    """Move obj to to_status and append the audit entry in the same unit of work."""
    from_status = obj.status
    obj.status = to_status
    log_action(entity_type, obj.id, action, from_status, to_status, actor_id, comment)


def history(entity_type: str, entity_id: int):
    return (WorkflowAction.query
            .filter_by(entity_type=entity_type, entity_id=entity_id)
            .order_by(WorkflowAction.id.asc())
            .all())


def commit(conflict_message: Optional[str] = None):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if conflict_message:
            raise ConflictError(conflict_message)
        raise
    except StaleDataError:
        db.session.rollback()
        raise StateGuardError("Record was modified by another request; reload and retry",
                              code="CONCURRENT_UPDATE")
