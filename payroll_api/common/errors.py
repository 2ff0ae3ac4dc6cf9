# payroll_api/common/errors.py
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

from payroll_api.common.http import fail


class APIError(Exception):
    """Base class for errors that map straight onto a JSON failure envelope."""
    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message, code=None, status_code=None, payload=None, errors=None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.payload = payload
        self.errors = errors


class ValidationError(APIError):
    code = "VALIDATION_ERROR"


class NotFoundError(APIError):
    status_code = 404
    code = "NOT_FOUND"


class StateGuardError(APIError):
    """Operation attempted from a status that does not allow it."""
    code = "INVALID_STATE"


class ConflictError(APIError):
    """Natural-key uniqueness violated (payslip per period, payment per payslip...)."""
    code = "CONFLICT"


class AuthorizationError(APIError):
    status_code = 403
    code = "FORBIDDEN"


class DependencyError(APIError):
    """Notifier or renderer failed or timed out."""
    status_code = 500
    code = "DEPENDENCY_ERROR"


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(e.message, status=e.status_code, code=e.code, detail=e.payload, errors=e.errors)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _dup(e: IntegrityError):
        from payroll_api.extensions import db
        db.session.rollback()
        app.logger.warning("integrity error: %s", getattr(e, "orig", e))
        return fail("Duplicate or FK constraint failed", status=400, code="CONFLICT")

    @app.errorhandler(StaleDataError)
    def _stale(e: StaleDataError):
        from payroll_api.extensions import db
        db.session.rollback()
        return fail("Record was modified by another request; reload and retry",
                    status=400, code="CONCURRENT_UPDATE")

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return fail("Internal server error", status=500)
