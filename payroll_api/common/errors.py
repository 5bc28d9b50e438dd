# payroll_api/common/errors.py
from flask import Blueprint, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from payroll_api.common.http import fail
from payroll_api.extensions import db

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


class NotFoundError(APIError):
    """Referenced entity (employee, contract, payslip, rule) is absent."""
    def __init__(self, message, payload=None):
        super().__init__("NOT_FOUND", message, 404, payload)


class ConflictError(APIError):
    """Uniqueness or state-transition violation."""
    def __init__(self, message, payload=None):
        super().__init__("CONFLICT", message, 409, payload)


class InvariantViolation(APIError):
    """Computed figures would break a payroll invariant (e.g. negative net)."""
    def __init__(self, message, payload=None):
        super().__init__("INVARIANT_VIOLATION", message, 422, payload)


class ValidationError(APIError):
    def __init__(self, message, payload=None):
        super().__init__("VALIDATION", message, 422, payload)


@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400)

@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    db.session.rollback()
    return fail(message="Conflict / integrity error", status=409, code="CONFLICT",
                detail=str(e.orig) if getattr(e, "orig", None) else str(e))

@bp_errors.app_errorhandler(Exception)
def _unhandled(e: Exception):
    current_app.logger.exception(e)
    return fail(message="Internal Server Error", status=500)
