# iris_api/common/errors.py
from flask import Blueprint
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from iris_api.common.http import fail

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Base error carried to the HTTP layer as a failure envelope."""
    code = "ERROR"
    status_code = 400

    def __init__(self, message, code=None, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload


class NotFoundError(APIError):
    """Employee, period, request or metric record is absent."""
    code = "NOT_FOUND"
    status_code = 404


class InvalidStateError(APIError):
    """Precondition on the current lifecycle state failed (rejected request, approved metric, closed period)."""
    code = "INVALID_STATE"
    status_code = 409


class InvalidInputError(APIError):
    """Unrecognised token or malformed argument entering the core."""
    code = "INVALID_INPUT"
    status_code = 422


class ConcurrentUpdateError(APIError):
    """Row changed between read and conditional write."""
    code = "CONFLICT"
    status_code = 409


class StorageError(APIError):
    """Wrapped SQLAlchemy failure. No retry happens inside the core."""
    code = "STORAGE_ERROR"
    status_code = 503


def storage_error(action: str, exc: SQLAlchemyError) -> StorageError:
    err = StorageError(f"{action} failed", payload=str(getattr(exc, "orig", None) or exc))
    err.__cause__ = exc
    return err


@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400)

@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    return fail(message="Conflict / integrity error", status=409, code="CONSTRAINT_ERROR",
                detail=str(e.orig) if getattr(e, "orig", None) else str(e))

def register_error_handlers(app):
    @app.errorhandler(Exception)
    def _500(e: Exception):
        if isinstance(e, HTTPException):
            return _http(e)
        app.logger.exception(e)
        return fail("Internal server error", status=500)
