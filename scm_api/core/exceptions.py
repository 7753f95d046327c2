"""Application-level exceptions and FastAPI exception handlers."""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scm_api.workflow.states import ErrorKind, TransitionDenied

class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(message)

class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: int | str | None = None):
        msg = f"{entity} not found" if entity_id is None else f"{entity} '{entity_id}' not found"
        super().__init__(msg, status_code=404, code="NOT_FOUND")

class ForbiddenError(AppException):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, status_code=403, code="FORBIDDEN")

class UnauthorizedError(AppException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401, code="UNAUTHORIZED")

class ConflictError(AppException):
    def __init__(self, message: str):
        super().__init__(message, status_code=409, code="CONFLICT")

class ValidationError(AppException):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status_code=422, code="VALIDATION_ERROR", details=details)

class InvalidTransitionError(AppException):
    """The actor's role and the entity's current state do not permit the action."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409, code="INVALID_TRANSITION")

class NotEligibleError(AppException):
    """Rating acceptance refused; ``reason`` tells the UI which message to show."""

    def __init__(self, message: str, reason: str | None = None):
        self.reason = reason
        super().__init__(
            message,
            status_code=409,
            code="NOT_ELIGIBLE",
            details={"reason": reason} if reason else None,
        )

class StorageError(AppException):
    """Raised when the backing store fails to commit a change."""

    def __init__(self, message: str = "The change could not be stored"):
        super().__init__(message, status_code=503, code="STORAGE_ERROR")

def raise_for_denial(denial: TransitionDenied) -> None:
    """Translate an engine denial value into the matching application error."""
    if denial.kind is ErrorKind.VALIDATION_FAILED:
        raise ValidationError(denial.message)
    if denial.kind is ErrorKind.NOT_ELIGIBLE:
        raise NotEligibleError(denial.message, reason=denial.reason)
    if denial.kind is ErrorKind.CONFLICT:
        raise ConflictError(denial.message)
    if denial.kind is ErrorKind.NOT_FOUND:
        raise NotFoundError(denial.message)
    raise InvalidTransitionError(denial.message)

# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"error": error}

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = [
            {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_body("VALIDATION_ERROR", "Invalid request data", {"fields": fields}),
        )

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=_error_body("NOT_FOUND", "Resource not found"),
        )

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content=_error_body("INTERNAL_ERROR", "An unexpected error occurred"),
        )
