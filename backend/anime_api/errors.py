import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("anime_api")

NOT_FOUND_DEVELOPER_MESSAGE = "A NotFound exception happened"
BASIC_AUTH_CHALLENGE = 'Basic realm="anime"'


class AppError(Exception):
    code: str = "APP_ERROR"
    message: str = "Application error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    details: Any | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        if details is not None:
            self.details = details

        super().__init__(self.message)


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    message = "Validation error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    code = "NOT_FOUND"
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class AuthError(AppError):
    code = "AUTH_ERROR"
    message = "Authentication required"
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionError(AppError):  # type: ignore[override]
    code = "PERMISSION_DENIED"
    message = "Insufficient permissions"
    status_code = status.HTTP_403_FORBIDDEN


class InternalError(AppError):
    code = "INTERNAL_ERROR"
    message = "Internal server error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


ERROR_TAXONOMY: tuple[type[AppError], ...] = (
    NotFoundError,
    ValidationError,
    AuthError,
    PermissionError,
    InternalError,
)

ERROR_BY_STATUS: dict[int, type[AppError]] = {
    status.HTTP_400_BAD_REQUEST: ValidationError,
    status.HTTP_401_UNAUTHORIZED: AuthError,
    status.HTTP_403_FORBIDDEN: PermissionError,
    status.HTTP_404_NOT_FOUND: NotFoundError,
    422: ValidationError,
}


def error_for_status(status_code: int, message: str | None = None) -> AppError:
    """Classify a framework-level HTTP status into the application taxonomy."""
    error_cls = ERROR_BY_STATUS.get(status_code)
    if error_cls is not None:
        return error_cls(message)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return InternalError()
    return AppError(
        message or HTTPStatus(status_code).phrase,
        code=HTTPStatus(status_code).name,
        status_code=status_code,
    )


def present_error(exc: BaseException) -> tuple[int, str]:
    """Map any failure to ``(status, developerMessage)``.

    Not-found failures share one fixed developer message. Other client errors
    expose their own message. Everything else, including ``InternalError`` and
    exceptions outside the taxonomy, collapses to a generic 500 so internal
    detail never reaches the wire.
    """
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND, NOT_FOUND_DEVELOPER_MESSAGE
    if isinstance(exc, AppError) and exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR:
        return exc.status_code, exc.message
    return status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.message


def error_code_for(exc: BaseException) -> str:
    if isinstance(exc, AppError) and exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR:
        return exc.code
    return InternalError.code


def error_payload(
    status_code: int,
    developer_message: str,
    *,
    code: str,
    path: str,
    request_id: str | None = None,
) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": path,
        "status": status_code,
        "error": HTTPStatus(status_code).phrase,
        "code": code,
        "requestId": request_id,
        "developerMessage": developer_message,
    }


def _log_error(request: Request, status_code: int, code: str, message: str, exc: BaseException) -> None:
    request_id = request.headers.get("x-request-id")
    log_message = (
        f"[{code}] method={request.method} path={request.url.path} "
        f"request_id={request_id or 'n/a'} message={message}"
    )
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(log_message, exc_info=exc)
    else:
        logger.warning(log_message)


def error_response(request: Request, exc: BaseException, *, log: bool = True) -> JSONResponse:
    """Build the single structured error response for a failed request.

    Pass ``log=False`` when the caller has already logged the failure.
    """
    status_code, developer_message = present_error(exc)
    code = error_code_for(exc)
    if log:
        _log_error(request, status_code, code, str(exc) or developer_message, exc)

    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": BASIC_AUTH_CHALLENGE}
    return JSONResponse(
        status_code=status_code,
        content=error_payload(
            status_code,
            developer_message,
            code=code,
            path=request.url.path,
            request_id=request.headers.get("x-request-id"),
        ),
        headers=headers,
    )
