import datetime
import traceback
from typing import Any, Dict, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from cc_registry.core.errors import (
    AttestationError,
    AuthorizationError,
    CreditExchangeError,
    PaymentError,
    StateError,
    TokenNotFoundError,
)
from cc_registry.logging_config import logger
from cc_registry.settings import settings


class ErrorResponse(Exception):
    """Standardised error response format."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        request: Request | None = None,
        details: dict[str, Any] | None = None,
        error_type: str = "error",
        exc: Exception | None = None,
        include_stack: bool = False,
    ) -> None:
        self.timestamp = datetime.datetime.now()
        self.status_code = status_code
        self.message = message
        self.error_type = error_type
        self.details = details or {}

        if request:
            self.details.update(
                {
                    "method": request.method,
                    "path": request.url.path,
                }
            )

        # Stack only when requested and the exception carries a traceback.
        if include_stack and exc and exc.__traceback__:
            tb_exc = traceback.TracebackException.from_exception(exc)
            stack_frames = tb_exc.stack

            if stack_frames:
                last = stack_frames[-1]
                self.details["source_location"] = {
                    "file": last.filename,
                    "line": last.lineno,
                    "function": last.name,
                }

            self.details["stack"] = list(tb_exc.format())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status_code": self.status_code,
            "error_message": self.message,
            "details": self.details,
            "error_type": self.error_type,
        }


# Most specific first.
_DOMAIN_ERROR_STATUS: list[tuple[type[CreditExchangeError], int, str]] = [
    (TokenNotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (AuthorizationError, status.HTTP_403_FORBIDDEN, "authorization_error"),
    (AttestationError, status.HTTP_400_BAD_REQUEST, "attestation_error"),
    (StateError, status.HTTP_409_CONFLICT, "state_error"),
    (PaymentError, status.HTTP_402_PAYMENT_REQUIRED, "payment_error"),
]


def domain_error_to_response(exc: CreditExchangeError, request: Request | None = None) -> ErrorResponse:
    status_code, error_type = status.HTTP_400_BAD_REQUEST, "error"
    for error_class, mapped_status, mapped_type in _DOMAIN_ERROR_STATUS:
        if isinstance(exc, error_class):
            status_code, error_type = mapped_status, mapped_type
            break

    return ErrorResponse(
        status_code=status_code,
        message=str(exc),
        request=request,
        details={"condition": type(exc).__name__},
        error_type=error_type,
    )


async def credit_exchange_exception_handler(
    request: Request, exc: CreditExchangeError
) -> JSONResponse:
    error_response = domain_error_to_response(exc, request)
    logger.warning(f"Exchange error: {error_response.to_dict()}")
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "location": " -> ".join(str(x) for x in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    error_response = ErrorResponse(
        status_code=422,
        message="Validation error",
        request=request,
        details={"errors": errors},
        error_type="validation_error",
    )
    logger.warning(f"Validation error: {error_response.to_dict()}")
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict(),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> Union[Response, JSONResponse]:
    """Handle HTTP exceptions."""
    error_response = ErrorResponse(
        status_code=exc.status_code, message=str(exc.detail), error_type="http_error"
    )
    logger.warning(f"HTTP error: {error_response.to_dict()}")
    return JSONResponse(
        status_code=error_response.status_code, content=error_response.to_dict()
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Only expose the stack trace outside PROD
    show_stack = settings.ENVIRONMENT != "PROD"
    error_response = ErrorResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=str(exc),
        request=request,
        details={"exception_type": type(exc).__name__},
        error_type="server_error",
        exc=exc,
        include_stack=show_stack,
    )
    logger.error("Unhandled exception", exc_info=True)
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict(),
    )
