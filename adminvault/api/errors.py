"""
Error boundary - The single place an error becomes an HTTP response.

Every exception raised anywhere in the request chain (request validation,
routes, domain services, unexpected faults) is rendered here into one
canonical JSON body:

    {statusCode, error, errorCode, message, details, timestamp, path}

Resolution order:
1. DomainError (and request validation failures, converted to a
   VALIDATION DomainError): status, code, and details used verbatim.
2. Starlette/FastAPI HTTPException: its own status and message.
3. Anything else: INTERNAL. Exception message and stack are included only
   outside production.

Statuses >= 500 are logged with the stack; 4xx are not logged.
"""

import logging
import traceback
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from adminvault.api.validation import validation_error
from adminvault.domain.errors import DomainError, ErrorKind

_module_logger = logging.getLogger(__name__)


class ErrorBoundary:
    """Exception handler installed on the app for every error type."""

    def __init__(self, production: bool = False, logger: logging.Logger = _module_logger) -> None:
        """
        Args:
            production: Suppress internal error detail when True
            logger: Destination for 5xx reports
        """
        self._production = production
        self._logger = logger

    def install(self, app: FastAPI) -> None:
        """
        Register this boundary as the handler for all error types.

        Unexpected exceptions are caught by an HTTP middleware, so they
        never reach Starlette's ServerErrorMiddleware and are logged once.
        Install before adding CORS middleware; CORS then wraps the 500s too.
        """
        for exc_type in (DomainError, RequestValidationError, StarletteHTTPException):
            app.add_exception_handler(exc_type, self.handle)
        app.middleware("http")(self.catch_unhandled)

    async def catch_unhandled(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return await self.handle(request, exc)

    async def handle(self, request: Request, exc: Exception) -> JSONResponse:
        status_code, body, headers = self.render(exc, request.url.path)

        if status_code >= 500:
            self._logger.error(
                "Unhandled exception on %s %s",
                request.method,
                request.url.path,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

        return JSONResponse(
            status_code=status_code,
            content=jsonable_encoder(body),
            headers=headers,
        )

    def render(self, exc: Exception, path: str) -> tuple[int, dict[str, Any], dict[str, str] | None]:
        """
        Map an exception to (status, canonical body, extra headers).

        Pure function of the exception and mode; no logging.
        """
        if isinstance(exc, RequestValidationError):
            exc = validation_error(exc.errors())

        if isinstance(exc, DomainError):
            body = exc.to_dict()
            body["path"] = path
            if not self._production and exc.cause is not None:
                body["cause"] = exc.cause_summary()
            return exc.status_code, body, None

        if isinstance(exc, StarletteHTTPException):
            return exc.status_code, self._transport_body(exc, path), exc.headers

        return ErrorKind.INTERNAL.status_code, self._internal_body(exc, path), None

    def _transport_body(self, exc: StarletteHTTPException, path: str) -> dict[str, Any]:
        status_code = exc.status_code
        try:
            phrase, status_name = HTTPStatus(status_code).phrase, HTTPStatus(status_code).name
        except ValueError:
            phrase, status_name = "HTTP Error", "HTTP_ERROR"

        kind = ErrorKind.for_status(status_code)
        if isinstance(exc.detail, str):
            message, details = exc.detail, {}
        else:
            message, details = phrase, exc.detail

        return {
            "statusCode": status_code,
            "error": phrase,
            "errorCode": kind.error_code if kind is not None else status_name,
            "message": message,
            "details": details,
            "timestamp": _now(),
            "path": path,
        }

    def _internal_body(self, exc: Exception, path: str) -> dict[str, Any]:
        kind = ErrorKind.INTERNAL
        if self._production:
            message, details = kind.default_message, {}
        else:
            message = str(exc) or type(exc).__name__
            details = {
                "exception": type(exc).__name__,
                "stack": traceback.format_exception(type(exc), exc, exc.__traceback__),
            }

        return {
            "statusCode": kind.status_code,
            "error": kind.error_name,
            "errorCode": kind.error_code,
            "message": message,
            "details": details,
            "timestamp": _now(),
            "path": path,
        }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
