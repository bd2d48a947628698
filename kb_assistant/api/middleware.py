"""API middleware: CORS, request logging, error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, structured request logging (via structlog), and the
conversion of ``AssistantError`` subclasses and request validation failures
into JSON :class:`ErrorResponse` bodies.

Starlette middleware is a stack (last added, first executed):

    app.add_middleware(ErrorHandlingMiddleware)    # added 1st, inner
    app.add_middleware(RequestLoggingMiddleware)   # added 2nd, outermost

so RequestLoggingMiddleware sees the final status code, even when
ErrorHandlingMiddleware replaced an exception with a JSON error.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from kb_assistant.api.schemas import ErrorResponse
from kb_assistant.utils.errors import AssistantError, ProviderUnavailableError
from kb_assistant.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; all origins are allowed unless *allowed_origins* is given."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


def _error_response(status_code: int, error: str, detail: str | None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail)
    return JSONResponse(status_code=status_code, content=body.model_dump())


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn ``AssistantError`` subclasses into structured JSON errors.

    ``ProviderUnavailableError`` becomes 503; every other application error
    becomes 500.  Stack traces stay in the server log.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except AssistantError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            status_code = 503 if isinstance(exc, ProviderUnavailableError) else 500
            return _error_response(status_code, type(exc).__name__, exc.message)


def register_exception_handlers(app: FastAPI) -> None:
    """Render validation failures as 400 and HTTP errors in the ErrorResponse shape."""

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        detail = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
            for err in errors
        )
        _logger.info("request_rejected", path=str(request.url.path), detail=detail)
        return _error_response(400, "ValidationError", detail)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        error = "ServiceUnavailable" if exc.status_code == 503 else "HTTPError"
        if exc.status_code == 400:
            error = "BadRequest"
        elif exc.status_code == 404:
            error = "NotFound"
        return _error_response(exc.status_code, error, str(exc.detail))
