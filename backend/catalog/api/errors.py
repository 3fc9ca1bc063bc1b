"""
Centralized error handlers for FastAPI.

Every exception that escapes a route is classified into the error taxonomy
through ErrorFactory and rendered as the same JSON envelope:

    {"success": false,
     "error": {"code", "message", "details"?, "stack"?},
     "timestamp", "path", "request_id"?}

``details`` is only sent for validation errors. Stack traces are only
attached outside production, and in production non-operational errors
never expose their message.
"""

import logging
import traceback
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from catalog.api.schemas.envelope import ErrorBody, ErrorResponse
from catalog.core.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    ErrorFactory,
    RateLimitError,
    RouteNotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from catalog.services.exceptions import CatalogDomainError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
GENERIC_MESSAGE = "Internal server error"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Propagate the caller's X-Request-ID or mint a new one."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req_{uuid.uuid4().hex}"
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        except Exception as exc:
            # Answered here rather than by the outer server error middleware
            response = render_error(request, ErrorFactory.from_unknown(exc), exc)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def render_error(request: Request, error: AppError, source: BaseException | None = None) -> JSONResponse:
    """Log ``error`` and turn it into the JSON error envelope."""
    settings = request.app.state.settings
    source = source or error

    if error.is_operational:
        logger.warning(f"{error.error_code}: {error.message} [{request.url.path}]")
    else:
        logger.error(
            f"{error.error_code}: {error.message} [{request.url.path}]",
            exc_info=(type(source), source, source.__traceback__),
        )

    message = error.message
    if settings.is_production and not error.is_operational:
        message = GENERIC_MESSAGE

    body = ErrorBody(code=error.error_code, message=message)
    if isinstance(error, ValidationError) and error.details:
        body.details = error.details
    if not settings.is_production:
        body.stack = "".join(traceback.format_exception(type(source), source, source.__traceback__))

    response = ErrorResponse(
        error=body,
        timestamp=error.timestamp,
        path=request.url.path,
        request_id=getattr(request.state, "request_id", None),
    )
    headers = {REQUEST_ID_HEADER: response.request_id} if response.request_id else None
    return JSONResponse(
        status_code=error.status_code,
        content=response.model_dump(exclude_none=True),
        headers=headers,
    )


def _from_http_exception(request: Request, exc: StarletteHTTPException) -> AppError:
    if exc.status_code in (404, 405):
        return RouteNotFoundError(f"{request.method} {request.url.path}")
    if exc.status_code == 401:
        return AuthenticationError(str(exc.detail))
    if exc.status_code == 403:
        return AuthorizationError(str(exc.detail))
    if exc.status_code == 429:
        return RateLimitError(str(exc.detail))
    if exc.status_code == 503:
        return ServiceUnavailableError(str(exc.detail))
    if exc.status_code < 500:
        return ValidationError(str(exc.detail))
    return ErrorFactory.from_unknown(exc)


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers on the FastAPI application."""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        return render_error(request, exc)

    @app.exception_handler(CatalogDomainError)
    async def handle_domain_failure(request: Request, exc: CatalogDomainError) -> JSONResponse:
        return render_error(request, ErrorFactory.from_domain_failure(exc), exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return render_error(request, ErrorFactory.from_validation_failure(exc.errors()), exc)

    @app.exception_handler(SQLAlchemyError)
    async def handle_database(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        return render_error(request, ErrorFactory.from_database_error(exc), exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return render_error(request, _from_http_exception(request, exc), exc)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        return render_error(request, ErrorFactory.from_unknown(exc), exc)
