"""
Application error taxonomy.

Every failure that leaves the service is expressed as one of the AppError
subclasses below. Each kind carries a fixed HTTP status, a stable
machine-readable code and an operational flag: operational errors are
expected, user-facing conditions; non-operational ones are faults that
should be investigated.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from catalog.services.exceptions import CatalogDomainError, CatalogFailure

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes for integrity constraint violations
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"

# SQLite extended result codes mapped onto the same SQLSTATE values
_SQLITE_CONSTRAINT_CODES = {
    "SQLITE_CONSTRAINT_UNIQUE": UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_PRIMARYKEY": UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_FOREIGNKEY": FOREIGN_KEY_VIOLATION,
    "SQLITE_CONSTRAINT_NOTNULL": NOT_NULL_VIOLATION,
}


class AppError(Exception):
    """Base class for every error kind in the taxonomy.

    Instances are immutable once constructed.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    is_operational: bool = False

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "details", details)
        object.__setattr__(
            self, "timestamp", datetime.now(timezone.utc).isoformat()
        )

    def __setattr__(self, name: str, value: Any) -> None:
        # Python sets __traceback__/__context__/__cause__ while raising
        if name.startswith("__"):
            object.__setattr__(self, name, value)
            return
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Plain representation used for logging and error envelopes."""
        body: dict[str, Any] = {
            "status_code": self.status_code,
            "error_code": self.error_code,
            "message": self.message,
            "is_operational": self.is_operational,
            "timestamp": self.timestamp,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    is_operational = True


class AuthenticationError(AppError):
    status_code = 401
    error_code = "AUTHENTICATION_ERROR"
    is_operational = True

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class AuthorizationError(AppError):
    status_code = 403
    error_code = "AUTHORIZATION_ERROR"
    is_operational = True

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    error_code = "NOT_FOUND_ERROR"
    is_operational = True

    def __init__(self, resource: str = "Resource", message: str | None = None) -> None:
        super().__init__(message or f"{resource} not found")


class RouteNotFoundError(AppError):
    status_code = 404
    error_code = "ROUTE_NOT_FOUND"
    is_operational = True

    def __init__(self, route: str) -> None:
        super().__init__(f"Route {route} not found")


class ConflictError(AppError):
    status_code = 409
    error_code = "CONFLICT_ERROR"
    is_operational = True


class BusinessLogicError(AppError):
    status_code = 422
    error_code = "BUSINESS_LOGIC_ERROR"
    is_operational = True


class RateLimitError(AppError):
    status_code = 429
    error_code = "RATE_LIMIT_ERROR"
    is_operational = True

    def __init__(self, message: str = "Too many requests") -> None:
        super().__init__(message)


class InternalServerError(AppError):
    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"
    is_operational = False

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


class DatabaseError(AppError):
    status_code = 500
    error_code = "DATABASE_ERROR"
    is_operational = False

    def __init__(self, message: str = "Database operation failed") -> None:
        super().__init__(message)


class ExternalServiceError(AppError):
    status_code = 502
    error_code = "EXTERNAL_SERVICE_ERROR"
    is_operational = False

    def __init__(self, service: str, message: str | None = None) -> None:
        super().__init__(message or f"External service {service} is unavailable")


class ServiceUnavailableError(AppError):
    status_code = 503
    error_code = "SERVICE_UNAVAILABLE_ERROR"
    is_operational = False

    def __init__(self, message: str = "Service temporarily unavailable") -> None:
        super().__init__(message)


def is_app_error(error: object) -> bool:
    return isinstance(error, AppError)


def is_operational_error(error: object) -> bool:
    """True only for taxonomy errors flagged as expected conditions."""
    return isinstance(error, AppError) and error.is_operational


def _field_error(raw: Mapping[str, Any]) -> dict[str, Any]:
    if "loc" in raw:
        loc = raw.get("loc") or ()
        # FastAPI prefixes request locations ("body", "query", ...)
        parts = [str(p) for p in loc]
        if len(parts) > 1 and parts[0] in {"body", "query", "path", "header"}:
            parts = parts[1:]
        return {
            "field": ".".join(parts),
            "message": raw.get("msg", ""),
            "code": raw.get("type", "invalid"),
        }
    return {
        "field": str(raw.get("field", "")),
        "message": raw.get("message", ""),
        "code": raw.get("code", "invalid"),
    }


def _constraint_code(exc: DBAPIError) -> str | None:
    """Pull the store-provided constraint code off a wrapped DBAPI error."""
    orig = exc.orig
    if orig is None:
        return None
    # psycopg 3 exposes sqlstate, psycopg2 exposes pgcode
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return str(code)
    sqlite_name = getattr(orig, "sqlite_errorname", None)
    if sqlite_name:
        return _SQLITE_CONSTRAINT_CODES.get(sqlite_name)
    return None


class ErrorFactory:
    """Classify arbitrary failures into the taxonomy."""

    @staticmethod
    def from_validation_failure(
        field_errors: Iterable[Mapping[str, Any]],
        message: str = "Request validation failed",
    ) -> ValidationError:
        """Build a ValidationError carrying per-field details.

        Accepts pydantic error dicts (``loc``/``msg``/``type``) as well as
        dicts already shaped as ``{field, message, code}``.
        """
        details = [_field_error(err) for err in field_errors]
        return ValidationError(message, details=details)

    @staticmethod
    def from_constraint_violation(code: str | None, detail: str | None = None) -> AppError:
        """Map a persistence-layer constraint code onto a taxonomy kind."""
        if detail:
            logger.debug(f"Constraint violation {code}: {detail}")
        if code == UNIQUE_VIOLATION:
            return ConflictError("Resource already exists")
        if code == FOREIGN_KEY_VIOLATION:
            return BusinessLogicError("Referenced resource does not exist")
        if code == NOT_NULL_VIOLATION:
            return ValidationError("Required field is missing")
        return DatabaseError("Database operation failed")

    @staticmethod
    def from_database_error(error: SQLAlchemyError) -> AppError:
        """Classify a SQLAlchemy error by its driver error code."""
        if isinstance(error, DBAPIError):
            return ErrorFactory.from_constraint_violation(
                _constraint_code(error), str(error.orig) if error.orig else None
            )
        return DatabaseError("Database operation failed")

    @staticmethod
    def from_domain_failure(failure: Exception) -> AppError:
        """Classify a catalog domain failure by its tag."""
        if not isinstance(failure, CatalogDomainError):
            return ErrorFactory.from_unknown(failure)

        tag = failure.failure
        if tag is CatalogFailure.PRODUCT_NOT_FOUND:
            return NotFoundError("Product")
        if tag is CatalogFailure.CATEGORY_NOT_FOUND:
            return NotFoundError("Category")
        if tag is CatalogFailure.SLUG_CONFLICT:
            return ConflictError(failure.message)
        if tag in (CatalogFailure.UNKNOWN_IMAGES, CatalogFailure.DUPLICATE_IMAGES):
            details = [
                {"field": "images", "message": failure.message, "code": tag.value.lower()}
            ]
            return ValidationError(failure.message, details=details)
        return InternalServerError(failure.message)

    @staticmethod
    def from_unknown(error: object) -> AppError:
        """Classify anything that was raised.

        Taxonomy errors pass through unchanged. Plain exceptions are
        classified by message substring, which is deliberately loose: any
        message containing one of the keywords is reclassified.
        """
        if isinstance(error, AppError):
            return error

        if isinstance(error, CatalogDomainError):
            return ErrorFactory.from_domain_failure(error)
        if isinstance(error, SQLAlchemyError):
            return ErrorFactory.from_database_error(error)

        if isinstance(error, Exception):
            message = str(error)
            lowered = message.lower()
            if "not found" in lowered:
                return NotFoundError(message=message)
            if "validation" in lowered:
                return ValidationError(message)
            if "unauthorized" in lowered or "authentication" in lowered:
                return AuthenticationError(message)
            if "forbidden" in lowered or "permission" in lowered:
                return AuthorizationError(message)
            return InternalServerError(message or "Internal server error")

        return InternalServerError("An unexpected error occurred")
