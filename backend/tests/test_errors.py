"""
Tests for the error taxonomy and ErrorFactory classification rules.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from catalog.core.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    BusinessLogicError,
    ConflictError,
    DatabaseError,
    ErrorFactory,
    ExternalServiceError,
    InternalServerError,
    NotFoundError,
    RateLimitError,
    RouteNotFoundError,
    ServiceUnavailableError,
    ValidationError,
    is_app_error,
    is_operational_error,
)
from catalog.db.models import Category, Product
from catalog.services.exceptions import (
    CategoryNotFoundError,
    DuplicateImagesError,
    ProductNotFoundError,
    SlugConflictError,
    UnknownImagesError,
)


class TestTaxonomy:
    """Every kind carries a fixed status, code and operational flag."""

    @pytest.mark.parametrize(
        "error, status_code, code, operational",
        [
            (ValidationError("bad"), 400, "VALIDATION_ERROR", True),
            (AuthenticationError(), 401, "AUTHENTICATION_ERROR", True),
            (AuthorizationError(), 403, "AUTHORIZATION_ERROR", True),
            (NotFoundError(), 404, "NOT_FOUND_ERROR", True),
            (RouteNotFoundError("GET /x"), 404, "ROUTE_NOT_FOUND", True),
            (ConflictError("dup"), 409, "CONFLICT_ERROR", True),
            (BusinessLogicError("rule"), 422, "BUSINESS_LOGIC_ERROR", True),
            (RateLimitError(), 429, "RATE_LIMIT_ERROR", True),
            (InternalServerError(), 500, "INTERNAL_SERVER_ERROR", False),
            (DatabaseError(), 500, "DATABASE_ERROR", False),
            (ExternalServiceError("payments"), 502, "EXTERNAL_SERVICE_ERROR", False),
            (ServiceUnavailableError(), 503, "SERVICE_UNAVAILABLE_ERROR", False),
        ],
    )
    def test_kind_attributes(self, error, status_code, code, operational) -> None:
        assert error.status_code == status_code
        assert error.error_code == code
        assert error.is_operational is operational
        assert is_app_error(error)
        assert is_operational_error(error) is operational

    def test_default_messages(self) -> None:
        assert NotFoundError().message == "Resource not found"
        assert NotFoundError("Product").message == "Product not found"
        assert RouteNotFoundError("GET /nope").message == "Route GET /nope not found"
        assert AuthenticationError().message == "Authentication required"
        assert AuthorizationError().message == "Insufficient permissions"
        assert RateLimitError().message == "Too many requests"
        assert DatabaseError().message == "Database operation failed"
        assert ExternalServiceError("payments").message == "External service payments is unavailable"
        assert ServiceUnavailableError().message == "Service temporarily unavailable"

    def test_errors_are_immutable(self) -> None:
        error = ConflictError("dup")
        with pytest.raises(AttributeError):
            error.message = "changed"
        with pytest.raises(AttributeError):
            error.status_code = 200
        assert error.message == "dup"

    def test_errors_can_be_raised_and_chained(self) -> None:
        with pytest.raises(NotFoundError) as info:
            try:
                raise KeyError("missing")
            except KeyError as e:
                raise NotFoundError("Product") from e
        assert isinstance(info.value.__cause__, KeyError)

    def test_timestamp_is_iso_utc(self) -> None:
        assert ValidationError("bad").timestamp.endswith("+00:00")

    def test_plain_exceptions_are_not_operational(self) -> None:
        assert not is_app_error(ValueError("x"))
        assert not is_operational_error(ValueError("x"))


class TestFromValidationFailure:
    def test_pydantic_locations_are_flattened(self) -> None:
        error = ErrorFactory.from_validation_failure(
            [
                {"loc": ("body", "dimensions", "width"), "msg": "too small", "type": "greater_than"},
                {"loc": ("query", "page"), "msg": "not an int", "type": "int_parsing"},
            ]
        )
        assert error.status_code == 400
        assert error.message == "Request validation failed"
        assert error.details == [
            {"field": "dimensions.width", "message": "too small", "code": "greater_than"},
            {"field": "page", "message": "not an int", "code": "int_parsing"},
        ]

    def test_shaped_details_pass_through(self) -> None:
        error = ErrorFactory.from_validation_failure(
            [{"field": "q", "message": "Search term is required", "code": "missing"}],
            message="Search term is required",
        )
        assert error.message == "Search term is required"
        assert error.details[0]["field"] == "q"


class TestFromConstraintViolation:
    @pytest.mark.parametrize(
        "code, kind, message",
        [
            ("23505", ConflictError, "Resource already exists"),
            ("23503", BusinessLogicError, "Referenced resource does not exist"),
            ("23502", ValidationError, "Required field is missing"),
            ("40001", DatabaseError, "Database operation failed"),
            (None, DatabaseError, "Database operation failed"),
        ],
    )
    def test_codes(self, code, kind, message) -> None:
        error = ErrorFactory.from_constraint_violation(code)
        assert type(error) is kind
        assert error.message == message


class TestFromDatabaseError:
    """SQLite integrity errors are classified like their PostgreSQL counterparts."""

    def test_unique_violation_is_conflict(self, session, category) -> None:
        session.add(Category(name="Duplicate", slug=category.slug))
        with pytest.raises(IntegrityError) as info:
            session.commit()
        session.rollback()
        assert isinstance(ErrorFactory.from_database_error(info.value), ConflictError)

    def test_foreign_key_violation_is_business_logic(self, session) -> None:
        session.add(
            Product(
                title="Orphan",
                description="No category",
                slug="orphan",
                price=1.0,
                category_id="00000000-0000-0000-0000-000000000000",
            )
        )
        with pytest.raises(IntegrityError) as info:
            session.commit()
        session.rollback()
        assert isinstance(ErrorFactory.from_database_error(info.value), BusinessLogicError)

    def test_not_null_violation_is_validation(self, session) -> None:
        session.add(Category(name=None, slug="nameless"))
        with pytest.raises(IntegrityError) as info:
            session.commit()
        session.rollback()
        assert isinstance(ErrorFactory.from_database_error(info.value), ValidationError)

    def test_other_database_errors(self) -> None:
        error = OperationalError("SELECT 1", {}, Exception("connection lost"))
        assert isinstance(ErrorFactory.from_database_error(error), DatabaseError)


class TestFromDomainFailure:
    def test_product_not_found(self) -> None:
        error = ErrorFactory.from_domain_failure(ProductNotFoundError("p-1"))
        assert isinstance(error, NotFoundError)
        assert error.message == "Product not found"

    def test_category_not_found(self) -> None:
        error = ErrorFactory.from_domain_failure(CategoryNotFoundError("c-1"))
        assert isinstance(error, NotFoundError)
        assert error.message == "Category not found"

    def test_slug_conflict(self) -> None:
        error = ErrorFactory.from_domain_failure(SlugConflictError("iphone-15"))
        assert isinstance(error, ConflictError)
        assert error.message == "Product with this slug already exists"

    def test_image_failures_are_validation_errors(self) -> None:
        unknown = ErrorFactory.from_domain_failure(UnknownImagesError({"https://b", "https://a"}))
        assert isinstance(unknown, ValidationError)
        assert unknown.message == "Images are not attached to this product: https://a, https://b"
        assert unknown.details[0]["code"] == "unknown_images"

        duplicate = ErrorFactory.from_domain_failure(DuplicateImagesError(["https://a"]))
        assert isinstance(duplicate, ValidationError)
        assert duplicate.details[0]["code"] == "duplicate_images"


class TestFromUnknown:
    def test_app_errors_pass_through(self) -> None:
        original = ConflictError("dup")
        assert ErrorFactory.from_unknown(original) is original

    def test_domain_failures_use_their_tag(self) -> None:
        assert isinstance(ErrorFactory.from_unknown(SlugConflictError("x")), ConflictError)

    @pytest.mark.parametrize(
        "message, kind",
        [
            ("Widget not found", NotFoundError),
            ("Payload validation failed", ValidationError),
            ("Unauthorized access", AuthenticationError),
            ("authentication token expired", AuthenticationError),
            ("Forbidden resource", AuthorizationError),
            ("missing permission", AuthorizationError),
            ("something exploded", InternalServerError),
        ],
    )
    def test_message_substring_rules(self, message, kind) -> None:
        error = ErrorFactory.from_unknown(RuntimeError(message))
        assert type(error) is kind
        assert error.message == message

    def test_substring_rules_are_loose(self) -> None:
        # Any message containing the keyword is reclassified
        error = ErrorFactory.from_unknown(RuntimeError("Config file not found on disk"))
        assert isinstance(error, NotFoundError)

    def test_non_exceptions(self) -> None:
        error = ErrorFactory.from_unknown("a bare string")
        assert isinstance(error, InternalServerError)
        assert error.message == "An unexpected error occurred"

    def test_result_is_always_an_app_error(self) -> None:
        assert isinstance(ErrorFactory.from_unknown(ValueError()), AppError)
