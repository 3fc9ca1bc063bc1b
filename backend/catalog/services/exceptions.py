"""
Domain failures raised by the catalog services.

Each failure carries a CatalogFailure tag so callers can tell which
invariant failed without inspecting the message. The messages are kept
human-readable ("... not found", "... already exists") for logs and for
callers that only see the text.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class CatalogFailure(str, Enum):
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    SLUG_CONFLICT = "SLUG_CONFLICT"
    UNKNOWN_IMAGES = "UNKNOWN_IMAGES"
    DUPLICATE_IMAGES = "DUPLICATE_IMAGES"


class CatalogDomainError(Exception):
    """Base error for all catalog domain failures."""

    failure: CatalogFailure

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ProductNotFoundError(CatalogDomainError):
    """Raised when a product id does not resolve."""

    failure = CatalogFailure.PRODUCT_NOT_FOUND

    def __init__(self, product_id: str) -> None:
        super().__init__("Product not found")
        self.product_id = product_id


class CategoryNotFoundError(CatalogDomainError):
    """Raised when a write references a category that does not exist."""

    failure = CatalogFailure.CATEGORY_NOT_FOUND

    def __init__(self, category_id: str) -> None:
        super().__init__("Category not found")
        self.category_id = category_id


class SlugConflictError(CatalogDomainError):
    """Raised when another product already owns the requested slug."""

    failure = CatalogFailure.SLUG_CONFLICT

    def __init__(self, slug: str) -> None:
        super().__init__("Product with this slug already exists")
        self.slug = slug


class UnknownImagesError(CatalogDomainError):
    """Raised when a reorder request names images the product does not have."""

    failure = CatalogFailure.UNKNOWN_IMAGES

    def __init__(self, urls: Iterable[str]) -> None:
        self.urls = sorted(urls)
        super().__init__(
            f"Images are not attached to this product: {', '.join(self.urls)}"
        )


class DuplicateImagesError(CatalogDomainError):
    """Raised when a reorder request lists the same image more than once."""

    failure = CatalogFailure.DUPLICATE_IMAGES

    def __init__(self, urls: Iterable[str]) -> None:
        self.urls = sorted(urls)
        super().__init__(f"Images listed more than once: {', '.join(self.urls)}")
