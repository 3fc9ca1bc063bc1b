"""Write-side product operations.

Cross-entity invariants (category exists, slug is unique) are checked before
anything is written. Stock and view counters are changed with single UPDATE
statements so concurrent callers never lose updates. Failures are raised as
tagged domain errors from catalog.services.exceptions; classifying them into
HTTP errors is the caller's job.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.db.models import Product, ProductTag
from catalog.services.exceptions import (
    CategoryNotFoundError,
    DuplicateImagesError,
    ProductNotFoundError,
    SlugConflictError,
    UnknownImagesError,
)
from catalog.services.product_query import ProductQueryService

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"

CREATE_FIELDS = frozenset(
    {
        "title",
        "description",
        "slug",
        "price",
        "original_price",
        "currency",
        "stock_quantity",
        "sku",
        "category_id",
        "images",
        "specifications",
        "variants",
        "brand",
        "weight",
        "weight_unit",
        "dimensions",
        "badge",
        "sort_order",
    }
)

# id, in_stock and view_count are never copied from input
UPDATE_FIELDS = CREATE_FIELDS | {"is_active", "rating", "review_count", "published_at"}

# Columns an update may change but never clear
REQUIRED_FIELDS = frozenset(
    {
        "title",
        "description",
        "slug",
        "price",
        "currency",
        "stock_quantity",
        "category_id",
        "is_active",
        "rating",
        "review_count",
    }
)


class ProductMutationService:
    """Apply product writes through the given session."""

    def __init__(self, db: Session, queries: ProductQueryService | None = None) -> None:
        self.db = db
        self.queries = queries or ProductQueryService(db)

    # -- helpers ---------------------------------------------------------

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error during {action}: {e}", exc_info=True)
            raise

    def _get(self, product_id: str) -> Product:
        product = self.queries.find_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def _ensure_category(self, category_id: str) -> None:
        if not self.queries.category_exists(category_id):
            raise CategoryNotFoundError(category_id)

    # -- create / update -------------------------------------------------

    def create(self, data: Mapping[str, Any]) -> Product:
        """Persist a new product after validating its category and slug."""
        self._ensure_category(data["category_id"])
        if self.queries.slug_taken(data["slug"]):
            raise SlugConflictError(data["slug"])

        values = {
            key: value
            for key, value in data.items()
            if key in CREATE_FIELDS and value is not None
        }
        values["currency"] = data.get("currency") or DEFAULT_CURRENCY
        values["stock_quantity"] = data.get("stock_quantity") or 0
        values["in_stock"] = values["stock_quantity"] > 0
        values["images"] = list(data.get("images") or [])
        values["published_at"] = datetime.now(timezone.utc)

        product = Product(**values)
        product.tags = set(data.get("tags") or [])
        self.db.add(product)
        self._commit("product create")
        self.db.refresh(product)

        logger.info(f"Created product {product.id} with slug {product.slug}")
        return product

    def update(self, product_id: str, data: Mapping[str, Any]) -> Product:
        """Apply a partial update.

        Only keys present in ``data`` and listed in UPDATE_FIELDS are copied;
        everything else on the product is left as it was.
        A None for one of the REQUIRED_FIELDS is skipped, and None images
        clear the image list.
        """
        product = self._get(product_id)

        category_id = data.get("category_id")
        if category_id is not None and category_id != product.category_id:
            self._ensure_category(category_id)

        slug = data.get("slug")
        if slug is not None and slug != product.slug:
            if self.queries.slug_taken(slug, exclude_id=product.id):
                raise SlugConflictError(slug)

        for key, value in data.items():
            if key not in UPDATE_FIELDS:
                continue
            if value is None and key in REQUIRED_FIELDS:
                continue
            setattr(product, key, list(value or []) if key == "images" else value)

        if "stock_quantity" in data and data["stock_quantity"] is not None:
            product.in_stock = data["stock_quantity"] > 0
        if "tags" in data:
            product.tags = set(data["tags"] or [])

        self._commit(f"product {product_id} update")
        self.db.refresh(product)

        logger.info(f"Updated product {product_id}")
        return product

    # -- deletes ---------------------------------------------------------

    def soft_delete(self, product_id: str) -> bool:
        """Mark the product inactive; False when no such product exists."""
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        self._commit(f"product {product_id} soft delete")
        deleted = result.rowcount == 1
        if deleted:
            logger.info(f"Soft deleted product {product_id}")
        return deleted

    def hard_delete(self, product_id: str) -> bool:
        """Physically remove the product row and its tags. Irreversible."""
        self.db.execute(
            delete(ProductTag)
            .where(ProductTag.product_id == product_id)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(Product)
            .where(Product.id == product_id)
            .execution_options(synchronize_session=False)
        )
        self._commit(f"product {product_id} hard delete")
        deleted = result.rowcount == 1
        if deleted:
            logger.info(f"Hard deleted product {product_id}")
        return deleted

    # -- counters --------------------------------------------------------

    def update_stock(self, product_id: str, quantity: int) -> Product:
        """Set the stock level and availability flag in one statement."""
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=quantity, in_stock=quantity > 0)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise ProductNotFoundError(product_id)
        self._commit(f"product {product_id} stock update")

        logger.info(f"Set stock of product {product_id} to {quantity}")
        return self._get(product_id)

    def increment_view(self, product_id: str) -> bool:
        """Atomically add one to the view counter."""
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(view_count=Product.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        self._commit(f"product {product_id} view increment")
        return result.rowcount == 1

    def update_rating(self, product_id: str, rating: float, review_count: int) -> Product:
        """Store precomputed aggregate rating values."""
        product = self._get(product_id)
        product.rating = rating
        product.review_count = review_count
        self._commit(f"product {product_id} rating update")
        self.db.refresh(product)
        return product

    # -- images ----------------------------------------------------------

    def add_images(self, product_id: str, urls: Iterable[str]) -> Product:
        product = self._get(product_id)
        product.images = [*(product.images or []), *urls]
        self._commit(f"product {product_id} image append")
        self.db.refresh(product)
        return product

    def remove_image(self, product_id: str, url: str) -> Product:
        product = self._get(product_id)
        product.images = [image for image in product.images or [] if image != url]
        self._commit(f"product {product_id} image removal")
        self.db.refresh(product)
        return product

    def reorder_images(self, product_id: str, urls: Iterable[str]) -> Product:
        """Replace the image sequence with a reordering of the current images.

        URLs the product does not already have, and URLs listed twice, are
        rejected before anything changes.
        """
        product = self._get(product_id)
        ordered = list(urls)

        unknown = set(ordered) - set(product.images or [])
        if unknown:
            raise UnknownImagesError(unknown)
        duplicates = {url for url in ordered if ordered.count(url) > 1}
        if duplicates:
            raise DuplicateImagesError(duplicates)

        product.images = ordered
        self._commit(f"product {product_id} image reorder")
        self.db.refresh(product)
        return product
