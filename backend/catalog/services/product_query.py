"""Read-side product queries: filtered, sorted, paginated listings and lookups.

Nothing in this module writes to the database or keeps state between calls;
every call goes to the store.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from sqlalchemy import ColumnElement, Select, func, or_, select
from sqlalchemy.orm import Session, joinedload

from catalog.db.models import Category, Product, ProductTag

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100
# Keeps LIMIT/OFFSET inside a signed 64-bit integer
MAX_OFFSET = 2**62

SORT_FIELDS = {
    "price": Product.price,
    "rating": Product.rating,
    "created_at": Product.created_at,
    "title": Product.title,
    "view_count": Product.view_count,
}
SORT_DIRECTIONS = ("ASC", "DESC")


@dataclass
class ProductFilters:
    category_id: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    in_stock: bool | None = None
    is_active: bool = True
    brand: str | None = None
    search: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class ProductSort:
    field: str = "created_at"
    direction: str = "DESC"

    def __post_init__(self) -> None:
        self.direction = self.direction.upper()
        if self.field not in SORT_FIELDS:
            raise ValueError(
                f"Unsupported sort field '{self.field}'. Expected one of: {', '.join(SORT_FIELDS)}"
            )
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(f"Sort direction must be ASC or DESC, got '{self.direction}'")


@dataclass
class Pagination:
    """Offset pagination window; out-of-range values are clamped."""

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    max_limit: int = MAX_PAGE_SIZE

    def __post_init__(self) -> None:
        self.page = max(1, self.page)
        self.limit = min(self.max_limit, max(1, self.limit))

    @property
    def offset(self) -> int:
        return min((self.page - 1) * self.limit, MAX_OFFSET)


@dataclass
class ProductPage:
    items: list[Product]
    total: int
    page: int
    limit: int
    total_pages: int


def _contains_pattern(term: str) -> str:
    """Build a LIKE pattern that matches ``term`` literally anywhere."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ProductQueryService:
    """Compose product reads against the given session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _conditions(self, filters: ProductFilters) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = [Product.is_active == filters.is_active]

        if filters.category_id:
            conditions.append(Product.category_id == filters.category_id)
        if filters.in_stock:
            # Both flags are checked so a drifted row never shows as available
            conditions.append(Product.in_stock.is_(True))
            conditions.append(Product.stock_quantity > 0)
        if filters.min_price is not None:
            conditions.append(Product.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Product.price <= filters.max_price)
        if filters.brand:
            conditions.append(func.lower(Product.brand) == filters.brand.lower())
        if filters.search:
            pattern = _contains_pattern(filters.search)
            conditions.append(
                or_(
                    Product.title.ilike(pattern, escape="\\"),
                    Product.description.ilike(pattern, escape="\\"),
                )
            )
        if filters.tags:
            conditions.append(Product.tag_links.any(ProductTag.tag.in_(filters.tags)))
        return conditions

    def find_all(
        self,
        filters: ProductFilters | None = None,
        sort: ProductSort | None = None,
        pagination: Pagination | None = None,
    ) -> ProductPage:
        """Return one page of products matching ``filters``.

        ``total`` counts the whole filtered set, before the page window.
        """
        filters = filters or ProductFilters()
        sort = sort or ProductSort()
        pagination = pagination or Pagination()
        conditions = self._conditions(filters)

        total = self.db.scalar(select(func.count(Product.id)).where(*conditions)) or 0

        column = SORT_FIELDS[sort.field]
        query = (
            select(Product)
            .options(joinedload(Product.category))
            .where(*conditions)
            .order_by(column.asc() if sort.direction == "ASC" else column.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        items = list(self.db.scalars(query).unique().all())

        return ProductPage(
            items=items,
            total=total,
            page=pagination.page,
            limit=pagination.limit,
            total_pages=math.ceil(total / pagination.limit),
        )

    def find_by_id(self, product_id: str) -> Product | None:
        """Fetch a single product with its category, including inactive ones."""
        return self.db.scalar(
            select(Product)
            .options(joinedload(Product.category))
            .where(Product.id == product_id)
        )

    def find_by_slug(self, slug: str) -> Product | None:
        return self.db.scalar(
            select(Product)
            .options(joinedload(Product.category))
            .where(Product.slug == slug)
        )

    def _available(self) -> Select[tuple[Product]]:
        return (
            select(Product)
            .options(joinedload(Product.category))
            .where(Product.is_active.is_(True), Product.in_stock.is_(True))
        )

    def search(self, term: str, limit: int = 20) -> list[Product]:
        """Free-text lookup over title, description and brand of available products."""
        pattern = _contains_pattern(term)
        query = (
            self._available()
            .where(
                or_(
                    Product.title.ilike(pattern, escape="\\"),
                    Product.description.ilike(pattern, escape="\\"),
                    Product.brand.ilike(pattern, escape="\\"),
                )
            )
            .order_by(Product.rating.desc(), Product.view_count.desc())
            .limit(max(1, limit))
        )
        return list(self.db.scalars(query).unique().all())

    def featured(self, limit: int = 8) -> list[Product]:
        query = (
            self._available()
            .order_by(Product.rating.desc(), Product.view_count.desc())
            .limit(max(1, limit))
        )
        return list(self.db.scalars(query).unique().all())

    def by_category(self, category_id: str, limit: int | None = None) -> list[Product]:
        query = (
            self._available()
            .where(Product.category_id == category_id)
            .order_by(Product.created_at.desc())
        )
        if limit:
            query = query.limit(limit)
        return list(self.db.scalars(query).unique().all())

    def category_exists(self, category_id: str) -> bool:
        return (
            self.db.scalar(select(Category.id).where(Category.id == category_id))
            is not None
        )

    def slug_taken(self, slug: str, exclude_id: str | None = None) -> bool:
        """Whether any product (active or not) other than ``exclude_id`` owns ``slug``."""
        query = select(Product.id).where(Product.slug == slug)
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        return self.db.scalar(query.limit(1)) is not None
