"""Catalog endpoints: listing, lookups and admin writes for products."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status

from catalog.api.dependencies.services import (
    get_app_settings,
    get_product_mutations,
    get_product_queries,
)
from catalog.api.schemas.envelope import ApiResponse
from catalog.api.schemas.product import (
    ImageList,
    ProductCreate,
    ProductPageRead,
    ProductRead,
    ProductUpdate,
    RatingUpdate,
    StockUpdate,
)
from catalog.core.config import Settings
from catalog.core.errors import ErrorFactory, NotFoundError
from catalog.db.models import Product
from catalog.services.product_mutations import ProductMutationService
from catalog.services.product_query import (
    Pagination,
    ProductFilters,
    ProductQueryService,
    ProductSort,
)
from catalog.workers.tasks.product_views import increment_view_count

logger = logging.getLogger(__name__)

router = APIRouter()


def _read(product: Product) -> ProductRead:
    return ProductRead.model_validate(product)


def _record_view(
    product_id: str,
    settings: Settings,
    mutations: ProductMutationService,
) -> None:
    """Count a product view inline, or hand it to the worker when configured."""
    if not settings.view_count_async:
        mutations.increment_view(product_id)
        return
    try:
        increment_view_count.delay(product_id)
    except Exception as e:
        # A lost view must not fail the read
        logger.warning(f"Could not enqueue view increment for {product_id}: {e}")


def _parse_sort(sort_field: str, sort_direction: str) -> ProductSort:
    try:
        return ProductSort(field=sort_field, direction=sort_direction)
    except ValueError as e:
        field = "sort_direction" if "direction" in str(e) else "sort_field"
        raise ErrorFactory.from_validation_failure(
            [{"field": field, "message": str(e), "code": "invalid_choice"}]
        ) from e


@router.get(
    "/",
    summary="List products with filters, sorting and pagination",
    response_model=ApiResponse[ProductPageRead],
)
def list_products(
    page: int = Query(1, description="Page number (1-indexed); values below 1 become 1"),
    limit: int | None = Query(None, description="Items per page, clamped to 1..100"),
    category_id: str | None = Query(None),
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    in_stock: str | None = Query(None, description="'true' to list only available products"),
    is_active: str | None = Query(None, description="'false' to list soft-deleted products"),
    brand: str | None = Query(None, description="Exact brand, case-insensitive"),
    search: str | None = Query(None, description="Substring of title or description"),
    tags: str | None = Query(None, description="Comma-separated tags; any overlap matches"),
    sort_field: str = Query("created_at"),
    sort_direction: str = Query("DESC"),
    settings: Settings = Depends(get_app_settings),
    queries: ProductQueryService = Depends(get_product_queries),
) -> ApiResponse[ProductPageRead]:
    """Return one page of the catalog.

    Filters are combined with AND logic. Only active products are listed
    unless ``is_active=false`` is passed explicitly.
    """
    filters = ProductFilters(
        category_id=category_id or None,
        min_price=min_price,
        max_price=max_price,
        in_stock=in_stock == "true",
        is_active=is_active != "false",
        brand=brand or None,
        search=search or None,
        tags=[tag.strip() for tag in tags.split(",") if tag.strip()] if tags else [],
    )
    sort = _parse_sort(sort_field, sort_direction)
    pagination = Pagination(
        page=page,
        limit=limit if limit is not None else settings.default_page_size,
        max_limit=settings.max_page_size,
    )

    result = queries.find_all(filters, sort, pagination)
    return ApiResponse(data=ProductPageRead.model_validate(result))


@router.get(
    "/featured",
    summary="Top rated available products",
    response_model=ApiResponse[list[ProductRead]],
)
def featured_products(
    limit: int = Query(8, ge=1, le=100),
    queries: ProductQueryService = Depends(get_product_queries),
) -> ApiResponse[list[ProductRead]]:
    return ApiResponse(data=[_read(p) for p in queries.featured(limit)])


@router.get(
    "/search",
    summary="Search available products by title, description or brand",
    response_model=ApiResponse[list[ProductRead]],
)
def search_products(
    q: str | None = Query(None, description="Search term"),
    limit: int = Query(20, ge=1, le=100),
    queries: ProductQueryService = Depends(get_product_queries),
) -> ApiResponse[list[ProductRead]]:
    if not q or not q.strip():
        raise ErrorFactory.from_validation_failure(
            [{"field": "q", "message": "Search term is required", "code": "missing"}],
            message="Search term is required",
        )
    return ApiResponse(data=[_read(p) for p in queries.search(q.strip(), limit)])


@router.get(
    "/category/{category_id}",
    summary="Available products in a category, newest first",
    response_model=ApiResponse[list[ProductRead]],
)
def products_by_category(
    category_id: str,
    limit: int | None = Query(None, ge=1, le=100),
    queries: ProductQueryService = Depends(get_product_queries),
) -> ApiResponse[list[ProductRead]]:
    return ApiResponse(data=[_read(p) for p in queries.by_category(category_id, limit)])


@router.get(
    "/slug/{slug}",
    summary="Get a product by slug",
    response_model=ApiResponse[ProductRead],
)
def get_product_by_slug(
    slug: str,
    settings: Settings = Depends(get_app_settings),
    queries: ProductQueryService = Depends(get_product_queries),
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[ProductRead]:
    """Public product page lookup. Every successful fetch counts as a view."""
    product = queries.find_by_slug(slug)
    if product is None:
        raise NotFoundError("Product")
    data = _read(product)
    _record_view(product.id, settings, mutations)
    return ApiResponse(data=data)


@router.get(
    "/{product_id}",
    summary="Get a product by id",
    response_model=ApiResponse[ProductRead],
)
def get_product(
    product_id: str,
    settings: Settings = Depends(get_app_settings),
    queries: ProductQueryService = Depends(get_product_queries),
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[ProductRead]:
    """Fetch a product, including soft-deleted ones. Counts as a view."""
    product = queries.find_by_id(product_id)
    if product is None:
        raise NotFoundError("Product")
    data = _read(product)
    _record_view(product.id, settings, mutations)
    return ApiResponse(data=data)


@router.post(
    "/",
    summary="Create a product",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ProductRead],
)
def create_product(
    payload: ProductCreate,
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[ProductRead]:
    """Persist a product. The slug must be unused and the category must exist."""
    product = mutations.create(payload.model_dump())
    return ApiResponse(data=_read(product), message="Product created successfully")


@router.put(
    "/{product_id}",
    summary="Update a product",
    response_model=ApiResponse[ProductRead],
)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[ProductRead]:
    """Partial update: only the fields present in the body are changed."""
    product = mutations.update(product_id, payload.model_dump(exclude_unset=True))
    return ApiResponse(data=_read(product), message="Product updated successfully")


@router.patch(
    "/{product_id}/stock",
    summary="Set stock quantity",
    response_model=ApiResponse[ProductRead],
)
def update_stock(
    product_id: str,
    payload: StockUpdate,
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[ProductRead]:
    product = mutations.update_stock(product_id, payload.quantity)
    return ApiResponse(data=_read(product), message="Stock updated successfully")


@router.patch(
    "/{product_id}/rating",
    summary="Store aggregate rating values",
    response_model=ApiResponse[ProductRead],
)
def update_rating(
    product_id: str,
    payload: RatingUpdate,
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[ProductRead]:
    product = mutations.update_rating(product_id, payload.rating, payload.review_count)
    return ApiResponse(data=_read(product), message="Rating updated successfully")


@router.delete(
    "/{product_id}",
    summary="Delete product (soft delete)",
    response_model=ApiResponse[None],
)
def delete_product(
    product_id: str,
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[None]:
    """Mark the product inactive. It stays reachable by id."""
    if not mutations.soft_delete(product_id):
        raise NotFoundError("Product")
    return ApiResponse(message="Product deleted successfully")


@router.delete(
    "/{product_id}/permanent",
    summary="Delete product permanently",
    response_model=ApiResponse[None],
)
def hard_delete_product(
    product_id: str,
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[None]:
    if not mutations.hard_delete(product_id):
        raise NotFoundError("Product")
    return ApiResponse(message="Product permanently deleted")


@router.post(
    "/{product_id}/images",
    summary="Append images",
    response_model=ApiResponse[ProductRead],
)
def add_images(
    product_id: str,
    payload: ImageList,
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[ProductRead]:
    product = mutations.add_images(product_id, payload.urls)
    return ApiResponse(data=_read(product), message="Images added successfully")


@router.delete(
    "/{product_id}/images",
    summary="Remove an image",
    response_model=ApiResponse[ProductRead],
)
def remove_image(
    product_id: str,
    url: str = Query(..., min_length=1),
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[ProductRead]:
    product = mutations.remove_image(product_id, url)
    return ApiResponse(data=_read(product), message="Image removed successfully")


@router.put(
    "/{product_id}/images/order",
    summary="Reorder images",
    response_model=ApiResponse[ProductRead],
)
def reorder_images(
    product_id: str,
    payload: ImageList,
    mutations: ProductMutationService = Depends(get_product_mutations),
) -> ApiResponse[ProductRead]:
    """Replace the image order. Only images the product already has are accepted."""
    product = mutations.reorder_images(product_id, payload.urls)
    return ApiResponse(data=_read(product), message="Images reordered successfully")
