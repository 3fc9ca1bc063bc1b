"""Pydantic models describing Product payloads."""

from collections.abc import Iterable
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"

ImageUrl = Annotated[str, Field(pattern=r"^https?://\S+$", max_length=2048)]
Tag = Annotated[str, Field(min_length=1, max_length=100)]

NOT_NULL_FIELDS = (
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
)


class Dimensions(BaseModel):
    length: float | None = Field(None, gt=0)
    width: float | None = Field(None, gt=0)
    height: float | None = Field(None, gt=0)
    unit: str | None = Field(None, max_length=10)


class ProductBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, max_length=250, description="Unique public identifier")
    price: float = Field(..., gt=0)
    original_price: float | None = Field(None, gt=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    stock_quantity: int = Field(..., ge=0)
    sku: str | None = Field(None, max_length=50)
    category_id: str = Field(..., pattern=UUID_PATTERN)
    images: list[ImageUrl] | None = None
    specifications: dict[str, Any] | None = None
    variants: dict[str, Any] | None = None
    brand: str | None = Field(None, max_length=100)
    weight: float | None = Field(None, gt=0)
    weight_unit: str | None = Field(None, max_length=50)
    dimensions: Dimensions | None = None
    tags: list[Tag] | None = None
    badge: str | None = Field(None, max_length=50)


class ProductCreate(ProductBase):
    """Schema for admin-created products."""


class ProductUpdate(BaseModel):
    """Partial update; only fields sent by the client are applied."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    slug: str | None = Field(None, min_length=1, max_length=250)
    price: float | None = Field(None, gt=0)
    original_price: float | None = Field(None, gt=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    stock_quantity: int | None = Field(None, ge=0)
    sku: str | None = Field(None, max_length=50)
    category_id: str | None = Field(None, pattern=UUID_PATTERN)
    images: list[ImageUrl] | None = None
    specifications: dict[str, Any] | None = None
    variants: dict[str, Any] | None = None
    brand: str | None = Field(None, max_length=100)
    weight: float | None = Field(None, gt=0)
    weight_unit: str | None = Field(None, max_length=50)
    dimensions: Dimensions | None = None
    tags: list[Tag] | None = None
    badge: str | None = Field(None, max_length=50)
    is_active: bool | None = None
    rating: float | None = Field(None, ge=0, le=5)
    review_count: int | None = Field(None, ge=0)
    published_at: datetime | None = None

    @field_validator(*NOT_NULL_FIELDS, mode="after")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        # Omit a field to leave it unchanged; null cannot clear a required column
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class StockUpdate(BaseModel):
    quantity: int = Field(..., ge=0)


class RatingUpdate(BaseModel):
    rating: float = Field(..., ge=0, le=5)
    review_count: int = Field(..., ge=0)


class ImageList(BaseModel):
    urls: list[ImageUrl] = Field(..., min_length=1)


class CategoryRead(BaseModel):
    id: str
    name: str
    slug: str

    model_config = {"from_attributes": True}


class ProductRead(BaseModel):
    id: str
    title: str
    description: str
    slug: str
    price: float
    original_price: float | None = None
    currency: str
    stock_quantity: int
    in_stock: bool
    sku: str | None = None
    rating: float
    review_count: int
    view_count: int
    badge: str | None = None
    brand: str | None = None
    images: list[str]
    specifications: dict[str, Any] | None = None
    variants: dict[str, Any] | None = None
    dimensions: dict[str, Any] | None = None
    weight: float | None = None
    weight_unit: str | None = None
    tags: list[str]
    is_active: bool
    published_at: datetime | None = None
    category_id: str
    category: CategoryRead | None = None
    is_on_sale: bool
    discount_percentage: int
    main_image: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("tags", mode="before")
    @classmethod
    def sort_tags(cls, v: Iterable[str] | None) -> list[str]:
        return sorted(v) if v is not None else []

    @field_validator("images", mode="before")
    @classmethod
    def default_images(cls, v: Iterable[str] | None) -> list[str]:
        return list(v) if v is not None else []


class ProductPageRead(BaseModel):
    items: list[ProductRead]
    total: int
    page: int
    limit: int
    total_pages: int

    model_config = {"from_attributes": True}
