"""SQLAlchemy model for product records."""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.orm import relationship
from sqlalchemy.types import DateTime

from catalog.db.base import Base

JSONType = JSON().with_variant(JSONB, "postgresql")


class ProductTag(Base):
    __tablename__ = "product_tags"

    product_id = Column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag = Column(String(100), primary_key=True)

    __table_args__ = (Index("ix_product_tags_tag", "tag"),)


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    slug = Column(String(250), nullable=False, unique=True)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False, index=True)
    original_price = Column(Numeric(10, 2, asdecimal=False))
    currency = Column(String(3), nullable=False, default="USD")
    stock_quantity = Column(Integer, nullable=False, default=0)
    in_stock = Column(Boolean, nullable=False, default=False, index=True)
    sku = Column(String(50), index=True)
    rating = Column(Numeric(3, 2, asdecimal=False), nullable=False, default=0, index=True)
    review_count = Column(Integer, nullable=False, default=0)
    view_count = Column(Integer, nullable=False, default=0)
    badge = Column(String(50))
    brand = Column(String(100), index=True)
    images = Column(JSONType, nullable=False, default=list)
    specifications = Column(JSONType)
    variants = Column(JSONType)
    dimensions = Column(JSONType)
    weight = Column(Numeric(5, 2, asdecimal=False))
    weight_unit = Column(String(50))
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    published_at = Column(DateTime(timezone=True))
    sort_order = Column(Integer, nullable=False, default=0)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    category = relationship("Category")
    tag_links = relationship(
        ProductTag,
        collection_class=set,
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    tags = association_proxy(
        "tag_links", "tag", creator=lambda tag: ProductTag(tag=tag)
    )

    __table_args__ = (
        Index("ix_products_category_active_stock", "category_id", "is_active", "in_stock"),
        Index("ix_products_active_price", "is_active", "price"),
    )

    @property
    def is_on_sale(self) -> bool:
        return bool(self.original_price and self.original_price > self.price)

    @property
    def discount_percentage(self) -> int:
        if not self.original_price or self.original_price <= self.price:
            return 0
        return round((self.original_price - self.price) / self.original_price * 100)

    @property
    def main_image(self) -> str | None:
        return self.images[0] if self.images else None
