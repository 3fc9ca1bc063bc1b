"""SQLAlchemy model for catalog categories.

Categories are managed elsewhere; the catalog service only reads them.
"""

import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.types import DateTime

from catalog.db.base import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    slug = Column(String(150), nullable=False, unique=True)
    description = Column(Text)
    image_url = Column(String(500))
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    parent_id = Column(String(36), ForeignKey("categories.id"), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("ix_categories_sort_order", "sort_order"),)
