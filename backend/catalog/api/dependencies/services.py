"""Service and settings dependencies for the routers."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from catalog.api.dependencies.db import get_session
from catalog.core.config import Settings
from catalog.services.product_mutations import ProductMutationService
from catalog.services.product_query import ProductQueryService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_product_queries(db: Session = Depends(get_session)) -> ProductQueryService:
    return ProductQueryService(db)


def get_product_mutations(
    queries: ProductQueryService = Depends(get_product_queries),
) -> ProductMutationService:
    return ProductMutationService(queries.db, queries)
