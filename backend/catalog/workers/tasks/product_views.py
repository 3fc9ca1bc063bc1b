"""Celery task for deferred product view counting."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from catalog.db.session import get_fresh_session
from catalog.services.product_mutations import ProductMutationService
from catalog.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="catalog.workers.tasks.increment_view_count",
    autoretry_for=(SQLAlchemyError,),
    retry_backoff=True,
    max_retries=3,
)
def increment_view_count(self, product_id: str) -> bool:
    """Add one view to the product.

    Uses the same single-statement increment as the inline path, so retried
    or concurrent deliveries never overwrite each other.

    Returns:
        False when the product no longer exists.
    """
    session = get_fresh_session()
    try:
        counted = ProductMutationService(session).increment_view(product_id)
        if not counted:
            logger.warning(f"View for unknown product {product_id} dropped")
        return counted
    finally:
        session.close()
