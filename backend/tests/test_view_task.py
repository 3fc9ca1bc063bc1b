"""
Tests for the deferred view counting task, run eagerly without a broker.
"""

import pytest

from catalog.db.models import Product
from catalog.workers.celery_app import VIEWS_QUEUE, celery_app
from catalog.workers.tasks import product_views


@pytest.fixture
def worker_session(session_factory, monkeypatch):
    monkeypatch.setattr(product_views, "get_fresh_session", session_factory)


class TestIncrementViewCount:
    def test_counts_one_view(self, worker_session, make_product, session) -> None:
        product = make_product()

        assert product_views.increment_view_count.run(product.id) is True
        assert product_views.increment_view_count.run(product.id) is True

        session.expire_all()
        assert session.get(Product, product.id).view_count == 2

    def test_unknown_product_is_dropped(self, worker_session) -> None:
        assert product_views.increment_view_count.run("missing") is False

    def test_task_is_routed_to_the_views_queue(self) -> None:
        routes = celery_app.conf.task_routes
        assert routes["catalog.workers.tasks.increment_view_count"] == {"queue": VIEWS_QUEUE}
        assert celery_app.conf.task_ignore_result is True
