"""Celery application for work deferred off the request path."""

import ssl

from celery import Celery

from catalog.core.config import get_settings
from catalog.utils.redis_client import normalize_redis_url, uses_tls

settings = get_settings()

broker_url = normalize_redis_url(settings.celery_broker_url or settings.redis_url)
backend_url = normalize_redis_url(settings.celery_result_url or settings.redis_url)
is_ssl = uses_tls(broker_url) or uses_tls(backend_url)

# The Redis result backend reads ssl_cert_reqs from the URL at construction time
if is_ssl:
    ssl_param = "ssl_cert_reqs=none"
    if "ssl_cert_reqs" not in broker_url:
        separator = "&" if "?" in broker_url else "?"
        broker_url = f"{broker_url}{separator}{ssl_param}"
    if "ssl_cert_reqs" not in backend_url:
        separator = "&" if "?" in backend_url else "?"
        backend_url = f"{backend_url}{separator}{ssl_param}"

celery_app = Celery(
    "catalog",
    broker=broker_url,
    backend=backend_url,
    include=["catalog.workers.tasks.product_views"],
)

VIEWS_QUEUE = "views"

celery_config = {
    "task_serializer": "json",
    "accept_content": ["json"],
    "result_serializer": "json",
    "timezone": "UTC",
    "enable_utc": True,
    "task_routes": {"catalog.workers.tasks.increment_view_count": {"queue": VIEWS_QUEUE}},
    "task_default_queue": VIEWS_QUEUE,
    "task_acks_late": True,  # Acknowledge after task completion
    "task_reject_on_worker_lost": True,  # Re-queue if worker dies
    "worker_prefetch_multiplier": 1,
    "task_time_limit": 60,
    "task_soft_time_limit": 50,
    # View increments are fire-and-forget
    "task_ignore_result": True,
    "broker_connection_retry_on_startup": True,
    "worker_hijack_root_logger": False,
}

if is_ssl:
    ssl_dict = {"ssl_cert_reqs": ssl.CERT_NONE}
    celery_config["broker_use_ssl"] = ssl_dict
    celery_config["redis_backend_use_ssl"] = ssl_dict

celery_app.conf.update(celery_config)
