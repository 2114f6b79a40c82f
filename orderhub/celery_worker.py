"""
Celery Worker Configuration
Runs cache invalidation off the request path, with Redis as broker and
result backend.

Start a worker for the invalidation queue with:

    celery -A orderhub.celery_worker worker -Q cache_invalidation
"""

from celery import Celery
from kombu import Queue

from orderhub.core.config import get_settings

settings = get_settings()

CACHE_QUEUE = "cache_invalidation"

celery_app = Celery(
    "orderhub",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["orderhub.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Invalidations run on a dedicated queue
    task_queues=(Queue(CACHE_QUEUE),),
    task_default_queue=CACHE_QUEUE,
    task_routes={"orderhub.tasks.invalidate_cache_keys": {"queue": CACHE_QUEUE}},

    # Deletes are idempotent and their results are never read
    worker_prefetch_multiplier=8,
    worker_concurrency=2,
    task_ignore_result=True,
    result_expires=300,

    # Requeue if the worker dies mid-task
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=30,

    broker_connection_retry_on_startup=True,
)


if __name__ == "__main__":
    celery_app.start()
