"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Run a worker with:
    celery -A qrmenu.celery_worker.celery_app worker --loglevel=info
"""

from celery import Celery

from qrmenu.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "qrmenu_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["qrmenu.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Inline execution for tests and single-process development
    task_always_eager=settings.celery_task_always_eager,
    task_eager_propagates=False,
    task_store_eager_result=False,

    # Worker settings
    worker_prefetch_multiplier=1,  # One workbook write at a time per process
    worker_concurrency=4,

    result_expires=3600,

    task_acks_late=True,  # Acknowledge task after completion
    task_reject_on_worker_lost=True,  # Requeue task if worker dies

    broker_connection_retry_on_startup=True,
)


if __name__ == "__main__":
    celery_app.start()
