"""Celery application used to hand follow-up work to background workers.

Only the producer side lives here. Workers register the ``distribution`` and
``federation_notification`` tasks under the same names and consume the queue
named by ``settings.job_queue``.
"""

from celery import Celery

from ebb_stage.core.settings import settings

celery_app = Celery("ebb_stage", broker=settings.job_broker_url)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Results are never read back by this service
    task_ignore_result=True,
    task_default_queue=settings.job_queue,
    # Delivery
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    broker_connection_retry_on_startup=True,
)
