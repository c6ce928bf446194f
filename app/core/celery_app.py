from celery import Celery
from celery.signals import setup_logging as celery_setup_logging
from app.core.config import settings
from app.core.logging_config import setup_logging
import sys

# Create Celery app
celery_app = Celery(
    "casfod_workflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.workers.celery_tasks.notification_tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=3600,
    task_ignore_result=True,
    task_routes={
        "app.workers.celery_tasks.notification_tasks.*": {"queue": "notifications"},
    }
)

# Windows-specific configuration
if sys.platform == 'win32':
    celery_app.conf.update(
        worker_pool='threads',
        worker_concurrency=4
    )


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the application logging config instead of Celery's own"""
    setup_logging()
