"""
Celery application factory.
"""

from celery import Celery
from celery.signals import worker_process_init

from fileproc.core.logging import setup_logging

celery_app = Celery("fileproc")
celery_app.config_from_object("celeryconfig")

# Auto-discover tasks in these modules
celery_app.autodiscover_tasks([
    "fileproc.tasks.processing_tasks",
    "fileproc.tasks.maintenance_tasks",
    "fileproc.tasks.notification_tasks",
])


@worker_process_init.connect
def _configure_worker_logging(**kwargs) -> None:
    setup_logging()
