# order_engine/celery_worker.py
from celery import Celery

from order_engine.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "order_engine",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks live outside this module; list them so the worker registers them
celery_app.conf.imports = (
    "order_engine.tasks.printing",
    "order_engine.services.notification_service",
)

celery_app.conf.timezone = "UTC"
