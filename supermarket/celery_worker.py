# supermarket/celery_worker.py
from celery import Celery

from supermarket.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
)

celery_app = Celery(
    "supermarket",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

#modul z taskiem potwierdzenia zamowienia, worker rejestruje go przy starcie
celery_app.conf.imports = (
    "supermarket.services.notification_service",
)

#testy / lokalnie bez brokera - taski wykonywane od razu w procesie
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
celery_app.conf.task_store_eager_result = False

celery_app.conf.timezone = "UTC"
