from celery import Celery

from realestate_api.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "realestate_api",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["realestate_api.workers.tasks"],
)
celery_app.conf.beat_schedule = {
    "sweep-expired-reservations": {
        "task": "realestate_api.workers.tasks.sweep_expired_reservations_task",
        "schedule": settings.RESERVATION_SWEEP_INTERVAL_MINUTES * 60.0,
    },
    "cleanup-general-uploads": {
        "task": "realestate_api.workers.tasks.cleanup_general_uploads",
        "schedule": 24 * 60 * 60.0,
    },
}
celery_app.conf.timezone = "UTC"
