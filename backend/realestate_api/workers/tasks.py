import logging

from realestate_api.core.config import get_settings
from realestate_api.core.database import SessionLocal
from realestate_api.services.audit import audit_event
from realestate_api.services.bookings import referenced_id_images, sweep_expired_reservations
from realestate_api.services.uploads import UploadType, cleanup_old_files
from realestate_api.workers.celery_app import celery_app

logger = logging.getLogger(__name__)
settings = get_settings()


@celery_app.task
def sweep_expired_reservations_task() -> dict:
    db = SessionLocal()
    try:
        cancelled = sweep_expired_reservations(db)
        if cancelled:
            audit_event(db, "reservations_swept", "reservation", details=str(cancelled))
        return {"status": "ok", "cancelled": cancelled}
    finally:
        db.close()


@celery_app.task
def cleanup_general_uploads() -> dict:
    db = SessionLocal()
    try:
        in_use = referenced_id_images(db)
    finally:
        db.close()
    deleted = cleanup_old_files(UploadType.GENERAL, settings.UPLOAD_RETENTION_DAYS, keep=in_use)
    return {"status": "ok", "deleted": deleted}
