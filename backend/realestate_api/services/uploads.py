"""Disk storage for uploaded media, partitioned by purpose folder."""

from dataclasses import dataclass
import enum
import logging
from pathlib import Path
import re
import secrets
import time

from fastapi import UploadFile

from realestate_api.core.config import get_settings
from realestate_api.core.errors import StorageFullError, ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
MB = 1024 * 1024


class UploadType(str, enum.Enum):
    REALESTATE = "realestate"
    ICONS = "icons"
    PROPERTIES = "properties"
    GENERAL = "general"


IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})
VIDEO_TYPES = frozenset({"video/mp4", "video/avi", "video/x-msvideo", "video/mov", "video/quicktime"})
DOCUMENT_TYPES = frozenset(
    {
        "application/pdf",
        "application/doc",
        "application/docx",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)


@dataclass(frozen=True)
class UploadPolicy:
    allowed_types: frozenset[str]
    max_bytes: int


POLICIES = {
    UploadType.REALESTATE: UploadPolicy(IMAGE_TYPES | VIDEO_TYPES, 10 * MB),
    UploadType.ICONS: UploadPolicy(IMAGE_TYPES, 2 * MB),
    UploadType.PROPERTIES: UploadPolicy(IMAGE_TYPES | VIDEO_TYPES | DOCUMENT_TYPES, 15 * MB),
    UploadType.GENERAL: UploadPolicy(IMAGE_TYPES, 5 * MB),
}

_SAFE_SEGMENT = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass
class StoredFile:
    upload_type: UploadType
    filename: str
    original_name: str | None
    mime_type: str | None
    size: int
    subfolder: str = ""

    @property
    def path(self) -> Path:
        return folder_for(self.upload_type, self.subfolder) / self.filename

    @property
    def url(self) -> str:
        return file_url(self.upload_type, self.filename, self.subfolder)


def upload_root() -> Path:
    return Path(get_settings().UPLOAD_DIR).resolve()


def _safe_segment(value: str) -> str:
    cleaned = _SAFE_SEGMENT.sub("_", value).strip("._")
    if not cleaned:
        raise ValidationError("Invalid file name", code="INVALID_FILE_NAME")
    return cleaned


def folder_for(upload_type: UploadType, subfolder: str = "") -> Path:
    folder = upload_root() / upload_type.value
    if subfolder:
        folder = folder / _safe_segment(subfolder)
    return folder


def ensure_upload_dirs() -> None:
    for upload_type in UploadType:
        folder_for(upload_type).mkdir(parents=True, exist_ok=True)


def file_url(upload_type: UploadType, filename: str | None, subfolder: str = "") -> str | None:
    if not filename:
        return None
    if filename.startswith("http"):
        return filename
    base = get_settings().PUBLIC_BASE_URL.rstrip("/")
    if subfolder:
        return f"{base}/uploads/{upload_type.value}/{_safe_segment(subfolder)}/{filename}"
    return f"{base}/uploads/{upload_type.value}/{filename}"


def _folder_size(folder: Path) -> int:
    if not folder.exists():
        return 0
    return sum(p.stat().st_size for p in folder.rglob("*") if p.is_file())


def storage_usage() -> dict[str, int]:
    return {upload_type.value: _folder_size(folder_for(upload_type)) for upload_type in UploadType}


def check_storage() -> None:
    used = sum(storage_usage().values())
    limit = get_settings().MAX_STORAGE_BYTES
    if used > limit:
        raise StorageFullError(f"Insufficient storage space ({used} of {limit} bytes used)")


def save_upload(upload: UploadFile, upload_type: UploadType, subfolder: str = "") -> StoredFile:
    policy = POLICIES[upload_type]
    if upload.content_type not in policy.allowed_types:
        allowed = ", ".join(sorted(policy.allowed_types))
        raise ValidationError(
            f"File type {upload.content_type} not allowed. Allowed types: {allowed}",
            code="INVALID_FILE_TYPE",
        )

    folder = folder_for(upload_type, subfolder)
    folder.mkdir(parents=True, exist_ok=True)
    extension = Path(upload.filename or "").suffix.lower()
    filename = f"{int(time.time() * 1000)}-{upload_type.value}-{secrets.token_hex(4)}{extension}"
    target = folder / filename

    size = 0
    with target.open("wb") as out:
        while True:
            chunk = upload.file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > policy.max_bytes:
                out.close()
                target.unlink(missing_ok=True)
                raise ValidationError(
                    f"File too large. Maximum size is {policy.max_bytes // MB}MB",
                    code="FILE_TOO_LARGE",
                )
            out.write(chunk)

    stored = StoredFile(
        upload_type=upload_type,
        filename=filename,
        original_name=upload.filename,
        mime_type=upload.content_type,
        size=size,
        subfolder=subfolder,
    )
    logger.info("stored upload %s (%d bytes)", stored.path, size)
    return stored


def save_uploads(uploads: list[UploadFile], upload_type: UploadType) -> list[StoredFile]:
    if len(uploads) > get_settings().MAX_FILES_PER_REQUEST:
        raise ValidationError("Too many files", code="TOO_MANY_FILES")
    stored: list[StoredFile] = []
    try:
        for upload in uploads:
            stored.append(save_upload(upload, upload_type))
    except Exception:
        discard(stored)
        raise
    return stored


def delete_stored(upload_type: UploadType, filename: str | None, subfolder: str = "") -> bool:
    if not filename or filename.startswith("http"):
        return False
    path = folder_for(upload_type, subfolder) / Path(filename).name
    if not path.exists():
        logger.warning("file not found for deletion: %s", path)
        return False
    path.unlink()
    logger.info("deleted file %s", path)
    return True


def discard(stored_files: list[StoredFile]) -> None:
    """Best-effort removal of files saved for a request that then failed."""
    for stored in stored_files:
        try:
            stored.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("could not remove orphaned upload %s", stored.path, exc_info=True)


def cleanup_old_files(upload_type: UploadType, max_age_days: int, keep: set[str] | None = None) -> int:
    """Delete files older than ``max_age_days``, except those named in ``keep``."""
    folder = folder_for(upload_type)
    if not folder.exists():
        return 0
    keep = keep or set()
    cutoff = time.time() - max_age_days * 24 * 60 * 60
    deleted = 0
    for path in folder.iterdir():
        if path.name in keep:
            continue
        if path.is_file() and path.stat().st_mtime < cutoff:
            path.unlink()
            deleted += 1
    logger.info("cleaned up %d old files from %s", deleted, folder)
    return deleted
