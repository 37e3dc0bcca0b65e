"""File-typed property values: the stored value is the JSON metadata of one upload."""

import json
import logging
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy.orm import Session

from realestate_api.core.errors import NotFoundError, ValidationError
from realestate_api.models.property import Property, PropertyDataType, PropertyValue
from realestate_api.models.real_estate import RealEstate
from realestate_api.schemas.property import PropertyFileInfo
from realestate_api.services.properties import decode_value, load_allowed_values
from realestate_api.services.uploads import UploadType, check_storage, delete_stored, discard, save_upload

logger = logging.getLogger(__name__)


def get_file_property(db: Session, listing: RealEstate, property_id: int) -> Property:
    prop = db.query(Property).filter(Property.id == property_id).first()
    if not prop:
        raise NotFoundError("Property definition not found", code="PROPERTY_DEFINITION_NOT_FOUND")
    if prop.data_type != PropertyDataType.FILE:
        raise ValidationError(f"Property '{prop.property_key}' is not a file property", code="NOT_FILE_PROPERTY")
    if prop.final_type_id != listing.final_type_id:
        raise ValidationError(
            f"Property '{prop.property_key}' does not belong to this listing's final type",
            code="PROPERTY_MISMATCH",
        )
    return prop


def check_allowed(prop: Property, upload: UploadFile) -> None:
    policy = load_allowed_values(prop.allowed_values) or {}
    extension = Path(upload.filename or "").suffix.lower()
    extensions = policy.get("extensions") or []
    mime_types = policy.get("mime_types") or []
    if extensions and extension not in extensions:
        raise ValidationError(
            f"File extension '{extension or 'none'}' not allowed. Allowed: {', '.join(extensions)}",
            code="INVALID_FILE_TYPE",
        )
    if mime_types and (upload.content_type or "").lower() not in mime_types:
        raise ValidationError(
            f"File type {upload.content_type} not allowed. Allowed: {', '.join(mime_types)}",
            code="INVALID_FILE_TYPE",
        )


def _value_row(db: Session, listing_id: int, property_id: int) -> PropertyValue | None:
    return (
        db.query(PropertyValue)
        .filter(PropertyValue.real_estate_id == listing_id, PropertyValue.property_id == property_id)
        .first()
    )


def file_info(listing_id: int, prop: Property, row: PropertyValue) -> PropertyFileInfo | None:
    meta = decode_value(prop, row.value) or {}
    if not meta.get("filename"):
        return None
    return PropertyFileInfo(
        real_estate_id=listing_id,
        property_id=prop.id,
        property_key=prop.property_key,
        filename=meta["filename"],
        original_name=meta.get("original_name"),
        mime_type=meta.get("mime_type"),
        size=meta.get("size"),
        url=meta.get("url") or "",
    )


def attach_file(db: Session, listing: RealEstate, prop: Property, upload: UploadFile) -> PropertyFileInfo:
    """Store ``upload`` as the value of ``prop`` on ``listing``, replacing any previous file."""
    check_allowed(prop, upload)
    check_storage()
    stored = save_upload(upload, UploadType.PROPERTIES, subfolder=prop.property_key)
    max_size = (load_allowed_values(prop.allowed_values) or {}).get("max_size")
    if max_size and stored.size > max_size:
        discard([stored])
        raise ValidationError(f"File too large. Maximum size is {max_size} bytes", code="FILE_TOO_LARGE")

    meta = {
        "filename": stored.filename,
        "original_name": stored.original_name,
        "mime_type": stored.mime_type,
        "size": stored.size,
        "url": stored.url,
    }
    previous = None
    try:
        row = _value_row(db, listing.id, prop.id)
        if row is None:
            row = PropertyValue(real_estate_id=listing.id, property_id=prop.id, value="")
            db.add(row)
        else:
            previous = (decode_value(prop, row.value) or {}).get("filename")
        row.value = json.dumps(meta, ensure_ascii=False)
        db.commit()
    except Exception:
        db.rollback()
        discard([stored])
        raise

    if previous and previous != stored.filename:
        delete_stored(UploadType.PROPERTIES, previous, prop.property_key)
    db.refresh(row)
    logger.info("attached %s to listing %s property %s", stored.filename, listing.id, prop.property_key)
    return file_info(listing.id, prop, row)


def detach_file(db: Session, listing: RealEstate, prop: Property) -> None:
    row = _value_row(db, listing.id, prop.id)
    if row is None:
        raise NotFoundError("No file stored for this property", code="FILE_NOT_FOUND")
    filename = (decode_value(prop, row.value) or {}).get("filename")
    db.delete(row)
    db.commit()
    if filename:
        delete_stored(UploadType.PROPERTIES, filename, prop.property_key)


def get_file(db: Session, listing: RealEstate, prop: Property) -> PropertyFileInfo:
    row = _value_row(db, listing.id, prop.id)
    info = file_info(listing.id, prop, row) if row else None
    if info is None:
        raise NotFoundError("No file stored for this property", code="FILE_NOT_FOUND")
    return info


def list_files(db: Session, listing: RealEstate) -> list[PropertyFileInfo]:
    rows = (
        db.query(PropertyValue, Property)
        .join(Property, PropertyValue.property_id == Property.id)
        .filter(PropertyValue.real_estate_id == listing.id, Property.data_type == PropertyDataType.FILE)
        .order_by(Property.display_order, Property.property_name)
        .all()
    )
    infos = (file_info(listing.id, prop, row) for row, prop in rows)
    return [info for info in infos if info is not None]
