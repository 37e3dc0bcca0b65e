import json
import logging
from typing import Any

from sqlalchemy import and_, exists, or_
from sqlalchemy.orm import Session

from realestate_api.core.errors import NotFoundError, ValidationError
from realestate_api.models.building import Building, BuildingItem
from realestate_api.models.category import FinalType, MainType, SubType
from realestate_api.models.location import City, FinalCity, Neighborhood
from realestate_api.models.property import Property, PropertyValue
from realestate_api.models.real_estate import File, RealEstate
from realestate_api.models.user import User, UserRole
from realestate_api.schemas.real_estate import FileResponse, RealEstateResponse, RealEstateSummary, SimilarListing
from realestate_api.services.properties import get_listing_properties, set_listing_properties, stored_file_values
from realestate_api.services.uploads import StoredFile, UploadType, delete_stored, file_url

logger = logging.getLogger(__name__)

SIMILAR_CANDIDATES = 200
NULLABLE_FIELDS = frozenset({"description", "location", "view_time", "payment_method", "final_city_id", "building_id", "building_item_id"})


def parse_json_object(raw: str | None, field: str) -> dict[str, Any]:
    if raw is None or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        raise ValidationError(f"{field} must be a JSON object", code="INVALID_JSON")
    if not isinstance(parsed, dict):
        raise ValidationError(f"{field} must be a JSON object", code="INVALID_JSON")
    return parsed


def get_listing(db: Session, listing_id: int) -> RealEstate:
    listing = db.query(RealEstate).filter(RealEstate.id == listing_id).first()
    if not listing:
        raise NotFoundError("Property not found", code="PROPERTY_NOT_FOUND")
    return listing


def _require(db: Session, model, ident: int | None, label: str):
    row = db.query(model).filter(model.id == ident).first()
    if not row:
        raise ValidationError(f"{label} {ident} does not exist", code="INVALID_REFERENCE")
    return row


def validate_references(db: Session, values: dict[str, Any]) -> None:
    """Check that every referenced taxonomy row exists and that the paths are consistent."""
    neighborhood = _require(db, Neighborhood, values["neighborhood_id"], "Neighborhood")
    _require(db, City, values["city_id"], "City")
    if neighborhood.city_id != values["city_id"]:
        raise ValidationError("Neighborhood does not belong to the selected city", code="INVALID_REFERENCE")
    if values.get("final_city_id"):
        final_city = _require(db, FinalCity, values["final_city_id"], "Final city")
        if final_city.neighborhood_id != neighborhood.id:
            raise ValidationError("Final city does not belong to the selected neighborhood", code="INVALID_REFERENCE")

    _require(db, MainType, values["main_type_id"], "Main type")
    sub_type = _require(db, SubType, values["sub_type_id"], "Sub type")
    if sub_type.main_type_id != values["main_type_id"]:
        raise ValidationError("Sub type does not belong to the selected main type", code="INVALID_REFERENCE")
    final_type = _require(db, FinalType, values["final_type_id"], "Final type")
    if final_type.sub_type_id != sub_type.id:
        raise ValidationError("Final type does not belong to the selected sub type", code="INVALID_REFERENCE")

    if values.get("building_id"):
        _require(db, Building, values["building_id"], "Building")
    if values.get("building_item_id"):
        item = _require(db, BuildingItem, values["building_item_id"], "Building item")
        if values.get("building_id") and item.building_id != values["building_id"]:
            raise ValidationError("Building item does not belong to the selected building", code="INVALID_REFERENCE")


def resolve_company(db: Session, actor: User, requested_company_id: int | None) -> int | None:
    if actor.role == UserRole.COMPANY:
        return actor.id
    if requested_company_id is None:
        return None
    company = db.query(User).filter(User.id == requested_company_id).first()
    if not company or company.role != UserRole.COMPANY or not company.is_active:
        raise ValidationError("company_id must reference an active company account", code="INVALID_COMPANY")
    return company.id


def create_listing(
    db: Session,
    actor: User,
    fields: dict[str, Any],
    cover: StoredFile,
    attachments: list[StoredFile],
    properties: dict[str, Any],
    others: dict[str, Any],
) -> RealEstate:
    validate_references(db, fields)
    company_id = resolve_company(db, actor, fields.pop("company_id", None))
    try:
        listing = RealEstate(
            **fields,
            company_id=company_id,
            cover_image=cover.filename,
            others=json.dumps(others, ensure_ascii=False) if others else None,
        )
        db.add(listing)
        db.flush()
        db.add_all(File(name=stored.filename, real_estate_id=listing.id) for stored in attachments)
        set_listing_properties(db, listing.id, listing.final_type_id, properties, require_all=True)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(listing)
    logger.info("listing %s created by user %s", listing.id, actor.id)
    return listing


def update_listing(db: Session, listing: RealEstate, actor: User, changes: dict[str, Any]) -> RealEstate:
    changes = {k: v for k, v in changes.items() if v is not None or k in NULLABLE_FIELDS or k == "properties"}
    properties = changes.pop("properties", None)
    others = changes.pop("others", None)
    requested_company = changes.pop("company_id", None)

    reference_keys = ("city_id", "neighborhood_id", "final_city_id", "main_type_id", "sub_type_id", "final_type_id", "building_id", "building_item_id")
    if any(key in changes for key in reference_keys):
        merged = {key: changes.get(key, getattr(listing, key)) for key in reference_keys}
        validate_references(db, merged)

    final_type_changed = "final_type_id" in changes and changes["final_type_id"] != listing.final_type_id
    replacing = properties is not None or final_type_changed
    replaced_files = stored_file_values(db, listing.id) if replacing else []
    try:
        for field, value in changes.items():
            setattr(listing, field, value)
        if requested_company is not None and actor.role == UserRole.ADMIN:
            listing.company_id = resolve_company(db, actor, requested_company)
        if others is not None:
            listing.others = json.dumps(others, ensure_ascii=False) if others else None
        if replacing:
            set_listing_properties(db, listing.id, listing.final_type_id, properties)
        db.commit()
    except Exception:
        db.rollback()
        raise
    remove_files_from_disk([(UploadType.PROPERTIES, filename, key) for key, filename in replaced_files])
    db.refresh(listing)
    return listing


def _stored_files_of(db: Session, listing: RealEstate) -> list[tuple[UploadType, str, str]]:
    stored = [(UploadType.REALESTATE, listing.cover_image, "")]
    stored.extend((UploadType.REALESTATE, f.name, "") for f in listing.files)
    stored.extend((UploadType.PROPERTIES, filename, key) for key, filename in stored_file_values(db, listing.id))
    return stored


def remove_files_from_disk(files: list[tuple[UploadType, str, str]]) -> None:
    for upload_type, filename, subfolder in files:
        try:
            delete_stored(upload_type, filename, subfolder)
        except OSError:
            logger.warning("could not delete %s/%s", upload_type.value, filename, exc_info=True)


def delete_listing(db: Session, listing: RealEstate) -> None:
    files = _stored_files_of(db, listing)
    listing_id = listing.id
    db.delete(listing)
    db.commit()
    remove_files_from_disk(files)
    logger.info("listing %s deleted with %d stored files", listing_id, len(files))


def _filter_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_listings(
    db: Session,
    filters: dict[str, Any],
    property_filters: dict[str, Any],
    search: str | None = None,
    min_price: int | None = None,
    max_price: int | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[RealEstate], int]:
    q = db.query(RealEstate)
    for column, value in filters.items():
        if value is not None:
            q = q.filter(getattr(RealEstate, column) == value)
    if search:
        q = q.filter(RealEstate.title.ilike(f"%{search}%"))
    if min_price is not None:
        q = q.filter(RealEstate.price >= min_price)
    if max_price is not None:
        q = q.filter(RealEstate.price <= max_price)

    for key, value in property_filters.items():
        property_ids = [pid for (pid,) in db.query(Property.id).filter(Property.property_key == key, Property.is_filter.is_(True)).all()]
        if not property_ids:
            raise ValidationError(f"'{key}' is not a filterable property", code="INVALID_FILTER")
        text = _filter_text(value)
        pattern = '%"' + _escape_like(text) + '"%'
        q = q.filter(
            exists().where(
                and_(
                    PropertyValue.real_estate_id == RealEstate.id,
                    PropertyValue.property_id.in_(property_ids),
                    or_(PropertyValue.value == text, PropertyValue.value.like(pattern, escape="\\")),
                )
            )
        )

    total = q.count()
    items = q.order_by(RealEstate.created_at.desc(), RealEstate.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return items, total


def similarity_score(base: RealEstate, other: RealEstate) -> int:
    score = 0
    if other.final_type_id == base.final_type_id:
        score += 30
    if other.sub_type_id == base.sub_type_id:
        score += 20
    if other.main_type_id == base.main_type_id:
        score += 10
    if other.city_id == base.city_id:
        score += 15
    if other.neighborhood_id == base.neighborhood_id:
        score += 10
    if base.price and abs(other.price - base.price) <= base.price * 0.2:
        score += 5
    return score


def similar_listings(db: Session, listing: RealEstate, limit: int = 10) -> list[SimilarListing]:
    low, high = int(listing.price * 0.8), int(listing.price * 1.2)
    candidates = (
        db.query(RealEstate)
        .filter(
            RealEstate.id != listing.id,
            or_(
                RealEstate.city_id == listing.city_id,
                RealEstate.final_type_id == listing.final_type_id,
                RealEstate.price.between(low, high),
            ),
        )
        .order_by(RealEstate.created_at.desc())
        .limit(SIMILAR_CANDIDATES)
        .all()
    )
    ranked = sorted(candidates, key=lambda other: similarity_score(listing, other), reverse=True)[:limit]
    return [
        SimilarListing(**listing_summary(other).model_dump(), similarity_score=similarity_score(listing, other))
        for other in ranked
    ]


def file_response(f: File) -> FileResponse:
    return FileResponse(
        id=f.id,
        name=f.name,
        url=file_url(UploadType.REALESTATE, f.name),
        real_estate_id=f.real_estate_id,
        created_at=f.created_at,
    )


def listing_summary(listing: RealEstate) -> RealEstateSummary:
    return RealEstateSummary(
        id=listing.id,
        title=listing.title,
        price=listing.price,
        cover_image=file_url(UploadType.REALESTATE, listing.cover_image),
        city_id=listing.city_id,
        city_name=listing.city.name if listing.city else None,
        neighborhood_id=listing.neighborhood_id,
        neighborhood_name=listing.neighborhood.name if listing.neighborhood else None,
        final_type_id=listing.final_type_id,
        final_type_name=listing.final_type.name if listing.final_type else None,
        company_id=listing.company_id,
        company_name=listing.company.display_name if listing.company else None,
        created_at=listing.created_at,
    )


def listing_response(db: Session, listing: RealEstate) -> RealEstateResponse:
    summary = listing_summary(listing)
    return RealEstateResponse(
        **summary.model_dump(),
        description=listing.description,
        location=listing.location,
        view_time=listing.view_time,
        payment_method=listing.payment_method,
        final_city_id=listing.final_city_id,
        final_city_name=listing.final_city.name if listing.final_city else None,
        main_type_id=listing.main_type_id,
        main_type_name=listing.main_type.name if listing.main_type else None,
        sub_type_id=listing.sub_type_id,
        sub_type_name=listing.sub_type.name if listing.sub_type else None,
        building_id=listing.building_id,
        building_title=listing.building.title if listing.building else None,
        building_item_id=listing.building_item_id,
        building_item_name=listing.building_item.name if listing.building_item else None,
        others=json.loads(listing.others) if listing.others else {},
        files=[file_response(f) for f in listing.files],
        properties=get_listing_properties(db, listing.id),
        updated_at=listing.updated_at,
    )


def add_attachments(db: Session, listing: RealEstate, stored_files: list[StoredFile]) -> list[File]:
    rows = [File(name=stored.filename, real_estate_id=listing.id) for stored in stored_files]
    try:
        db.add_all(rows)
        db.commit()
    except Exception:
        db.rollback()
        raise
    for row in rows:
        db.refresh(row)
    return rows


def get_attachment(db: Session, file_id: int) -> File:
    row = db.query(File).filter(File.id == file_id).first()
    if not row:
        raise NotFoundError("File not found", code="FILE_NOT_FOUND")
    return row


def remove_attachment(db: Session, row: File) -> None:
    name = row.name
    db.delete(row)
    db.commit()
    remove_files_from_disk([(UploadType.REALESTATE, name, "")])
