from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_admin
from realestate_api.models.category import FinalType
from realestate_api.models.property import Property, PropertyValue
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.property import (
    ListingPropertyValue,
    PropertyBulkCreate,
    PropertyBulkResult,
    PropertyCreate,
    PropertyGroup,
    PropertyResponse,
    PropertyUpdate,
)
from realestate_api.services.listings import get_listing
from realestate_api.services.properties import (
    bulk_define,
    define_property,
    delete_property,
    get_listing_properties,
    property_response,
    update_property,
)
from realestate_api.services.taxonomy import get_or_404

router = APIRouter(prefix="/properties", tags=["properties"])

_ORDERING = (Property.final_type_id, Property.display_order, Property.property_name)


def _values_count(db: Session, property_id: int) -> int:
    return db.query(func.count(PropertyValue.id)).filter(PropertyValue.property_id == property_id).scalar() or 0


@router.get("", response_model=ApiResponse[list[PropertyResponse]])
def list_properties(
    final_type_id: int | None = Query(default=None),
    group_name: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    q = db.query(Property)
    if final_type_id is not None:
        q = q.filter(Property.final_type_id == final_type_id)
    if group_name:
        q = q.filter(Property.group_name == group_name)
    return ApiResponse(data=[property_response(p) for p in q.order_by(*_ORDERING).all()])


@router.get("/groups", response_model=ApiResponse[list[PropertyGroup]])
def list_groups(final_type_id: int | None = Query(default=None), db: Session = Depends(get_db)):
    q = db.query(Property.group_name, func.count(Property.id))
    if final_type_id is not None:
        q = q.filter(Property.final_type_id == final_type_id)
    rows = q.group_by(Property.group_name).order_by(Property.group_name).all()
    return ApiResponse(data=[PropertyGroup(group_name=name, count=count) for name, count in rows])


@router.get("/filters", response_model=ApiResponse[list[PropertyResponse]])
def list_filters(final_type_id: int | None = Query(default=None), db: Session = Depends(get_db)):
    q = db.query(Property).filter(Property.is_filter.is_(True))
    if final_type_id is not None:
        q = q.filter(Property.final_type_id == final_type_id)
    return ApiResponse(data=[property_response(p) for p in q.order_by(*_ORDERING).all()])


@router.get("/final-type/{final_type_id}", response_model=ApiResponse[list[PropertyResponse]])
def list_final_type_properties(final_type_id: int, db: Session = Depends(get_db)):
    get_or_404(db, FinalType, final_type_id, "final type")
    rows = db.query(Property).filter(Property.final_type_id == final_type_id).order_by(*_ORDERING).all()
    return ApiResponse(data=[property_response(p) for p in rows])


@router.get("/realestate/{real_estate_id}/values", response_model=ApiResponse[dict[str, ListingPropertyValue]])
def listing_values(real_estate_id: int, db: Session = Depends(get_db)):
    listing = get_listing(db, real_estate_id)
    return ApiResponse(data=get_listing_properties(db, listing.id))


@router.post("/bulk", response_model=ApiResponse[PropertyBulkResult], status_code=201)
def bulk_create(payload: PropertyBulkCreate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    try:
        created, skipped = bulk_define(db, [item.model_dump() for item in payload.properties])
        db.commit()
    except Exception:
        db.rollback()
        raise
    result = PropertyBulkResult(created=created, skipped=skipped, total=len(payload.properties))
    return ApiResponse(data=result, message=f"{created} properties created, {skipped} skipped")


@router.get("/{property_id}", response_model=ApiResponse[PropertyResponse])
def get_property(property_id: int, db: Session = Depends(get_db)):
    prop = get_or_404(db, Property, property_id, "property definition")
    return ApiResponse(data=property_response(prop, _values_count(db, prop.id)))


@router.post("", response_model=ApiResponse[PropertyResponse], status_code=201)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    try:
        prop = define_property(db, **payload.model_dump())
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(prop)
    return ApiResponse(data=property_response(prop, 0), message="Property created successfully")


@router.put("/{property_id}", response_model=ApiResponse[PropertyResponse])
def edit_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    prop = get_or_404(db, Property, property_id, "property definition")
    try:
        update_property(db, prop, payload.model_dump(exclude_unset=True))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(prop)
    return ApiResponse(data=property_response(prop, _values_count(db, prop.id)), message="Property updated successfully")


@router.delete("/{property_id}", response_model=ApiResponse[None])
def remove_property(property_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    prop = get_or_404(db, Property, property_id, "property definition")
    delete_property(db, prop)
    db.commit()
    return ApiResponse(data=None, message="Property deleted successfully")
