from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_company_or_admin
from realestate_api.core.errors import ValidationError
from realestate_api.models.building import Building, BuildingItem, BuildingStatus
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User, UserRole
from realestate_api.schemas.building import (
    BuildingCreate,
    BuildingItemCreate,
    BuildingItemResponse,
    BuildingItemUpdate,
    BuildingResponse,
    BuildingUpdate,
)
from realestate_api.schemas.common import ApiResponse, Page, paginate
from realestate_api.services.access import company_scope, ensure_access
from realestate_api.services.listings import resolve_company
from realestate_api.services.taxonomy import delete_row, ensure_no_dependents, get_or_404

router = APIRouter(prefix="/buildings", tags=["buildings"])


def _response(building: Building, with_items: bool = True) -> BuildingResponse:
    return BuildingResponse(
        id=building.id,
        title=building.title,
        status=building.status,
        location=building.location,
        building_age=building.building_age,
        company_id=building.company_id,
        company_name=building.company.display_name if building.company else None,
        items_count=len(building.items),
        items=[BuildingItemResponse.model_validate(i) for i in building.items] if with_items else [],
        created_at=building.created_at,
        updated_at=building.updated_at,
    )


def _ensure_owner(actor: User, building: Building) -> None:
    ensure_access(actor, "You can only manage your own buildings", company_id=building.company_id)


def _list(db: Session, company_id: int | None, status: BuildingStatus | None, page: int, limit: int) -> dict:
    q = db.query(Building)
    if company_id is not None:
        q = q.filter(Building.company_id == company_id)
    if status is not None:
        q = q.filter(Building.status == status)
    total = q.count()
    rows = q.order_by(Building.created_at.desc(), Building.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return paginate([_response(b, with_items=False) for b in rows], total, page, limit)


@router.get("", response_model=ApiResponse[Page[BuildingResponse]])
def list_buildings(
    company_id: int | None = Query(default=None),
    status: BuildingStatus | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return ApiResponse(data=_list(db, company_id, status, page, limit))


@router.get("/mine", response_model=ApiResponse[Page[BuildingResponse]])
def my_buildings(
    status: BuildingStatus | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    return ApiResponse(data=_list(db, company_scope(current_user), status, page, limit))


@router.get("/items/{item_id}", response_model=ApiResponse[BuildingItemResponse])
def get_item(item_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=get_or_404(db, BuildingItem, item_id, "building item"))


@router.put("/items/{item_id}", response_model=ApiResponse[BuildingItemResponse])
def update_item(
    item_id: int,
    payload: BuildingItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    item = get_or_404(db, BuildingItem, item_id, "building item")
    _ensure_owner(current_user, item.building)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return ApiResponse(data=item, message="Building item updated successfully")


@router.delete("/items/{item_id}", response_model=ApiResponse[None])
def delete_item(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_company_or_admin)):
    item = get_or_404(db, BuildingItem, item_id, "building item")
    _ensure_owner(current_user, item.building)
    ensure_no_dependents(db, "building item", (RealEstate.building_item_id, item.id, "listings"))
    delete_row(db, item)
    return ApiResponse(data=None, message="Building item deleted successfully")


@router.get("/{building_id}", response_model=ApiResponse[BuildingResponse])
def get_building(building_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=_response(get_or_404(db, Building, building_id, "building")))


@router.get("/{building_id}/items", response_model=ApiResponse[list[BuildingItemResponse]])
def list_items(building_id: int, db: Session = Depends(get_db)):
    building = get_or_404(db, Building, building_id, "building")
    return ApiResponse(data=list(building.items))


@router.post("", response_model=ApiResponse[BuildingResponse], status_code=201)
def create_building(
    payload: BuildingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    if current_user.role != UserRole.COMPANY and payload.company_id is None:
        raise ValidationError("company_id must reference an active company account", code="INVALID_COMPANY")
    company_id = resolve_company(db, current_user, payload.company_id)
    try:
        building = Building(
            title=payload.title.strip(),
            status=payload.status,
            location=payload.location or "0.0,0.0",
            building_age=payload.building_age,
            company_id=company_id,
        )
        db.add(building)
        db.flush()
        db.add_all(BuildingItem(building_id=building.id, **item.model_dump()) for item in payload.items)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(building)
    return ApiResponse(data=_response(building), message="Building created successfully")


@router.post("/{building_id}/items", response_model=ApiResponse[BuildingItemResponse], status_code=201)
def create_item(
    building_id: int,
    payload: BuildingItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    building = get_or_404(db, Building, building_id, "building")
    _ensure_owner(current_user, building)
    item = BuildingItem(building_id=building.id, **payload.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    return ApiResponse(data=item, message="Building item created successfully")


@router.put("/{building_id}", response_model=ApiResponse[BuildingResponse])
def update_building(
    building_id: int,
    payload: BuildingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    building = get_or_404(db, Building, building_id, "building")
    _ensure_owner(current_user, building)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(building, field, value)
    db.commit()
    db.refresh(building)
    return ApiResponse(data=_response(building), message="Building updated successfully")


@router.delete("/{building_id}", response_model=ApiResponse[None])
def delete_building(building_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_company_or_admin)):
    building = get_or_404(db, Building, building_id, "building")
    _ensure_owner(current_user, building)
    ensure_no_dependents(
        db,
        "building",
        (BuildingItem.building_id, building.id, "items"),
        (RealEstate.building_id, building.id, "listings"),
    )
    delete_row(db, building)
    return ApiResponse(data=None, message="Building deleted successfully")
