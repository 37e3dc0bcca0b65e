from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_admin
from realestate_api.models.location import City, FinalCity, Neighborhood
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.taxonomy import NeighborhoodCreate, NeighborhoodResponse, NeighborhoodUpdate
from realestate_api.services.taxonomy import delete_row, ensure_no_dependents, get_or_404

router = APIRouter(prefix="/neighborhoods", tags=["neighborhoods"])


@router.get("", response_model=ApiResponse[list[NeighborhoodResponse]])
def list_neighborhoods(city_id: int | None = Query(default=None), db: Session = Depends(get_db)):
    q = db.query(Neighborhood)
    if city_id is not None:
        q = q.filter(Neighborhood.city_id == city_id)
    return ApiResponse(data=q.order_by(Neighborhood.name).all())


@router.get("/city/{city_id}", response_model=ApiResponse[list[NeighborhoodResponse]])
def list_city_neighborhoods(city_id: int, db: Session = Depends(get_db)):
    get_or_404(db, City, city_id, "city")
    rows = db.query(Neighborhood).filter(Neighborhood.city_id == city_id).order_by(Neighborhood.name).all()
    return ApiResponse(data=rows)


@router.get("/{neighborhood_id}", response_model=ApiResponse[NeighborhoodResponse])
def get_neighborhood(neighborhood_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=get_or_404(db, Neighborhood, neighborhood_id, "neighborhood"))


@router.post("", response_model=ApiResponse[NeighborhoodResponse], status_code=201)
def create_neighborhood(payload: NeighborhoodCreate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    get_or_404(db, City, payload.city_id, "city")
    row = Neighborhood(name=payload.name.strip(), city_id=payload.city_id)
    db.add(row)
    db.commit()
    db.refresh(row)
    return ApiResponse(data=row, message="Neighborhood created successfully")


@router.put("/{neighborhood_id}", response_model=ApiResponse[NeighborhoodResponse])
def update_neighborhood(
    neighborhood_id: int,
    payload: NeighborhoodUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    row = get_or_404(db, Neighborhood, neighborhood_id, "neighborhood")
    if payload.city_id is not None:
        get_or_404(db, City, payload.city_id, "city")
        row.city_id = payload.city_id
    if payload.name:
        row.name = payload.name.strip()
    db.commit()
    db.refresh(row)
    return ApiResponse(data=row, message="Neighborhood updated successfully")


@router.delete("/{neighborhood_id}", response_model=ApiResponse[None])
def delete_neighborhood(neighborhood_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    row = get_or_404(db, Neighborhood, neighborhood_id, "neighborhood")
    ensure_no_dependents(
        db,
        "neighborhood",
        (FinalCity.neighborhood_id, row.id, "final cities"),
        (RealEstate.neighborhood_id, row.id, "listings"),
    )
    delete_row(db, row)
    return ApiResponse(data=None, message="Neighborhood deleted successfully")
