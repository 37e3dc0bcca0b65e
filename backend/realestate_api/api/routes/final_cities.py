from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_admin
from realestate_api.models.location import FinalCity, Neighborhood
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.taxonomy import FinalCityCreate, FinalCityResponse, FinalCityUpdate
from realestate_api.services.taxonomy import delete_row, ensure_no_dependents, get_or_404

router = APIRouter(prefix="/final-cities", tags=["final-cities"])


@router.get("", response_model=ApiResponse[list[FinalCityResponse]])
def list_final_cities(neighborhood_id: int | None = Query(default=None), db: Session = Depends(get_db)):
    q = db.query(FinalCity)
    if neighborhood_id is not None:
        q = q.filter(FinalCity.neighborhood_id == neighborhood_id)
    return ApiResponse(data=q.order_by(FinalCity.name).all())


@router.get("/neighborhood/{neighborhood_id}", response_model=ApiResponse[list[FinalCityResponse]])
def list_neighborhood_final_cities(neighborhood_id: int, db: Session = Depends(get_db)):
    get_or_404(db, Neighborhood, neighborhood_id, "neighborhood")
    rows = db.query(FinalCity).filter(FinalCity.neighborhood_id == neighborhood_id).order_by(FinalCity.name).all()
    return ApiResponse(data=rows)


@router.get("/{final_city_id}", response_model=ApiResponse[FinalCityResponse])
def get_final_city(final_city_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=get_or_404(db, FinalCity, final_city_id, "final city"))


@router.post("", response_model=ApiResponse[FinalCityResponse], status_code=201)
def create_final_city(payload: FinalCityCreate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    get_or_404(db, Neighborhood, payload.neighborhood_id, "neighborhood")
    row = FinalCity(name=payload.name.strip(), neighborhood_id=payload.neighborhood_id, location=payload.location)
    db.add(row)
    db.commit()
    db.refresh(row)
    return ApiResponse(data=row, message="Final city created successfully")


@router.put("/{final_city_id}", response_model=ApiResponse[FinalCityResponse])
def update_final_city(
    final_city_id: int,
    payload: FinalCityUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    row = get_or_404(db, FinalCity, final_city_id, "final city")
    if payload.neighborhood_id is not None:
        get_or_404(db, Neighborhood, payload.neighborhood_id, "neighborhood")
        row.neighborhood_id = payload.neighborhood_id
    if payload.name:
        row.name = payload.name.strip()
    if payload.location is not None:
        row.location = payload.location
    db.commit()
    db.refresh(row)
    return ApiResponse(data=row, message="Final city updated successfully")


@router.delete("/{final_city_id}", response_model=ApiResponse[None])
def delete_final_city(final_city_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    row = get_or_404(db, FinalCity, final_city_id, "final city")
    ensure_no_dependents(db, "final city", (RealEstate.final_city_id, row.id, "listings"))
    delete_row(db, row)
    return ApiResponse(data=None, message="Final city deleted successfully")
