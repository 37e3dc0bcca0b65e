from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_admin
from realestate_api.core.errors import ConflictError
from realestate_api.models.location import City, Neighborhood
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.taxonomy import CityResponse, NameCreate, NameUpdate
from realestate_api.services.taxonomy import delete_row, ensure_no_dependents, get_or_404

router = APIRouter(prefix="/cities", tags=["cities"])


def _ensure_unique(db: Session, name: str, exclude_id: int | None = None) -> None:
    q = db.query(City.id).filter(City.name == name)
    if exclude_id is not None:
        q = q.filter(City.id != exclude_id)
    if q.first():
        raise ConflictError("City already exists", code="CITY_EXISTS")


@router.get("", response_model=ApiResponse[list[CityResponse]])
def list_cities(db: Session = Depends(get_db)):
    return ApiResponse(data=db.query(City).order_by(City.name).all())


@router.get("/{city_id}", response_model=ApiResponse[CityResponse])
def get_city(city_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=get_or_404(db, City, city_id, "city"))


@router.post("", response_model=ApiResponse[CityResponse], status_code=201)
def create_city(payload: NameCreate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    name = payload.name.strip()
    _ensure_unique(db, name)
    city = City(name=name)
    db.add(city)
    db.commit()
    db.refresh(city)
    return ApiResponse(data=city, message="City created successfully")


@router.put("/{city_id}", response_model=ApiResponse[CityResponse])
def update_city(city_id: int, payload: NameUpdate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    city = get_or_404(db, City, city_id, "city")
    if payload.name:
        _ensure_unique(db, payload.name.strip(), exclude_id=city.id)
        city.name = payload.name.strip()
    db.commit()
    db.refresh(city)
    return ApiResponse(data=city, message="City updated successfully")


@router.delete("/{city_id}", response_model=ApiResponse[None])
def delete_city(city_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    city = get_or_404(db, City, city_id, "city")
    ensure_no_dependents(
        db,
        "city",
        (Neighborhood.city_id, city.id, "neighborhoods"),
        (RealEstate.city_id, city.id, "listings"),
    )
    delete_row(db, city)
    return ApiResponse(data=None, message="City deleted successfully")
