from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_admin
from realestate_api.models.category import FinalType, MainType, SubType
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.taxonomy import SubTypeCreate, SubTypeResponse, SubTypeUpdate
from realestate_api.services.taxonomy import delete_row, ensure_no_dependents, get_or_404

router = APIRouter(prefix="/sub-types", tags=["sub-types"])


@router.get("", response_model=ApiResponse[list[SubTypeResponse]])
def list_sub_types(main_type_id: int | None = Query(default=None), db: Session = Depends(get_db)):
    q = db.query(SubType)
    if main_type_id is not None:
        q = q.filter(SubType.main_type_id == main_type_id)
    return ApiResponse(data=q.order_by(SubType.id).all())


@router.get("/main/{main_type_id}", response_model=ApiResponse[list[SubTypeResponse]])
def list_main_type_sub_types(main_type_id: int, db: Session = Depends(get_db)):
    get_or_404(db, MainType, main_type_id, "main type")
    return ApiResponse(data=db.query(SubType).filter(SubType.main_type_id == main_type_id).order_by(SubType.id).all())


@router.get("/{sub_type_id}", response_model=ApiResponse[SubTypeResponse])
def get_sub_type(sub_type_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=get_or_404(db, SubType, sub_type_id, "sub type"))


@router.post("", response_model=ApiResponse[SubTypeResponse], status_code=201)
def create_sub_type(payload: SubTypeCreate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    get_or_404(db, MainType, payload.main_type_id, "main type")
    row = SubType(name=payload.name.strip(), main_type_id=payload.main_type_id)
    db.add(row)
    db.commit()
    db.refresh(row)
    return ApiResponse(data=row, message="Sub type created successfully")


@router.put("/{sub_type_id}", response_model=ApiResponse[SubTypeResponse])
def update_sub_type(sub_type_id: int, payload: SubTypeUpdate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    row = get_or_404(db, SubType, sub_type_id, "sub type")
    if payload.main_type_id is not None:
        get_or_404(db, MainType, payload.main_type_id, "main type")
        row.main_type_id = payload.main_type_id
    if payload.name:
        row.name = payload.name.strip()
    db.commit()
    db.refresh(row)
    return ApiResponse(data=row, message="Sub type updated successfully")


@router.delete("/{sub_type_id}", response_model=ApiResponse[None])
def delete_sub_type(sub_type_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    row = get_or_404(db, SubType, sub_type_id, "sub type")
    ensure_no_dependents(
        db,
        "sub type",
        (FinalType.sub_type_id, row.id, "final types"),
        (RealEstate.sub_type_id, row.id, "listings"),
    )
    delete_row(db, row)
    return ApiResponse(data=None, message="Sub type deleted successfully")
