from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_admin
from realestate_api.models.category import FinalType, SubType
from realestate_api.models.property import Property
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.taxonomy import FinalTypeCreate, FinalTypeResponse, FinalTypeUpdate
from realestate_api.services.taxonomy import delete_row, ensure_no_dependents, get_or_404

router = APIRouter(prefix="/final-types", tags=["final-types"])


@router.get("", response_model=ApiResponse[list[FinalTypeResponse]])
def list_final_types(sub_type_id: int | None = Query(default=None), db: Session = Depends(get_db)):
    q = db.query(FinalType)
    if sub_type_id is not None:
        q = q.filter(FinalType.sub_type_id == sub_type_id)
    return ApiResponse(data=q.order_by(FinalType.id).all())


@router.get("/sub/{sub_type_id}", response_model=ApiResponse[list[FinalTypeResponse]])
def list_sub_type_final_types(sub_type_id: int, db: Session = Depends(get_db)):
    get_or_404(db, SubType, sub_type_id, "sub type")
    return ApiResponse(data=db.query(FinalType).filter(FinalType.sub_type_id == sub_type_id).order_by(FinalType.id).all())


@router.get("/{final_type_id}", response_model=ApiResponse[FinalTypeResponse])
def get_final_type(final_type_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=get_or_404(db, FinalType, final_type_id, "final type"))


@router.post("", response_model=ApiResponse[FinalTypeResponse], status_code=201)
def create_final_type(payload: FinalTypeCreate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    get_or_404(db, SubType, payload.sub_type_id, "sub type")
    row = FinalType(name=payload.name.strip(), sub_type_id=payload.sub_type_id)
    db.add(row)
    db.commit()
    db.refresh(row)
    return ApiResponse(data=row, message="Final type created successfully")


@router.put("/{final_type_id}", response_model=ApiResponse[FinalTypeResponse])
def update_final_type(
    final_type_id: int,
    payload: FinalTypeUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    row = get_or_404(db, FinalType, final_type_id, "final type")
    if payload.sub_type_id is not None:
        get_or_404(db, SubType, payload.sub_type_id, "sub type")
        row.sub_type_id = payload.sub_type_id
    if payload.name:
        row.name = payload.name.strip()
    db.commit()
    db.refresh(row)
    return ApiResponse(data=row, message="Final type updated successfully")


@router.delete("/{final_type_id}", response_model=ApiResponse[None])
def delete_final_type(final_type_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    row = get_or_404(db, FinalType, final_type_id, "final type")
    ensure_no_dependents(
        db,
        "final type",
        (RealEstate.final_type_id, row.id, "listings"),
        (Property.final_type_id, row.id, "property definitions"),
    )
    delete_row(db, row)
    return ApiResponse(data=None, message="Final type deleted successfully")
