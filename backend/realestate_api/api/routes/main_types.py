from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import require_admin
from realestate_api.core.errors import ConflictError, ValidationError
from realestate_api.models.category import MainType, SubType
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.taxonomy import MainTypeResponse, SubTypeResponse
from realestate_api.services.taxonomy import delete_row, ensure_no_dependents, get_or_404
from realestate_api.services.uploads import UploadType, check_storage, delete_stored, discard, file_url, save_upload

router = APIRouter(prefix="/main-types", tags=["main-types"])


def _response(row: MainType) -> MainTypeResponse:
    return MainTypeResponse(
        id=row.id,
        name=row.name,
        icon=row.icon,
        icon_url=file_url(UploadType.ICONS, row.icon),
        created_at=row.created_at,
        sub_types=[SubTypeResponse.model_validate(s) for s in row.sub_types],
    )


def _ensure_unique(db: Session, name: str, exclude_id: int | None = None) -> None:
    q = db.query(MainType.id).filter(MainType.name == name)
    if exclude_id is not None:
        q = q.filter(MainType.id != exclude_id)
    if q.first():
        raise ConflictError("Main type already exists", code="MAIN_TYPE_EXISTS")


@router.get("", response_model=ApiResponse[list[MainTypeResponse]])
def list_main_types(db: Session = Depends(get_db)):
    rows = db.query(MainType).order_by(MainType.id).all()
    return ApiResponse(data=[_response(r) for r in rows])


@router.get("/{main_type_id}", response_model=ApiResponse[MainTypeResponse])
def get_main_type(main_type_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=_response(get_or_404(db, MainType, main_type_id, "main type")))


@router.post("", response_model=ApiResponse[MainTypeResponse], status_code=201)
def create_main_type(
    name: str = Form(...),
    icon: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    name = name.strip()
    if not name:
        raise ValidationError("name is required", code="MISSING_FIELDS")
    _ensure_unique(db, name)
    stored = None
    if icon is not None and icon.filename:
        check_storage()
        stored = save_upload(icon, UploadType.ICONS)
    try:
        row = MainType(name=name, icon=stored.filename if stored else None)
        db.add(row)
        db.commit()
    except Exception:
        db.rollback()
        if stored:
            discard([stored])
        raise
    db.refresh(row)
    return ApiResponse(data=_response(row), message="Main type created successfully")


@router.put("/{main_type_id}", response_model=ApiResponse[MainTypeResponse])
def update_main_type(
    main_type_id: int,
    name: str | None = Form(default=None),
    icon: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    row = get_or_404(db, MainType, main_type_id, "main type")
    if name and name.strip():
        _ensure_unique(db, name.strip(), exclude_id=row.id)
        row.name = name.strip()
    previous_icon = None
    if icon is not None and icon.filename:
        check_storage()
        stored = save_upload(icon, UploadType.ICONS)
        previous_icon, row.icon = row.icon, stored.filename
    db.commit()
    if previous_icon:
        delete_stored(UploadType.ICONS, previous_icon)
    db.refresh(row)
    return ApiResponse(data=_response(row), message="Main type updated successfully")


@router.delete("/{main_type_id}", response_model=ApiResponse[None])
def delete_main_type(main_type_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    row = get_or_404(db, MainType, main_type_id, "main type")
    ensure_no_dependents(
        db,
        "main type",
        (SubType.main_type_id, row.id, "sub types"),
        (RealEstate.main_type_id, row.id, "listings"),
    )
    icon = row.icon
    delete_row(db, row)
    if icon:
        delete_stored(UploadType.ICONS, icon)
    return ApiResponse(data=None, message="Main type deleted successfully")
