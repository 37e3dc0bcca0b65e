from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import get_current_user
from realestate_api.models.real_estate import File
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.real_estate import FileResponse
from realestate_api.services.access import ensure_listing_owner
from realestate_api.services.listings import file_response, get_attachment, get_listing, remove_attachment

router = APIRouter(prefix="/files", tags=["files"])


@router.get("", response_model=ApiResponse[list[FileResponse]])
def list_files(real_estate_id: int = Query(...), db: Session = Depends(get_db)):
    listing = get_listing(db, real_estate_id)
    rows = db.query(File).filter(File.real_estate_id == listing.id).order_by(File.id).all()
    return ApiResponse(data=[file_response(row) for row in rows])


@router.get("/{file_id}", response_model=ApiResponse[FileResponse])
def get_file(file_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=file_response(get_attachment(db, file_id)))


@router.delete("/{file_id}", response_model=ApiResponse[None])
def delete_file(file_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    row = get_attachment(db, file_id)
    ensure_listing_owner(current_user, row.real_estate)
    remove_attachment(db, row)
    return ApiResponse(data=None, message="File deleted successfully")
