from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import get_current_user
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.property import PropertyFileInfo
from realestate_api.services.access import ensure_listing_owner
from realestate_api.services.listings import get_listing
from realestate_api.services.property_files import attach_file, detach_file, get_file, get_file_property, list_files

router = APIRouter(prefix="/properties/files", tags=["property-files"])


@router.get("/{real_estate_id}", response_model=ApiResponse[list[PropertyFileInfo]])
def list_listing_files(real_estate_id: int, db: Session = Depends(get_db)):
    listing = get_listing(db, real_estate_id)
    return ApiResponse(data=list_files(db, listing))


@router.get("/{real_estate_id}/{property_id}", response_model=ApiResponse[PropertyFileInfo])
def get_property_file(real_estate_id: int, property_id: int, db: Session = Depends(get_db)):
    listing = get_listing(db, real_estate_id)
    prop = get_file_property(db, listing, property_id)
    return ApiResponse(data=get_file(db, listing, prop))


@router.post("/{real_estate_id}/{property_id}/upload", response_model=ApiResponse[PropertyFileInfo], status_code=201)
def upload_property_file(
    real_estate_id: int,
    property_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_listing(db, real_estate_id)
    ensure_listing_owner(current_user, listing)
    prop = get_file_property(db, listing, property_id)
    return ApiResponse(data=attach_file(db, listing, prop, file), message="File uploaded successfully")


@router.delete("/{real_estate_id}/{property_id}", response_model=ApiResponse[None])
def delete_property_file(
    real_estate_id: int,
    property_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    listing = get_listing(db, real_estate_id)
    ensure_listing_owner(current_user, listing)
    prop = get_file_property(db, listing, property_id)
    detach_file(db, listing, prop)
    return ApiResponse(data=None, message="File deleted successfully")
