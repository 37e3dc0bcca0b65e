from fastapi import APIRouter, Depends, File, UploadFile
from fastapi import Path as PathParam

from realestate_api.core.config import get_settings
from realestate_api.core.deps import get_current_user, require_admin
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse
from realestate_api.schemas.upload import StorageUsage, UploadResult
from realestate_api.services.uploads import UploadType, check_storage, save_upload, storage_usage

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.get("/usage", response_model=ApiResponse[StorageUsage])
def get_usage(_: User = Depends(require_admin)):
    folders = storage_usage()
    usage = StorageUsage(folders=folders, total=sum(folders.values()), limit=get_settings().MAX_STORAGE_BYTES)
    return ApiResponse(data=usage)


@router.post("/{upload_type}", response_model=ApiResponse[UploadResult], status_code=201)
def upload_file(
    upload_type: UploadType = PathParam(...),
    file: UploadFile = File(...),
    _: User = Depends(get_current_user),
):
    check_storage()
    stored = save_upload(file, upload_type)
    result = UploadResult(filename=stored.filename, url=stored.url, size=stored.size, mime_type=stored.mime_type)
    return ApiResponse(data=result, message="File uploaded successfully")
