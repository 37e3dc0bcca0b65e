from pydantic import BaseModel


class UploadResult(BaseModel):
    filename: str
    url: str
    size: int
    mime_type: str | None


class StorageUsage(BaseModel):
    folders: dict[str, int]
    total: int
    limit: int
