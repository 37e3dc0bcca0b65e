from datetime import datetime

from pydantic import BaseModel, Field

from realestate_api.models.building import BuildingItemType, BuildingStatus


class BuildingItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    price: int = Field(ge=0)
    area: float = Field(gt=0)
    type: BuildingItemType


class BuildingItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    price: int | None = Field(default=None, ge=0)
    area: float | None = Field(default=None, gt=0)
    type: BuildingItemType | None = None


class BuildingItemResponse(BaseModel):
    id: int
    name: str
    price: int
    area: float
    type: BuildingItemType
    building_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class BuildingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    status: BuildingStatus = BuildingStatus.PLANNED
    location: str = "0.0,0.0"
    building_age: int | None = Field(default=None, ge=0)
    company_id: int | None = None
    items: list[BuildingItemCreate] = []


class BuildingUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    status: BuildingStatus | None = None
    location: str | None = None
    building_age: int | None = Field(default=None, ge=0)


class BuildingResponse(BaseModel):
    id: int
    title: str
    status: BuildingStatus
    location: str
    building_age: int | None
    company_id: int
    company_name: str | None = None
    items_count: int = 0
    items: list[BuildingItemResponse] = []
    created_at: datetime
    updated_at: datetime
