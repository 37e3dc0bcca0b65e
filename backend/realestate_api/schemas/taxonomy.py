from datetime import datetime

from pydantic import BaseModel, Field


class NameCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)


class NameUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)


class CityResponse(BaseModel):
    id: int
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class NeighborhoodCreate(NameCreate):
    city_id: int


class NeighborhoodUpdate(NameUpdate):
    city_id: int | None = None


class NeighborhoodResponse(BaseModel):
    id: int
    name: str
    city_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class FinalCityCreate(NameCreate):
    neighborhood_id: int
    location: str | None = None


class FinalCityUpdate(NameUpdate):
    neighborhood_id: int | None = None
    location: str | None = None


class FinalCityResponse(BaseModel):
    id: int
    name: str
    location: str | None
    neighborhood_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class SubTypeCreate(NameCreate):
    main_type_id: int


class SubTypeUpdate(NameUpdate):
    main_type_id: int | None = None


class SubTypeResponse(BaseModel):
    id: int
    name: str
    main_type_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class MainTypeResponse(BaseModel):
    id: int
    name: str
    icon: str | None
    icon_url: str | None = None
    created_at: datetime
    sub_types: list[SubTypeResponse] = []

    class Config:
        from_attributes = True


class FinalTypeCreate(NameCreate):
    sub_type_id: int


class FinalTypeUpdate(NameUpdate):
    sub_type_id: int | None = None


class FinalTypeResponse(BaseModel):
    id: int
    name: str
    sub_type_id: int
    created_at: datetime

    class Config:
        from_attributes = True
