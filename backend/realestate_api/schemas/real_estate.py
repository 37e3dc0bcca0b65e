from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from realestate_api.schemas.property import ListingPropertyValue


class RealEstateUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    price: int | None = Field(default=None, ge=0)
    description: str | None = None
    location: str | None = None
    view_time: str | None = None
    payment_method: str | None = None
    city_id: int | None = None
    neighborhood_id: int | None = None
    final_city_id: int | None = None
    main_type_id: int | None = None
    sub_type_id: int | None = None
    final_type_id: int | None = None
    building_id: int | None = None
    building_item_id: int | None = None
    company_id: int | None = None
    others: dict[str, Any] | None = None
    properties: dict[str, Any] | None = None


class FileResponse(BaseModel):
    id: int
    name: str
    url: str | None
    real_estate_id: int
    created_at: datetime


class RealEstateSummary(BaseModel):
    id: int
    title: str
    price: int
    cover_image: str | None
    city_id: int
    city_name: str | None
    neighborhood_id: int
    neighborhood_name: str | None
    final_type_id: int
    final_type_name: str | None
    company_id: int | None
    company_name: str | None
    created_at: datetime


class RealEstateResponse(RealEstateSummary):
    description: str | None
    location: str | None
    view_time: str | None
    payment_method: str | None
    final_city_id: int | None
    final_city_name: str | None
    main_type_id: int
    main_type_name: str | None
    sub_type_id: int
    sub_type_name: str | None
    building_id: int | None
    building_title: str | None
    building_item_id: int | None
    building_item_name: str | None
    others: dict[str, Any]
    files: list[FileResponse]
    properties: dict[str, ListingPropertyValue]
    updated_at: datetime


class SimilarListing(RealEstateSummary):
    similarity_score: int
