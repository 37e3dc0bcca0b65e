from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from realestate_api.models.property import PropertyDataType


class PropertyCreate(BaseModel):
    final_type_id: int
    property_key: str = Field(min_length=1, max_length=100)
    property_name: str = Field(min_length=1, max_length=160)
    group_name: str = "general"
    data_type: str
    allowed_values: list[str] | dict[str, Any] | None = None
    is_filter: bool = False
    is_required: bool = False
    display_order: int = 0
    placeholder: str | None = None
    unit: str | None = None


class PropertyUpdate(BaseModel):
    property_key: str | None = Field(default=None, min_length=1, max_length=100)
    property_name: str | None = Field(default=None, min_length=1, max_length=160)
    group_name: str | None = None
    data_type: str | None = None
    allowed_values: list[str] | dict[str, Any] | None = None
    is_filter: bool | None = None
    is_required: bool | None = None
    display_order: int | None = None
    placeholder: str | None = None
    unit: str | None = None


class PropertyBulkCreate(BaseModel):
    properties: list[PropertyCreate] = Field(min_length=1)


class PropertyBulkResult(BaseModel):
    created: int
    skipped: int
    total: int


class PropertyResponse(BaseModel):
    id: int
    final_type_id: int
    final_type_name: str | None = None
    property_key: str
    property_name: str
    group_name: str
    data_type: PropertyDataType
    allowed_values: list[str] | dict[str, Any] | None
    is_filter: bool
    is_required: bool
    display_order: int
    placeholder: str | None
    unit: str | None
    values_count: int | None = None
    created_at: datetime
    updated_at: datetime


class PropertyGroup(BaseModel):
    group_name: str
    count: int


class PropertyMeta(BaseModel):
    id: int
    property_key: str
    property_name: str
    group_name: str
    data_type: PropertyDataType
    unit: str | None
    is_filter: bool
    is_required: bool


class ListingPropertyValue(BaseModel):
    value: str
    typed_value: Any = None
    property: PropertyMeta


class PropertyFileInfo(BaseModel):
    real_estate_id: int
    property_id: int
    property_key: str
    filename: str
    original_name: str | None = None
    mime_type: str | None = None
    size: int | None = None
    url: str
