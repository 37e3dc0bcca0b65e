from datetime import date, datetime

from pydantic import BaseModel, Field


class ReservationCreate(BaseModel):
    real_estate_id: int
    visit_date: date
    visit_time: str = Field(min_length=1, max_length=8)
    notes: str | None = None


class BookingUpdate(BaseModel):
    status: str | None = None
    visit_date: date | None = None
    visit_time: str | None = Field(default=None, min_length=1, max_length=8)
    notes: str | None = None
    offer_amount: int | None = None


class BookingResponse(BaseModel):
    id: int
    kind: str
    real_estate_id: int
    property_title: str | None
    property_price: int | None
    property_image: str | None
    property_location: str | None
    user_id: int
    user_name: str | None
    user_phone: str | None
    user_email: str | None
    company_id: int | None
    company_name: str | None
    status: str
    visit_date: date
    visit_time: str
    notes: str | None
    offer_amount: int | None = None
    id_image: str | None = None
    can_cancel: bool
    is_upcoming: bool
    days_until_visit: int
    created_at: datetime
    updated_at: datetime


class BookingStats(BaseModel):
    total: int
    by_status: dict[str, int]


class UserBookings(BaseModel):
    items: list[BookingResponse]
    stats: BookingStats


class SweepResult(BaseModel):
    cancelled: int
