from pydantic import BaseModel

from realestate_api.schemas.booking import BookingStats


class DashboardStats(BaseModel):
    users_by_role: dict[str, int] | None = None
    active_users: int | None = None
    listings: int
    listings_per_company: dict[str, int] | None = None
    buildings: int
    reservations: BookingStats
    offers: BookingStats
