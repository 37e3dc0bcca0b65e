from sqlalchemy import func
from sqlalchemy.orm import Session

from realestate_api.models.building import Building
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User, UserRole
from realestate_api.schemas.dashboard import DashboardStats
from realestate_api.services.bookings import OFFER, RESERVATION, booking_stats


def _users_by_role(db: Session) -> dict[str, int]:
    counts = {role.value: 0 for role in UserRole}
    for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all():
        counts[role.value] = int(count)
    return counts


def _listings_per_company(db: Session) -> dict[str, int]:
    rows = (
        db.query(User.id, User.company_name, User.full_name, func.count(RealEstate.id))
        .join(RealEstate, RealEstate.company_id == User.id)
        .group_by(User.id, User.company_name, User.full_name)
        .all()
    )
    return {company_name or full_name: int(count) for _, company_name, full_name, count in rows}


def dashboard_stats(db: Session, actor: User) -> DashboardStats:
    reservations = booking_stats(db, RESERVATION, actor)
    offers = booking_stats(db, OFFER, actor)
    if actor.role == UserRole.ADMIN:
        return DashboardStats(
            users_by_role=_users_by_role(db),
            active_users=db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0,
            listings=db.query(func.count(RealEstate.id)).scalar() or 0,
            listings_per_company=_listings_per_company(db),
            buildings=db.query(func.count(Building.id)).scalar() or 0,
            reservations=reservations,
            offers=offers,
        )
    return DashboardStats(
        listings=db.query(func.count(RealEstate.id)).filter(RealEstate.company_id == actor.id).scalar() or 0,
        buildings=db.query(func.count(Building.id)).filter(Building.company_id == actor.id).scalar() or 0,
        reservations=reservations,
        offers=offers,
    )
