"""Reservation and offer lifecycle: admission, status changes and the expiry sweep."""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
import enum
import logging
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Query, Session

from realestate_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from realestate_api.models.offer import Offer, OfferStatus
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.reservation import Reservation, ReservationStatus
from realestate_api.models.user import User, UserRole
from realestate_api.schemas.booking import BookingResponse, BookingStats, UserBookings
from realestate_api.services.access import can_access, ensure_access
from realestate_api.services.uploads import UploadType, file_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingKind:
    name: str
    model: type
    statuses: type[enum.Enum]
    pending: enum.Enum
    cancelled: enum.Enum
    active: frozenset
    transitions: dict
    checks_time_slot: bool
    existing_code: str


RESERVATION = BookingKind(
    name="reservation",
    model=Reservation,
    statuses=ReservationStatus,
    pending=ReservationStatus.PENDING,
    cancelled=ReservationStatus.CANCELLED,
    active=frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED}),
    transitions={
        ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED, ReservationStatus.COMPLETED},
        ReservationStatus.CONFIRMED: {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED},
    },
    checks_time_slot=True,
    existing_code="EXISTING_RESERVATION",
)

OFFER = BookingKind(
    name="offer",
    model=Offer,
    statuses=OfferStatus,
    pending=OfferStatus.PENDING,
    cancelled=OfferStatus.CANCELLED,
    active=frozenset({OfferStatus.PENDING, OfferStatus.ACCEPTED}),
    transitions={
        OfferStatus.PENDING: {OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.CANCELLED},
        OfferStatus.ACCEPTED: {OfferStatus.CANCELLED},
    },
    checks_time_slot=False,
    existing_code="EXISTING_OFFER",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_visit_time(raw: str) -> str:
    try:
        return datetime.strptime((raw or "").strip(), "%H:%M").strftime("%H:%M")
    except ValueError:
        raise ValidationError("visit_time must use the HH:MM format", code="INVALID_TIME")


def visit_moment(visit_date: date, visit_time: str) -> datetime:
    hours, minutes = (int(part) for part in visit_time.split(":"))
    return datetime.combine(visit_date, time(hours, minutes))


def ensure_future(visit_date: date, visit_time: str) -> None:
    if visit_moment(visit_date, visit_time) <= utcnow():
        raise ValidationError("Visit date must be in the future", code="INVALID_DATE")


def parse_status(kind: BookingKind, raw: str):
    normalized = (raw or "").strip().lower()
    for status in kind.statuses:
        if normalized == status.value:
            return status
    allowed = ", ".join(s.value for s in kind.statuses)
    raise ValidationError(f"Invalid status. Must be one of: {allowed}", code="INVALID_STATUS")


def _lock_listing(db: Session, listing_id: int) -> RealEstate:
    # Serialises admissions per listing; SQLite ignores FOR UPDATE and serialises writers itself.
    listing = db.query(RealEstate).filter(RealEstate.id == listing_id).with_for_update().first()
    if not listing:
        raise NotFoundError("Property not found", code="PROPERTY_NOT_FOUND")
    return listing


def _slot_holder(db: Session, listing_id: int, visit_date: date, visit_time: str, exclude_id: int | None = None):
    q = db.query(Reservation).filter(
        Reservation.real_estate_id == listing_id,
        Reservation.visit_date == visit_date,
        Reservation.visit_time == visit_time,
        Reservation.status.in_(RESERVATION.active),
    )
    if exclude_id is not None:
        q = q.filter(Reservation.id != exclude_id)
    return q.first()


def _raise_slot_taken(holder: Reservation) -> None:
    name = holder.user.full_name if holder.user else "another user"
    raise ConflictError(f"This time slot is already booked by {name}", code="TIME_SLOT_TAKEN")


def get_booking(db: Session, kind: BookingKind, booking_id: int):
    booking = db.query(kind.model).filter(kind.model.id == booking_id).first()
    if not booking:
        raise NotFoundError(f"{kind.name.capitalize()} not found", code=f"{kind.name.upper()}_NOT_FOUND")
    return booking


def create_booking(
    db: Session,
    kind: BookingKind,
    listing_id: int,
    user: User,
    visit_date: date,
    visit_time: str,
    notes: str | None = None,
    **extra: Any,
):
    try:
        listing = _lock_listing(db, listing_id)
        visit_time = normalize_visit_time(visit_time)
        ensure_future(visit_date, visit_time)

        if kind.checks_time_slot:
            holder = _slot_holder(db, listing.id, visit_date, visit_time)
            if holder:
                _raise_slot_taken(holder)

        existing = (
            db.query(kind.model.id)
            .filter(
                kind.model.real_estate_id == listing.id,
                kind.model.user_id == user.id,
                kind.model.status.in_(kind.active),
            )
            .first()
        )
        if existing:
            raise ConflictError(f"You already have an active {kind.name} for this property", code=kind.existing_code)

        booking = kind.model(
            real_estate_id=listing.id,
            user_id=user.id,
            company_id=listing.company_id,
            status=kind.pending,
            visit_date=visit_date,
            visit_time=visit_time,
            notes=notes,
            **extra,
        )
        db.add(booking)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info("%s %s created by user %s on listing %s", kind.name, booking.id, user.id, listing_id)
    return booking


def _manages(actor: User, booking) -> bool:
    if actor.role not in (UserRole.ADMIN, UserRole.COMPANY):
        return False
    listing = booking.real_estate
    return can_access(actor, company_id=booking.company_id, listing_company_id=listing.company_id if listing else None)


def update_booking(db: Session, kind: BookingKind, booking, actor: User, changes: dict[str, Any]):
    is_manager = _manages(actor, booking)
    is_requester = booking.user_id == actor.id
    if not (is_manager or is_requester):
        raise ForbiddenError(f"You do not have permission to update this {kind.name}", code="ACCESS_DENIED")

    new_status = parse_status(kind, changes["status"]) if changes.get("status") else None
    if new_status is not None and new_status != booking.status:
        if not is_manager and new_status != kind.cancelled:
            raise ForbiddenError(f"You can only cancel your own {kind.name}", code="ACCESS_DENIED")
        if new_status not in kind.transitions.get(booking.status, ()):
            raise ValidationError(
                f"Cannot change {kind.name} status from {booking.status.value} to {new_status.value}",
                code="INVALID_TRANSITION",
            )

    detail_fields = {k for k in ("visit_date", "visit_time", "notes", "offer_amount") if changes.get(k) is not None}
    if detail_fields and not is_manager and booking.status != kind.pending:
        raise ValidationError(f"Only pending {kind.name}s can be changed", code="BOOKING_LOCKED")

    try:
        if "visit_date" in detail_fields or "visit_time" in detail_fields:
            visit_date = changes.get("visit_date") or booking.visit_date
            visit_time = normalize_visit_time(changes.get("visit_time") or booking.visit_time)
            ensure_future(visit_date, visit_time)
            if kind.checks_time_slot and (new_status or booking.status) in kind.active:
                _lock_listing(db, booking.real_estate_id)
                holder = _slot_holder(db, booking.real_estate_id, visit_date, visit_time, exclude_id=booking.id)
                if holder:
                    _raise_slot_taken(holder)
            booking.visit_date = visit_date
            booking.visit_time = visit_time

        if "notes" in detail_fields:
            booking.notes = changes["notes"]
        if "offer_amount" in detail_fields and hasattr(booking, "offer_amount"):
            booking.offer_amount = validate_offer_amount(changes["offer_amount"])

        previous = booking.status
        if new_status is not None:
            booking.status = new_status
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    if new_status is not None and new_status != previous:
        logger.info("%s %s moved %s -> %s by user %s", kind.name, booking.id, previous.value, new_status.value, actor.id)
    return booking


def delete_booking(db: Session, kind: BookingKind, booking, actor: User) -> None:
    listing = booking.real_estate
    ensure_access(
        actor,
        f"You do not have permission to delete this {kind.name}",
        user_id=booking.user_id,
        company_id=booking.company_id,
        listing_company_id=listing.company_id if listing else None,
    )
    booking_id = booking.id
    db.delete(booking)
    db.commit()
    logger.info("%s %s deleted by user %s", kind.name, booking_id, actor.id)


def validate_offer_amount(raw: Any) -> int:
    amount = None
    if isinstance(raw, int) and not isinstance(raw, bool):
        amount = raw
    elif isinstance(raw, str) and raw.strip().isdigit():
        amount = int(raw.strip())
    if amount is None or amount <= 0:
        raise ValidationError("Offer amount must be a positive whole number", code="INVALID_AMOUNT")
    return amount


def sweep_expired_reservations(db: Session, now: datetime | None = None) -> int:
    """Cancel every pending reservation whose visit moment has passed."""
    now = now or utcnow()
    candidates = (
        db.query(Reservation)
        .filter(Reservation.status == ReservationStatus.PENDING, Reservation.visit_date <= now.date())
        .all()
    )
    expired = [r for r in candidates if visit_moment(r.visit_date, r.visit_time) < now]
    for reservation in expired:
        reservation.status = ReservationStatus.CANCELLED
    db.commit()
    if expired:
        logger.info("cancelled %d expired reservations", len(expired))
    return len(expired)


def referenced_id_images(db: Session) -> set[str]:
    """Filenames in the general upload folder still owned by an offer."""
    return {name for (name,) in db.query(Offer.id_image).filter(Offer.id_image.isnot(None)).all()}


def scoped_query(db: Session, kind: BookingKind, actor: User, *columns) -> Query:
    model = kind.model
    q = db.query(*columns) if columns else db.query(model)
    if actor.role == UserRole.ADMIN:
        return q
    if actor.role == UserRole.COMPANY:
        owned_listings = select(RealEstate.id).where(RealEstate.company_id == actor.id)
        return q.filter(or_(model.company_id == actor.id, model.real_estate_id.in_(owned_listings)))
    return q.filter(model.user_id == actor.id)


def list_bookings(
    db: Session,
    kind: BookingKind,
    actor: User,
    status: str | None = None,
    real_estate_id: int | None = None,
    user_id: int | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list, int]:
    model = kind.model
    q = scoped_query(db, kind, actor)
    if status:
        q = q.filter(model.status == parse_status(kind, status))
    if real_estate_id:
        q = q.filter(model.real_estate_id == real_estate_id)
    if user_id:
        q = q.filter(model.user_id == user_id)
    total = q.count()
    items = q.order_by(model.created_at.desc(), model.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return items, total


def booking_stats(db: Session, kind: BookingKind, actor: User) -> BookingStats:
    model = kind.model
    rows = scoped_query(db, kind, actor, model.status, func.count(model.id)).group_by(model.status).all()
    by_status = {status.value: 0 for status in kind.statuses}
    for status, count in rows:
        by_status[status.value] = int(count or 0)
    return BookingStats(total=sum(by_status.values()), by_status=by_status)


def upcoming_bookings(db: Session, kind: BookingKind, actor: User, limit: int = 10) -> list:
    model = kind.model
    return (
        scoped_query(db, kind, actor)
        .filter(model.visit_date >= utcnow().date(), model.status.in_(kind.active))
        .order_by(model.visit_date.asc(), model.visit_time.asc())
        .limit(limit)
        .all()
    )


def booking_response(kind: BookingKind, booking, now: datetime | None = None) -> BookingResponse:
    now = now or utcnow()
    listing = booking.real_estate
    user = booking.user
    company = booking.company
    location = None
    if listing is not None:
        parts = [p.name for p in (listing.city, listing.neighborhood) if p is not None]
        location = ", ".join(parts) or None
    is_upcoming = visit_moment(booking.visit_date, booking.visit_time) >= now
    return BookingResponse(
        id=booking.id,
        kind=kind.name,
        real_estate_id=booking.real_estate_id,
        property_title=listing.title if listing else None,
        property_price=listing.price if listing else None,
        property_image=file_url(UploadType.REALESTATE, listing.cover_image) if listing else None,
        property_location=location,
        user_id=booking.user_id,
        user_name=user.full_name if user else None,
        user_phone=user.phone if user else None,
        user_email=user.email if user else None,
        company_id=booking.company_id,
        company_name=company.display_name if company else None,
        status=booking.status.value,
        visit_date=booking.visit_date,
        visit_time=booking.visit_time,
        notes=booking.notes,
        offer_amount=getattr(booking, "offer_amount", None),
        id_image=file_url(UploadType.GENERAL, getattr(booking, "id_image", None)),
        can_cancel=booking.status in kind.active,
        is_upcoming=is_upcoming and booking.status in kind.active,
        days_until_visit=(booking.visit_date - now.date()).days,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


def user_bookings(db: Session, kind: BookingKind, user: User) -> UserBookings:
    """A requester's own bookings, newest first, with per-status counts."""
    model = kind.model
    rows = db.query(model).filter(model.user_id == user.id).order_by(model.created_at.desc(), model.id.desc()).all()
    by_status = {status.value: 0 for status in kind.statuses}
    for row in rows:
        by_status[row.status.value] += 1
    now = utcnow()
    return UserBookings(
        items=[booking_response(kind, row, now) for row in rows],
        stats=BookingStats(total=len(rows), by_status=by_status),
    )
