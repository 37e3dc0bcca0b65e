from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import get_current_user, require_admin
from realestate_api.models.user import User
from realestate_api.schemas.booking import (
    BookingResponse,
    BookingStats,
    BookingUpdate,
    ReservationCreate,
    SweepResult,
    UserBookings,
)
from realestate_api.schemas.common import ApiResponse, Page, paginate
from realestate_api.services.access import ensure_access
from realestate_api.services.audit import audit_event, client_ip
from realestate_api.services.bookings import (
    RESERVATION,
    booking_response,
    booking_stats,
    create_booking,
    delete_booking,
    get_booking,
    list_bookings,
    sweep_expired_reservations,
    upcoming_bookings,
    update_booking,
    user_bookings,
)

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("", response_model=ApiResponse[BookingResponse], status_code=201)
def create_reservation(
    payload: ReservationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    reservation = create_booking(
        db,
        RESERVATION,
        payload.real_estate_id,
        current_user,
        payload.visit_date,
        payload.visit_time,
        notes=payload.notes,
    )
    return ApiResponse(data=booking_response(RESERVATION, reservation), message="Reservation created successfully")


@router.get("/mine", response_model=ApiResponse[UserBookings])
def my_reservations(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ApiResponse(data=user_bookings(db, RESERVATION, current_user))


@router.get("/stats", response_model=ApiResponse[BookingStats])
def reservation_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ApiResponse(data=booking_stats(db, RESERVATION, current_user))


@router.get("/upcoming", response_model=ApiResponse[list[BookingResponse]])
def upcoming_reservations(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    rows = upcoming_bookings(db, RESERVATION, current_user)
    return ApiResponse(data=[booking_response(RESERVATION, r) for r in rows])


@router.post("/sweep", response_model=ApiResponse[SweepResult])
def sweep_reservations(request: Request, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    cancelled = sweep_expired_reservations(db)
    audit_event(db, "reservations_swept", "reservation", user_id=admin.id, ip_address=client_ip(request), details=str(cancelled))
    return ApiResponse(data=SweepResult(cancelled=cancelled), message=f"{cancelled} expired reservations cancelled")


@router.get("", response_model=ApiResponse[Page[BookingResponse]])
def list_reservations(
    status: str | None = Query(default=None),
    real_estate_id: int | None = Query(default=None),
    user_id: int | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = list_bookings(db, RESERVATION, current_user, status, real_estate_id, user_id, page, limit)
    return ApiResponse(data=paginate([booking_response(RESERVATION, r) for r in items], total, page, limit))


@router.get("/{reservation_id}", response_model=ApiResponse[BookingResponse])
def get_reservation(reservation_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    reservation = get_booking(db, RESERVATION, reservation_id)
    ensure_access(
        current_user,
        "You do not have permission to view this reservation",
        user_id=reservation.user_id,
        company_id=reservation.company_id,
        listing_company_id=reservation.real_estate.company_id if reservation.real_estate else None,
    )
    return ApiResponse(data=booking_response(RESERVATION, reservation))


@router.put("/{reservation_id}", response_model=ApiResponse[BookingResponse])
def update_reservation(
    reservation_id: int,
    request: Request,
    payload: BookingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    reservation = get_booking(db, RESERVATION, reservation_id)
    previous = reservation.status
    changes = payload.model_dump(exclude_unset=True, exclude={"offer_amount"})
    reservation = update_booking(db, RESERVATION, reservation, current_user, changes)
    if reservation.status != previous:
        audit_event(
            db,
            "reservation_status_changed",
            "reservation",
            user_id=current_user.id,
            resource_id=reservation.id,
            ip_address=client_ip(request),
            details=f"{previous.value}->{reservation.status.value}",
        )
    return ApiResponse(data=booking_response(RESERVATION, reservation), message="Reservation updated successfully")


@router.delete("/{reservation_id}", response_model=ApiResponse[None])
def delete_reservation(reservation_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    reservation = get_booking(db, RESERVATION, reservation_id)
    delete_booking(db, RESERVATION, reservation, current_user)
    return ApiResponse(data=None, message="Reservation deleted successfully")
