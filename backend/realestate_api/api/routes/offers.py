from datetime import date

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import get_current_user
from realestate_api.models.user import User
from realestate_api.schemas.booking import BookingResponse, BookingStats, BookingUpdate, UserBookings
from realestate_api.schemas.common import ApiResponse, Page, paginate
from realestate_api.services.access import ensure_access
from realestate_api.services.audit import audit_event, client_ip
from realestate_api.services.bookings import (
    OFFER,
    booking_response,
    booking_stats,
    create_booking,
    delete_booking,
    get_booking,
    list_bookings,
    upcoming_bookings,
    update_booking,
    user_bookings,
    validate_offer_amount,
)
from realestate_api.services.uploads import UploadType, check_storage, delete_stored, discard, save_upload

router = APIRouter(prefix="/offers", tags=["offers"])


@router.post("", response_model=ApiResponse[BookingResponse], status_code=201)
def create_offer(
    real_estate_id: int = Form(...),
    visit_date: date = Form(...),
    visit_time: str = Form(..., min_length=1, max_length=8),
    offer_amount: str = Form(...),
    notes: str | None = Form(default=None),
    id_image: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    amount = validate_offer_amount(offer_amount)
    stored = None
    if id_image is not None and id_image.filename:
        check_storage()
        stored = save_upload(id_image, UploadType.GENERAL)
    try:
        offer = create_booking(
            db,
            OFFER,
            real_estate_id,
            current_user,
            visit_date,
            visit_time,
            notes=notes,
            offer_amount=amount,
            id_image=stored.filename if stored else None,
        )
    except Exception:
        if stored:
            discard([stored])
        raise
    return ApiResponse(data=booking_response(OFFER, offer), message="Offer created successfully")


@router.get("/mine", response_model=ApiResponse[UserBookings])
def my_offers(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ApiResponse(data=user_bookings(db, OFFER, current_user))


@router.get("/stats", response_model=ApiResponse[BookingStats])
def offer_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ApiResponse(data=booking_stats(db, OFFER, current_user))


@router.get("/upcoming", response_model=ApiResponse[list[BookingResponse]])
def upcoming_offers(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ApiResponse(data=[booking_response(OFFER, o) for o in upcoming_bookings(db, OFFER, current_user)])


@router.get("", response_model=ApiResponse[Page[BookingResponse]])
def list_offers(
    status: str | None = Query(default=None),
    real_estate_id: int | None = Query(default=None),
    user_id: int | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = list_bookings(db, OFFER, current_user, status, real_estate_id, user_id, page, limit)
    return ApiResponse(data=paginate([booking_response(OFFER, o) for o in items], total, page, limit))


@router.get("/{offer_id}", response_model=ApiResponse[BookingResponse])
def get_offer(offer_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    offer = get_booking(db, OFFER, offer_id)
    ensure_access(
        current_user,
        "You do not have permission to view this offer",
        user_id=offer.user_id,
        company_id=offer.company_id,
        listing_company_id=offer.real_estate.company_id if offer.real_estate else None,
    )
    return ApiResponse(data=booking_response(OFFER, offer))


@router.put("/{offer_id}", response_model=ApiResponse[BookingResponse])
def update_offer(
    offer_id: int,
    request: Request,
    payload: BookingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    offer = get_booking(db, OFFER, offer_id)
    previous = offer.status
    offer = update_booking(db, OFFER, offer, current_user, payload.model_dump(exclude_unset=True))
    if offer.status != previous:
        audit_event(
            db,
            "offer_status_changed",
            "offer",
            user_id=current_user.id,
            resource_id=offer.id,
            ip_address=client_ip(request),
            details=f"{previous.value}->{offer.status.value}",
        )
    return ApiResponse(data=booking_response(OFFER, offer), message="Offer updated successfully")


@router.delete("/{offer_id}", response_model=ApiResponse[None])
def delete_offer(offer_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    offer = get_booking(db, OFFER, offer_id)
    id_image = offer.id_image
    delete_booking(db, OFFER, offer, current_user)
    if id_image:
        delete_stored(UploadType.GENERAL, id_image)
    return ApiResponse(data=None, message="Offer deleted successfully")
