from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.orm import Session

from realestate_api.core.database import get_db
from realestate_api.core.deps import get_current_user, require_company_or_admin
from realestate_api.core.errors import ValidationError
from realestate_api.models.building import BuildingItem
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User
from realestate_api.schemas.common import ApiResponse, Page, paginate
from realestate_api.schemas.real_estate import (
    FileResponse,
    RealEstateResponse,
    RealEstateSummary,
    RealEstateUpdate,
    SimilarListing,
)
from realestate_api.services.access import company_scope, ensure_listing_owner
from realestate_api.services.audit import audit_event, client_ip
from realestate_api.services.listings import (
    add_attachments,
    create_listing,
    delete_listing,
    file_response,
    get_attachment,
    get_listing,
    listing_response,
    listing_summary,
    parse_json_object,
    remove_attachment,
    search_listings,
    similar_listings,
    update_listing,
)
from realestate_api.services.taxonomy import get_or_404
from realestate_api.services.uploads import UploadType, check_storage, discard, save_upload, save_uploads

router = APIRouter(prefix="/realestate", tags=["realestate"])


@router.get("", response_model=ApiResponse[Page[RealEstateSummary]])
def list_listings(
    city_id: int | None = Query(default=None),
    neighborhood_id: int | None = Query(default=None),
    final_city_id: int | None = Query(default=None),
    main_type_id: int | None = Query(default=None),
    sub_type_id: int | None = Query(default=None),
    final_type_id: int | None = Query(default=None),
    company_id: int | None = Query(default=None),
    building_id: int | None = Query(default=None),
    min_price: int | None = Query(default=None, ge=0),
    max_price: int | None = Query(default=None, ge=0),
    search: str | None = Query(default=None),
    filters: str | None = Query(default=None, description="JSON object of filterable property key to value"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    columns = {
        "city_id": city_id,
        "neighborhood_id": neighborhood_id,
        "final_city_id": final_city_id,
        "main_type_id": main_type_id,
        "sub_type_id": sub_type_id,
        "final_type_id": final_type_id,
        "company_id": company_id,
        "building_id": building_id,
    }
    items, total = search_listings(
        db,
        columns,
        parse_json_object(filters, "filters"),
        search=search,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=paginate([listing_summary(item) for item in items], total, page, limit))


@router.get("/mine", response_model=ApiResponse[Page[RealEstateSummary]])
def my_listings(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    items, total = search_listings(db, {"company_id": company_scope(current_user)}, {}, page=page, limit=limit)
    return ApiResponse(data=paginate([listing_summary(item) for item in items], total, page, limit))


@router.get("/building-item/{item_id}", response_model=ApiResponse[list[RealEstateSummary]])
def listings_for_building_item(item_id: int, db: Session = Depends(get_db)):
    get_or_404(db, BuildingItem, item_id, "building item")
    rows = db.query(RealEstate).filter(RealEstate.building_item_id == item_id).order_by(RealEstate.id).all()
    return ApiResponse(data=[listing_summary(row) for row in rows])


@router.delete("/files/{file_id}", response_model=ApiResponse[None])
def delete_listing_file(file_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    row = get_attachment(db, file_id)
    ensure_listing_owner(current_user, row.real_estate)
    remove_attachment(db, row)
    return ApiResponse(data=None, message="File deleted successfully")


@router.get("/{listing_id}", response_model=ApiResponse[RealEstateResponse])
def get_listing_detail(listing_id: int, db: Session = Depends(get_db)):
    return ApiResponse(data=listing_response(db, get_listing(db, listing_id)))


@router.get("/{listing_id}/similar", response_model=ApiResponse[list[SimilarListing]])
def get_similar(listing_id: int, limit: int = Query(default=10, ge=1, le=50), db: Session = Depends(get_db)):
    return ApiResponse(data=similar_listings(db, get_listing(db, listing_id), limit=limit))


@router.post("", response_model=ApiResponse[RealEstateResponse], status_code=201)
def create_listing_route(
    title: str = Form(..., min_length=1, max_length=200),
    price: int = Form(..., ge=0),
    city_id: int = Form(...),
    neighborhood_id: int = Form(...),
    main_type_id: int = Form(...),
    sub_type_id: int = Form(...),
    final_type_id: int = Form(...),
    final_city_id: int | None = Form(default=None),
    building_id: int | None = Form(default=None),
    building_item_id: int | None = Form(default=None),
    company_id: int | None = Form(default=None),
    description: str | None = Form(default=None),
    location: str | None = Form(default=None),
    view_time: str | None = Form(default=None),
    payment_method: str | None = Form(default=None),
    properties: str | None = Form(default=None),
    others: str | None = Form(default=None),
    cover_image: UploadFile = File(...),
    files: list[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    property_values = parse_json_object(properties, "properties")
    extra = parse_json_object(others, "others")
    if not cover_image.filename:
        raise ValidationError("cover_image is required", code="MISSING_FIELDS")

    check_storage()
    cover = save_upload(cover_image, UploadType.REALESTATE)
    attachments = []
    try:
        attachments = save_uploads([f for f in files if f.filename], UploadType.REALESTATE)
        fields = {
            "title": title.strip(),
            "price": price,
            "city_id": city_id,
            "neighborhood_id": neighborhood_id,
            "final_city_id": final_city_id,
            "main_type_id": main_type_id,
            "sub_type_id": sub_type_id,
            "final_type_id": final_type_id,
            "building_id": building_id,
            "building_item_id": building_item_id,
            "company_id": company_id,
            "description": description,
            "location": location,
            "view_time": view_time,
            "payment_method": payment_method,
        }
        listing = create_listing(db, current_user, fields, cover, attachments, property_values, extra)
    except Exception:
        discard([cover, *attachments])
        raise
    return ApiResponse(data=listing_response(db, listing), message="Property created successfully")


@router.put("/{listing_id}", response_model=ApiResponse[RealEstateResponse])
def update_listing_route(
    listing_id: int,
    payload: RealEstateUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    listing = get_listing(db, listing_id)
    ensure_listing_owner(current_user, listing)
    listing = update_listing(db, listing, current_user, payload.model_dump(exclude_unset=True))
    return ApiResponse(data=listing_response(db, listing), message="Property updated successfully")


@router.delete("/{listing_id}", response_model=ApiResponse[None])
def delete_listing_route(
    listing_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    listing = get_listing(db, listing_id)
    ensure_listing_owner(current_user, listing)
    delete_listing(db, listing)
    audit_event(db, "listing_deleted", "realestate", user_id=current_user.id, resource_id=listing_id, ip_address=client_ip(request))
    return ApiResponse(data=None, message="Property deleted successfully")


@router.post("/{listing_id}/files", response_model=ApiResponse[list[FileResponse]], status_code=201)
def add_listing_files(
    listing_id: int,
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_company_or_admin),
):
    listing = get_listing(db, listing_id)
    ensure_listing_owner(current_user, listing)
    check_storage()
    stored = save_uploads([f for f in files if f.filename], UploadType.REALESTATE)
    try:
        rows = add_attachments(db, listing, stored)
    except Exception:
        discard(stored)
        raise
    return ApiResponse(data=[file_response(row) for row in rows], message="Files uploaded successfully")
