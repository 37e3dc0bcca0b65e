from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from realestate_api.core.config import get_settings
from realestate_api.core.database import get_db
from realestate_api.core.deps import get_current_user, require_admin
from realestate_api.core.errors import AuthError, ConflictError, ForbiddenError, ValidationError
from realestate_api.core.rate_limit import limiter
from realestate_api.core.security import create_access_token, get_password_hash, verify_password
from realestate_api.models.building import Building
from realestate_api.models.offer import Offer
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.reservation import Reservation
from realestate_api.models.user import User, UserRole, parse_role
from realestate_api.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
    UserUpdate,
)
from realestate_api.schemas.common import ApiResponse, Page, paginate
from realestate_api.services.audit import audit_event, client_ip
from realestate_api.services.taxonomy import ensure_no_dependents, get_or_404

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


def _issue_token(user: User) -> TokenResponse:
    token = create_access_token(user.id, user.username, user.role.value)
    return TokenResponse(token=token, user=UserResponse.model_validate(user))


def _ensure_unique(db: Session, username: str | None, email: str | None, exclude_id: int | None = None) -> None:
    clauses = []
    if username:
        clauses.append(User.username == username)
    if email:
        clauses.append(User.email == email)
    if not clauses:
        return
    q = db.query(User.id).filter(or_(*clauses))
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first():
        raise ConflictError("User already exists", code="USER_EXISTS")


@router.post("/login", response_model=ApiResponse[TokenResponse])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == payload.username.strip()).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        audit_event(
            db,
            "login_failed",
            "auth",
            user_id=user.id if user else None,
            ip_address=client_ip(request),
            details=payload.username,
        )
        raise AuthError("Invalid username or password", code="INVALID_CREDENTIALS")
    if not user.is_active:
        raise ForbiddenError("Account is disabled", code="ACCOUNT_DISABLED")

    audit_event(db, "login_success", "auth", user_id=user.id, ip_address=client_ip(request))
    return ApiResponse(data=_issue_token(user), message="Login successful")


@router.post("/register", response_model=ApiResponse[TokenResponse], status_code=201)
@limiter.limit(settings.REGISTER_RATE_LIMIT)
def register(request: Request, payload: RegisterRequest, db: Session = Depends(get_db)):
    username = payload.username.strip()
    email = payload.email.lower() if payload.email else None
    _ensure_unique(db, username, email)

    # Company accounts need both identifying fields; anything less registers a plain user.
    is_company = bool(payload.company_name and payload.company_license)
    user = User(
        username=username,
        email=email,
        hashed_password=get_password_hash(payload.password),
        full_name=payload.full_name.strip(),
        phone=payload.phone,
        role=UserRole.COMPANY if is_company else UserRole.USER,
        company_name=payload.company_name if is_company else None,
        company_license=payload.company_license if is_company else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    audit_event(db, "register", "auth", user_id=user.id, ip_address=client_ip(request), details=user.role.value)
    return ApiResponse(data=_issue_token(user), message="User registered successfully")


@router.get("/me", response_model=ApiResponse[UserResponse])
def me(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=current_user)


@router.put("/change-password", response_model=ApiResponse[None])
def change_password(
    request: Request,
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise ValidationError("Current password is incorrect", code="INVALID_PASSWORD")
    current_user.hashed_password = get_password_hash(payload.new_password)
    db.commit()
    audit_event(db, "password_changed", "auth", user_id=current_user.id, ip_address=client_ip(request))
    return ApiResponse(data=None, message="Password changed successfully")


@router.get("/users", response_model=ApiResponse[Page[UserResponse]])
def list_users(
    role: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    q = db.query(User)
    if role:
        q = q.filter(User.role == parse_role(role))
    if is_active is not None:
        q = q.filter(User.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(User.username.ilike(pattern), User.full_name.ilike(pattern), User.email.ilike(pattern)))
    total = q.count()
    users = q.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return ApiResponse(data=paginate([UserResponse.model_validate(u) for u in users], total, page, limit))


@router.put("/users/{user_id}", response_model=ApiResponse[UserResponse])
def update_user(
    user_id: int,
    request: Request,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = get_or_404(db, User, user_id, "user")
    changes = payload.model_dump(exclude_unset=True)
    if "role" in changes:
        changes["role"] = parse_role(changes["role"]) if changes["role"] is not None else user.role
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        _ensure_unique(db, None, changes["email"], exclude_id=user.id)
    if user.id == admin.id and changes.get("is_active") is False:
        raise ValidationError("You cannot deactivate your own account", code="SELF_MODIFICATION")
    if user.id == admin.id and changes.get("role", UserRole.ADMIN) != UserRole.ADMIN:
        raise ValidationError("You cannot change your own role", code="SELF_MODIFICATION")

    for field, value in changes.items():
        if field in ("full_name", "is_active", "role") and value is None:
            continue
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    audit_event(
        db,
        "user_updated",
        "user",
        user_id=admin.id,
        resource_id=user.id,
        ip_address=client_ip(request),
        details=",".join(sorted(changes)),
    )
    return ApiResponse(data=user, message="User updated successfully")


@router.put("/users/{user_id}/reset-password", response_model=ApiResponse[None])
def reset_password(
    user_id: int,
    request: Request,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = get_or_404(db, User, user_id, "user")
    user.hashed_password = get_password_hash(payload.new_password)
    db.commit()
    audit_event(db, "password_reset", "user", user_id=admin.id, resource_id=user.id, ip_address=client_ip(request))
    return ApiResponse(data=None, message="Password reset successfully")


@router.delete("/users/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = get_or_404(db, User, user_id, "user")
    if user.id == admin.id:
        raise ValidationError("You cannot delete your own account", code="SELF_MODIFICATION")
    ensure_no_dependents(
        db,
        "user",
        (RealEstate.company_id, user.id, "listings"),
        (Building.company_id, user.id, "buildings"),
        (Reservation.user_id, user.id, "reservations"),
        (Offer.user_id, user.id, "offers"),
    )
    db.delete(user)
    db.commit()
    audit_event(db, "user_deleted", "user", user_id=admin.id, resource_id=user_id, ip_address=client_ip(request))
    return ApiResponse(data=None, message="User deleted successfully")
