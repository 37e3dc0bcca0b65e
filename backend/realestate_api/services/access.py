from realestate_api.core.errors import ForbiddenError
from realestate_api.models.user import User, UserRole


def can_access(
    actor: User,
    *,
    user_id: int | None = None,
    company_id: int | None = None,
    listing_company_id: int | None = None,
) -> bool:
    """Ownership predicate shared by listings, buildings and bookings.

    Admins pass every check. A company passes when it owns the resource or the
    listing the resource hangs off. Everyone passes for rows they requested.
    """
    if actor.role == UserRole.ADMIN:
        return True
    if user_id is not None and user_id == actor.id:
        return True
    if actor.role == UserRole.COMPANY:
        return actor.id in {cid for cid in (company_id, listing_company_id) if cid is not None}
    return False


def ensure_access(actor: User, message: str = "You do not have permission to access this resource", **owners) -> None:
    if not can_access(actor, **owners):
        raise ForbiddenError(message, code="ACCESS_DENIED")


def ensure_listing_owner(actor: User, listing) -> None:
    ensure_access(
        actor,
        "You can only manage your own listings",
        company_id=listing.company_id,
    )


def company_scope(actor: User) -> int | None:
    """Company id results must be narrowed to, or None for an unrestricted admin view."""
    if actor.role == UserRole.COMPANY:
        return actor.id
    return None
