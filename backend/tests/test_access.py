from types import SimpleNamespace

import pytest

from realestate_api.core.errors import ForbiddenError, ValidationError
from realestate_api.models.user import UserRole, parse_role
from realestate_api.services.access import can_access, company_scope, ensure_access


def _actor(role, ident=1):
    return SimpleNamespace(id=ident, role=role)


def test_admin_passes_everything():
    assert can_access(_actor(UserRole.ADMIN), user_id=5, company_id=6, listing_company_id=7)


def test_company_passes_on_either_company_column():
    company = _actor(UserRole.COMPANY, 7)
    assert can_access(company, company_id=7)
    assert can_access(company, company_id=3, listing_company_id=7)
    assert not can_access(company, company_id=3, listing_company_id=4)
    assert not can_access(company)


def test_requester_passes_for_own_rows():
    user = _actor(UserRole.USER, 9)
    assert can_access(user, user_id=9, company_id=3)
    assert not can_access(user, user_id=10, company_id=9)


def test_ensure_access_raises_forbidden():
    with pytest.raises(ForbiddenError) as exc:
        ensure_access(_actor(UserRole.USER_VIP), "nope", user_id=2)
    assert exc.value.code == "ACCESS_DENIED"
    assert exc.value.status_code == 403


def test_company_scope():
    assert company_scope(_actor(UserRole.COMPANY, 4)) == 4
    assert company_scope(_actor(UserRole.ADMIN, 1)) is None


@pytest.mark.parametrize(
    "raw,expected",
    [("admin", UserRole.ADMIN), ("ADMIN", UserRole.ADMIN), ("user_vip", UserRole.USER_VIP), (" Company ", UserRole.COMPANY)],
)
def test_parse_role_accepts_names_and_values(raw, expected):
    assert parse_role(raw) == expected


def test_parse_role_rejects_unknown():
    with pytest.raises(ValidationError) as exc:
        parse_role("owner")
    assert exc.value.code == "INVALID_ROLE"
