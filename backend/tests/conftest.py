"""Shared fixtures: an in-memory database, a temporary upload folder and seeded accounts."""

import os
import tempfile

os.environ.setdefault("ENVIRONMENT", "test")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="realestate-uploads-")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ALLOWED_HOSTS"] = '["*"]'
os.environ["SECRET_KEY"] = "test-secret-key-for-the-marketplace-suite"
os.environ["LOG_FORMAT"] = "text"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"

import pytest
from fastapi.testclient import TestClient

from realestate_api.core.database import Base, SessionLocal, engine
from realestate_api.core.security import create_access_token, get_password_hash
from realestate_api.main import app
from realestate_api.models.category import FinalType, MainType, SubType
from realestate_api.models.location import City, Neighborhood
from realestate_api.models.real_estate import RealEstate
from realestate_api.models.user import User, UserRole


@pytest.fixture(autouse=True)
def _reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def make_user(db, username: str, role: UserRole = UserRole.USER, **fields) -> User:
    user = User(
        username=username,
        full_name=fields.pop("full_name", username.title()),
        hashed_password=get_password_hash(fields.pop("password", "secret123")),
        role=role,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.username, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(db):
    return make_user(db, "admin", UserRole.ADMIN, full_name="Site Admin")


@pytest.fixture
def company(db):
    return make_user(db, "acme", UserRole.COMPANY, full_name="Acme Owner", company_name="Acme Homes", company_license="LIC-1")


@pytest.fixture
def other_company(db):
    return make_user(db, "globex", UserRole.COMPANY, full_name="Globex Owner", company_name="Globex", company_license="LIC-2")


@pytest.fixture
def alice(db):
    return make_user(db, "alice", full_name="Alice")


@pytest.fixture
def bob(db):
    return make_user(db, "bob", full_name="Bob")


@pytest.fixture
def taxonomy(db):
    city = City(name="Damascus")
    db.add(city)
    db.flush()
    neighborhood = Neighborhood(name="Mezzeh", city_id=city.id)
    main_type = MainType(name="Residential")
    db.add_all([neighborhood, main_type])
    db.flush()
    sub_type = SubType(name="Apartments", main_type_id=main_type.id)
    db.add(sub_type)
    db.flush()
    final_type = FinalType(name="Flat", sub_type_id=sub_type.id)
    db.add(final_type)
    db.commit()
    return {
        "city_id": city.id,
        "neighborhood_id": neighborhood.id,
        "main_type_id": main_type.id,
        "sub_type_id": sub_type.id,
        "final_type_id": final_type.id,
    }


def make_listing(db, taxonomy: dict, company: User | None = None, **fields) -> RealEstate:
    listing = RealEstate(
        title=fields.pop("title", "Sunny flat"),
        price=fields.pop("price", 100000),
        cover_image=fields.pop("cover_image", "cover.jpg"),
        company_id=company.id if company else None,
        **taxonomy,
        **fields,
    )
    db.add(listing)
    db.commit()
    db.refresh(listing)
    return listing


@pytest.fixture
def listing(db, taxonomy, company):
    return make_listing(db, taxonomy, company)
