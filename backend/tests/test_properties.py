from datetime import date

import pytest

from conftest import auth_headers
from realestate_api.core.errors import ConflictError, NotFoundError, ValidationError
from realestate_api.models.property import PropertyDataType, PropertyValue
from realestate_api.services.properties import (
    define_property,
    delete_property,
    encode_value,
    get_listing_properties,
    set_listing_properties,
)


def _define_defaults(db, final_type_id):
    rooms = define_property(db, final_type_id, "rooms", "Rooms", "number", is_filter=True, is_required=True)
    view = define_property(db, final_type_id, "view", "View", "single_choice", allowed_values=["sea", "city"], is_filter=True)
    extras = define_property(db, final_type_id, "extras", "Extras", "multiple_choice", allowed_values=["pool", "gym", "garden"], is_filter=True)
    db.commit()
    return rooms, view, extras


def test_define_property_rejects_duplicate_key(db, taxonomy):
    define_property(db, taxonomy["final_type_id"], "rooms", "Rooms", "number")
    db.commit()
    with pytest.raises(ConflictError) as exc:
        define_property(db, taxonomy["final_type_id"], "rooms", "Rooms again", "number")
    assert exc.value.code == "PROPERTY_KEY_EXISTS"


def test_define_property_requires_existing_final_type(db):
    with pytest.raises(NotFoundError):
        define_property(db, 999, "rooms", "Rooms", "number")


def test_choice_types_need_allowed_values(db, taxonomy):
    with pytest.raises(ValidationError) as exc:
        define_property(db, taxonomy["final_type_id"], "extras", "Extras", "multiple_choice")
    assert exc.value.code == "ALLOWED_VALUES_REQUIRED"


def test_unknown_data_type(db, taxonomy):
    with pytest.raises(ValidationError) as exc:
        define_property(db, taxonomy["final_type_id"], "x", "X", "color")
    assert exc.value.code == "INVALID_DATA_TYPE"


def test_file_property_allowed_values_are_normalized(db, taxonomy):
    prop = define_property(
        db,
        taxonomy["final_type_id"],
        "deed",
        "Deed",
        "file",
        allowed_values={"extensions": ["PDF", ".jpg"], "mimeTypes": ["application/pdf"]},
    )
    db.commit()
    assert prop.data_type == PropertyDataType.FILE
    assert '".pdf"' in prop.allowed_values
    assert '"mime_types"' in prop.allowed_values

    with pytest.raises(ValidationError):
        define_property(db, taxonomy["final_type_id"], "scan", "Scan", "file", allowed_values=["pdf"])


def test_strict_encoding_checks_type(db, taxonomy):
    rooms, view, extras = _define_defaults(db, taxonomy["final_type_id"])
    assert encode_value(rooms, "3") == "3"
    assert encode_value(rooms, 2.5) == "2.5"
    assert encode_value(extras, ["pool", "gym"]) == '["pool", "gym"]'
    with pytest.raises(ValidationError) as exc:
        encode_value(rooms, "three")
    assert exc.value.code == "INVALID_PROPERTY_VALUE"
    assert "rooms" in exc.value.message
    with pytest.raises(ValidationError):
        encode_value(view, "mountain")
    with pytest.raises(ValidationError):
        encode_value(extras, ["pool", "sauna"])
    assert encode_value(view, "mountain", strict=False) == "mountain"


def test_set_listing_properties_replaces_whole_set(db, taxonomy, listing):
    _define_defaults(db, taxonomy["final_type_id"])
    written = set_listing_properties(db, listing.id, listing.final_type_id, {"rooms": 3, "view": "sea", "unknown": 1})
    db.commit()
    assert written == 2

    set_listing_properties(db, listing.id, listing.final_type_id, {"extras": ["pool"]})
    db.commit()
    values = get_listing_properties(db, listing.id)
    assert set(values) == {"extras"}
    assert values["extras"].typed_value == ["pool"]
    assert values["extras"].property.data_type == PropertyDataType.MULTIPLE_CHOICE


def test_set_listing_properties_skips_empty_values(db, taxonomy, listing):
    _define_defaults(db, taxonomy["final_type_id"])
    written = set_listing_properties(db, listing.id, listing.final_type_id, {"rooms": "", "view": None, "extras": []})
    assert written == 0


def test_required_properties_enforced_on_creation(db, taxonomy, listing):
    _define_defaults(db, taxonomy["final_type_id"])
    with pytest.raises(ValidationError) as exc:
        set_listing_properties(db, listing.id, listing.final_type_id, {"view": "sea"}, require_all=True)
    assert exc.value.code == "MISSING_REQUIRED_PROPERTY"


def test_typed_values_on_read(db, taxonomy, listing):
    final_type_id = taxonomy["final_type_id"]
    define_property(db, final_type_id, "built", "Built", "date")
    define_property(db, final_type_id, "furnished", "Furnished", "boolean")
    define_property(db, final_type_id, "area", "Area", "number")
    db.commit()
    set_listing_properties(db, listing.id, final_type_id, {"built": "2020-05-01", "furnished": "1", "area": "120.5"})
    db.commit()
    values = get_listing_properties(db, listing.id)
    assert values["built"].typed_value == date(2020, 5, 1)
    assert values["furnished"].value == "true"
    assert values["furnished"].typed_value is True
    assert values["area"].typed_value == 120.5


def test_large_integers_keep_their_digits(db, taxonomy, listing):
    rooms, _, _ = _define_defaults(db, taxonomy["final_type_id"])
    assert encode_value(rooms, "12345678901234567890") == "12345678901234567890"
    assert encode_value(rooms, 12345678901234567890) == "12345678901234567890"
    assert encode_value(rooms, " -42 ") == "-42"

    set_listing_properties(db, listing.id, listing.final_type_id, {"rooms": "12345678901234567890"})
    db.commit()
    assert get_listing_properties(db, listing.id)["rooms"].typed_value == 12345678901234567890


def test_file_max_size_must_be_numeric(db, taxonomy):
    with pytest.raises(ValidationError) as exc:
        define_property(
            db,
            taxonomy["final_type_id"],
            "deed",
            "Deed",
            "file",
            allowed_values={"extensions": [".pdf"], "max_size": "large"},
        )
    assert exc.value.code == "ALLOWED_VALUES_REQUIRED"


def test_file_values_are_rejected_by_set_listing_properties(db, taxonomy, listing):
    define_property(db, taxonomy["final_type_id"], "deed", "Deed", "file", allowed_values={"extensions": [".pdf"]})
    db.commit()
    with pytest.raises(ValidationError) as exc:
        set_listing_properties(db, listing.id, listing.final_type_id, {"deed": {"filename": "someone-else.pdf"}})
    assert exc.value.code == "INVALID_PROPERTY_VALUE"
    assert "deed" in exc.value.message


def test_delete_property_with_values_conflicts(db, taxonomy, listing):
    rooms, _, _ = _define_defaults(db, taxonomy["final_type_id"])
    db.add(PropertyValue(real_estate_id=listing.id, property_id=rooms.id, value="3"))
    db.commit()
    with pytest.raises(ConflictError) as exc:
        delete_property(db, rooms)
    assert exc.value.code == "PROPERTY_HAS_VALUES"


def test_property_routes(client, admin, taxonomy):
    headers = auth_headers(admin)
    payload = {
        "final_type_id": taxonomy["final_type_id"],
        "property_key": "rooms",
        "property_name": "Rooms",
        "data_type": "number",
        "is_filter": True,
        "group_name": "layout",
    }
    created = client.post("/api/properties", json=payload, headers=headers)
    assert created.status_code == 201
    prop_id = created.json()["data"]["id"]
    assert created.json()["data"]["data_type"] == "number"

    conflict = client.post("/api/properties", json=payload, headers=headers)
    assert conflict.status_code == 409

    bulk = client.post(
        "/api/properties/bulk",
        json={
            "properties": [
                payload,
                {**payload, "property_key": "baths", "property_name": "Baths"},
                {**payload, "property_key": "floor", "property_name": "Floor", "is_filter": False, "group_name": "general"},
            ]
        },
        headers=headers,
    )
    assert bulk.status_code == 201
    assert bulk.json()["data"] == {"created": 2, "skipped": 1, "total": 3}

    groups = client.get("/api/properties/groups").json()["data"]
    assert {g["group_name"]: g["count"] for g in groups} == {"general": 1, "layout": 2}

    filters = client.get("/api/properties/filters", params={"final_type_id": taxonomy["final_type_id"]}).json()["data"]
    assert sorted(p["property_key"] for p in filters) == ["baths", "rooms"]

    one = client.get(f"/api/properties/{prop_id}").json()["data"]
    assert one["values_count"] == 0
    assert one["final_type_name"] == "Flat"

    renamed = client.put(f"/api/properties/{prop_id}", json={"property_name": "Bedrooms"}, headers=headers)
    assert renamed.json()["data"]["property_name"] == "Bedrooms"

    assert client.delete(f"/api/properties/{prop_id}", headers=headers).status_code == 200


def test_property_writes_require_admin(client, company, taxonomy):
    response = client.post(
        "/api/properties",
        json={"final_type_id": taxonomy["final_type_id"], "property_key": "rooms", "property_name": "Rooms", "data_type": "number"},
        headers=auth_headers(company),
    )
    assert response.status_code == 403
