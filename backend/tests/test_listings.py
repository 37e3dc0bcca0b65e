import json
from pathlib import Path

from conftest import auth_headers, make_listing
from realestate_api.models.real_estate import RealEstate
from realestate_api.services.properties import define_property, set_listing_properties
from realestate_api.services.uploads import UploadType, folder_for

PNG = b"\x89PNG\r\n\x1a\n fake image"


def _form(taxonomy, **extra):
    data = {"title": "Garden villa", "price": "250000", **{k: str(v) for k, v in taxonomy.items()}}
    data.update(extra)
    return data


def _cover():
    return {"cover_image": ("cover.png", PNG, "image/png")}


def _define(db, taxonomy):
    define_property(db, taxonomy["final_type_id"], "rooms", "Rooms", "number", is_filter=True, is_required=True)
    define_property(db, taxonomy["final_type_id"], "extras", "Extras", "multiple_choice", allowed_values=["pool", "gym"], is_filter=True)
    db.commit()


def test_company_creates_listing_with_properties(client, db, company, taxonomy):
    _define(db, taxonomy)
    response = client.post(
        "/api/realestate",
        data=_form(taxonomy, properties=json.dumps({"rooms": 4, "extras": ["pool"]}), others=json.dumps({"parking": "2"})),
        files=_cover(),
        headers=auth_headers(company),
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["company_id"] == company.id
    assert data["company_name"] == "Acme Homes"
    assert data["city_name"] == "Damascus"
    assert data["others"] == {"parking": "2"}
    assert data["properties"]["rooms"]["value"] == "4"
    assert data["properties"]["extras"]["typed_value"] == ["pool"]
    assert data["cover_image"].startswith("http://testserver/uploads/realestate/")
    stored = Path(folder_for(UploadType.REALESTATE)) / data["cover_image"].rsplit("/", 1)[1]
    assert stored.exists()


def test_missing_required_property_rejects_listing_and_removes_upload(client, db, company, taxonomy):
    _define(db, taxonomy)
    before = set(folder_for(UploadType.REALESTATE).iterdir())
    response = client.post(
        "/api/realestate",
        data=_form(taxonomy, properties=json.dumps({"extras": ["gym"]})),
        files=_cover(),
        headers=auth_headers(company),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_REQUIRED_PROPERTY"
    assert db.query(RealEstate).count() == 0
    assert set(folder_for(UploadType.REALESTATE).iterdir()) == before


def test_inconsistent_references_are_rejected(client, db, company, taxonomy):
    response = client.post(
        "/api/realestate",
        data=_form(taxonomy, neighborhood_id="999"),
        files=_cover(),
        headers=auth_headers(company),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_REFERENCE"


def test_plain_user_cannot_create_listing(client, alice, taxonomy):
    response = client.post("/api/realestate", data=_form(taxonomy), files=_cover(), headers=auth_headers(alice))
    assert response.status_code == 403


def test_search_by_property_filters(client, db, company, taxonomy):
    _define(db, taxonomy)
    for rooms, extras in ((3, ["pool"]), (4, ["gym"]), (3, ["pool", "gym"])):
        response = client.post(
            "/api/realestate",
            data=_form(taxonomy, properties=json.dumps({"rooms": rooms, "extras": extras})),
            files=_cover(),
            headers=auth_headers(company),
        )
        assert response.status_code == 201

    by_rooms = client.get("/api/realestate", params={"filters": json.dumps({"rooms": 3})}).json()["data"]
    assert by_rooms["pagination"]["total"] == 2

    by_extra = client.get("/api/realestate", params={"filters": json.dumps({"extras": "gym"})}).json()["data"]
    assert by_extra["pagination"]["total"] == 2

    both = client.get("/api/realestate", params={"filters": json.dumps({"rooms": 3, "extras": "gym"})}).json()["data"]
    assert both["pagination"]["total"] == 1

    bad = client.get("/api/realestate", params={"filters": json.dumps({"colour": "red"})})
    assert bad.status_code == 400
    assert bad.json()["error"]["code"] == "INVALID_FILTER"


def test_property_filter_matches_wildcards_literally(client, db, company, taxonomy):
    define_property(db, taxonomy["final_type_id"], "tags", "Tags", "multiple_choice", allowed_values=["a", "100%"], is_filter=True)
    db.commit()
    for tags in (["a"], ["100%"]):
        listing = make_listing(db, taxonomy, company)
        set_listing_properties(db, listing.id, listing.final_type_id, {"tags": tags})
        db.commit()

    def total(value):
        response = client.get("/api/realestate", params={"filters": json.dumps({"tags": value})})
        return response.json()["data"]["pagination"]["total"]

    assert total("_") == 0
    assert total("%") == 0
    assert total("100%") == 1
    assert total("a") == 1


def test_price_range_and_pagination(client, db, company, taxonomy):
    for price in (100, 200, 300):
        make_listing(db, taxonomy, company, price=price)
    data = client.get("/api/realestate", params={"min_price": 150, "limit": 1}).json()["data"]
    assert data["pagination"] == {"total": 2, "page": 1, "limit": 1, "total_pages": 2}


def test_update_replaces_property_set(client, db, company, taxonomy):
    _define(db, taxonomy)
    created = client.post(
        "/api/realestate",
        data=_form(taxonomy, properties=json.dumps({"rooms": 4, "extras": ["pool"]})),
        files=_cover(),
        headers=auth_headers(company),
    ).json()["data"]

    response = client.put(
        f"/api/realestate/{created['id']}",
        json={"title": "Renovated villa", "properties": {"rooms": 5}},
        headers=auth_headers(company),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "Renovated villa"
    assert set(data["properties"]) == {"rooms"}
    assert data["properties"]["rooms"]["value"] == "5"


def test_only_owner_or_admin_can_modify(client, db, admin, company, other_company, listing):
    denied = client.put(f"/api/realestate/{listing.id}", json={"title": "Mine now"}, headers=auth_headers(other_company))
    assert denied.status_code == 403
    assert denied.json()["error"]["code"] == "ACCESS_DENIED"

    allowed = client.put(f"/api/realestate/{listing.id}", json={"price": 1}, headers=auth_headers(admin))
    assert allowed.status_code == 200
    assert allowed.json()["data"]["price"] == 1


def test_delete_listing(client, db, company, listing):
    response = client.delete(f"/api/realestate/{listing.id}", headers=auth_headers(company))
    assert response.status_code == 200
    missing = client.get(f"/api/realestate/{listing.id}")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "PROPERTY_NOT_FOUND"


def test_attachments_add_and_remove(client, company, listing):
    added = client.post(
        f"/api/realestate/{listing.id}/files",
        files=[("files", ("a.png", PNG, "image/png")), ("files", ("b.png", PNG, "image/png"))],
        headers=auth_headers(company),
    )
    assert added.status_code == 201
    files = added.json()["data"]
    assert len(files) == 2

    listed = client.get("/api/files", params={"real_estate_id": listing.id}).json()["data"]
    assert [f["id"] for f in listed] == [f["id"] for f in files]

    removed = client.delete(f"/api/realestate/files/{files[0]['id']}", headers=auth_headers(company))
    assert removed.status_code == 200
    assert len(client.get(f"/api/realestate/{listing.id}").json()["data"]["files"]) == 1


def test_wrong_upload_type_is_rejected(client, company, listing):
    response = client.post(
        f"/api/realestate/{listing.id}/files",
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
        headers=auth_headers(company),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_FILE_TYPE"


def test_similar_listings_are_ranked(client, db, company, taxonomy):
    base = make_listing(db, taxonomy, company, price=1000)
    close = make_listing(db, taxonomy, company, price=1100, title="Close match")
    make_listing(db, taxonomy, company, price=5000, title="Pricier")
    data = client.get(f"/api/realestate/{base.id}/similar", params={"limit": 2}).json()["data"]
    assert data[0]["id"] == close.id
    assert data[0]["similarity_score"] == 90
    assert base.id not in [d["id"] for d in data]


def test_my_listings_for_company(client, db, company, other_company, taxonomy):
    make_listing(db, taxonomy, company)
    make_listing(db, taxonomy, other_company)
    data = client.get("/api/realestate/mine", headers=auth_headers(company)).json()["data"]
    assert data["pagination"]["total"] == 1
    assert data["items"][0]["company_id"] == company.id
