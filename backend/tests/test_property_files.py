from conftest import auth_headers, make_listing
from realestate_api.services.properties import define_property
from realestate_api.services.uploads import UploadType, folder_for

PDF = b"%PDF-1.4 deed"


def _deed(db, taxonomy):
    prop = define_property(
        db,
        taxonomy["final_type_id"],
        "deed",
        "Title deed",
        "file",
        allowed_values={"extensions": [".pdf"], "mime_types": ["application/pdf"]},
    )
    db.commit()
    return prop


def test_upload_replace_and_delete_property_file(client, db, company, taxonomy, listing):
    prop = _deed(db, taxonomy)
    url = f"/api/properties/files/{listing.id}/{prop.id}"

    first = client.post(f"{url}/upload", files={"file": ("deed.pdf", PDF, "application/pdf")}, headers=auth_headers(company))
    assert first.status_code == 201
    info = first.json()["data"]
    assert info["original_name"] == "deed.pdf"
    assert info["url"].startswith("http://testserver/uploads/properties/deed/")

    second = client.post(f"{url}/upload", files={"file": ("deed-v2.pdf", PDF, "application/pdf")}, headers=auth_headers(company))
    assert second.status_code == 201
    assert second.json()["data"]["filename"] != info["filename"]

    listed = client.get(f"/api/properties/files/{listing.id}").json()["data"]
    assert [f["original_name"] for f in listed] == ["deed-v2.pdf"]

    values = client.get(f"/api/properties/realestate/{listing.id}/values").json()["data"]
    assert values["deed"]["typed_value"]["filename"] == second.json()["data"]["filename"]

    assert client.delete(url, headers=auth_headers(company)).status_code == 200
    missing = client.get(url)
    assert missing.status_code == 404


def test_property_file_extension_is_checked(client, db, company, taxonomy, listing):
    prop = _deed(db, taxonomy)
    response = client.post(
        f"/api/properties/files/{listing.id}/{prop.id}/upload",
        files={"file": ("deed.png", b"\x89PNG", "image/png")},
        headers=auth_headers(company),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_FILE_TYPE"


def test_non_file_property_is_rejected(client, db, company, taxonomy, listing):
    rooms = define_property(db, taxonomy["final_type_id"], "rooms", "Rooms", "number")
    db.commit()
    response = client.post(
        f"/api/properties/files/{listing.id}/{rooms.id}/upload",
        files={"file": ("deed.pdf", PDF, "application/pdf")},
        headers=auth_headers(company),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "NOT_FILE_PROPERTY"


def test_only_listing_owner_uploads(client, db, other_company, taxonomy, listing):
    prop = _deed(db, taxonomy)
    response = client.post(
        f"/api/properties/files/{listing.id}/{prop.id}/upload",
        files={"file": ("deed.pdf", PDF, "application/pdf")},
        headers=auth_headers(other_company),
    )
    assert response.status_code == 403


def _upload(client, user, listing_id, prop_id, name="deed.pdf"):
    response = client.post(
        f"/api/properties/files/{listing_id}/{prop_id}/upload",
        files={"file": (name, PDF, "application/pdf")},
        headers=auth_headers(user),
    )
    assert response.status_code == 201
    return response.json()["data"]["filename"]


def test_file_values_cannot_be_set_through_listing_properties(client, db, company, other_company, taxonomy, listing):
    prop = _deed(db, taxonomy)
    theirs = make_listing(db, taxonomy, other_company, title="Globex tower")
    their_file = _upload(client, other_company, theirs.id, prop.id)

    response = client.put(
        f"/api/realestate/{listing.id}",
        json={"properties": {"deed": {"filename": their_file}}},
        headers=auth_headers(company),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_PROPERTY_VALUE"

    assert client.delete(f"/api/properties/files/{listing.id}/{prop.id}", headers=auth_headers(company)).status_code == 404
    assert (folder_for(UploadType.PROPERTIES, "deed") / their_file).exists()
    assert client.get(f"/api/properties/files/{theirs.id}/{prop.id}").status_code == 200


def test_replacing_properties_removes_stored_files(client, db, company, taxonomy, listing):
    prop = _deed(db, taxonomy)
    stored = folder_for(UploadType.PROPERTIES, "deed") / _upload(client, company, listing.id, prop.id)
    assert stored.exists()

    response = client.put(f"/api/realestate/{listing.id}", json={"properties": {}}, headers=auth_headers(company))
    assert response.status_code == 200
    assert response.json()["data"]["properties"] == {}
    assert not stored.exists()
