from conftest import auth_headers, make_listing


def _building(client, user, **extra):
    payload = {
        "title": "Palm Tower",
        "status": "under_construction",
        "building_age": 0,
        "items": [{"name": "A1", "price": 90000, "area": 85.5, "type": "apartment"}],
        **extra,
    }
    return client.post("/api/buildings", json=payload, headers=auth_headers(user))


def test_company_creates_building_for_itself(client, company):
    response = _building(client, company)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["company_id"] == company.id
    assert data["location"] == "0.0,0.0"
    assert data["items_count"] == 1
    assert data["items"][0]["area"] == 85.5


def test_admin_must_name_active_company(client, admin, alice, company):
    missing = _building(client, admin)
    assert missing.status_code == 400
    assert missing.json()["error"]["code"] == "INVALID_COMPANY"

    not_company = _building(client, admin, company_id=alice.id)
    assert not_company.json()["error"]["code"] == "INVALID_COMPANY"

    ok = _building(client, admin, company_id=company.id)
    assert ok.status_code == 201


def test_building_delete_guards(client, db, company, taxonomy):
    data = _building(client, company).json()["data"]
    item_id = data["items"][0]["id"]
    make_listing(db, taxonomy, company, building_id=data["id"], building_item_id=item_id)

    item_in_use = client.delete(f"/api/buildings/items/{item_id}", headers=auth_headers(company))
    assert item_in_use.status_code == 409

    with_items = client.delete(f"/api/buildings/{data['id']}", headers=auth_headers(company))
    assert with_items.status_code == 409
    assert with_items.json()["error"]["code"] == "HAS_DEPENDENTS"

    listings = client.get(f"/api/realestate/building-item/{item_id}").json()["data"]
    assert len(listings) == 1


def test_other_company_cannot_edit(client, company, other_company):
    building_id = _building(client, company).json()["data"]["id"]
    response = client.put(f"/api/buildings/{building_id}", json={"status": "completed"}, headers=auth_headers(other_company))
    assert response.status_code == 403

    own = client.put(f"/api/buildings/{building_id}", json={"status": "completed"}, headers=auth_headers(company))
    assert own.json()["data"]["status"] == "completed"


def test_list_buildings_filters_status(client, company):
    _building(client, company)
    _building(client, company, title="Old Mill", status="completed")
    data = client.get("/api/buildings", params={"status": "completed"}).json()["data"]
    assert [b["title"] for b in data["items"]] == ["Old Mill"]
    assert client.get("/api/buildings/mine", headers=auth_headers(company)).json()["data"]["pagination"]["total"] == 2
