from datetime import date, timedelta

from freezegun import freeze_time
import pytest

from conftest import auth_headers, make_listing
from realestate_api.core.errors import ConflictError
from realestate_api.models.reservation import Reservation, ReservationStatus
from realestate_api.services.bookings import RESERVATION, create_booking, sweep_expired_reservations, utcnow

TOMORROW = (utcnow().date() + timedelta(days=1)).isoformat()


def _reserve(client, user, listing_id, visit_date=TOMORROW, visit_time="10:00", **extra):
    return client.post(
        "/api/reservations",
        json={"real_estate_id": listing_id, "visit_date": visit_date, "visit_time": visit_time, **extra},
        headers=auth_headers(user),
    )


def test_reservation_snapshots_company_and_starts_pending(client, alice, company, listing):
    response = _reserve(client, alice, listing.id, notes="Morning please")
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "pending"
    assert data["company_id"] == company.id
    assert data["company_name"] == "Acme Homes"
    assert data["user_name"] == "Alice"
    assert data["property_title"] == listing.title
    assert data["can_cancel"] is True


def test_time_slot_conflict_names_holder(client, alice, bob, listing):
    assert _reserve(client, alice, listing.id).status_code == 201
    taken = _reserve(client, bob, listing.id)
    assert taken.status_code == 409
    assert taken.json()["error"]["code"] == "TIME_SLOT_TAKEN"
    assert "Alice" in taken.json()["error"]["message"]

    assert _reserve(client, bob, listing.id, visit_time="11:00").status_code == 201


def test_one_active_reservation_per_user_and_listing(client, alice, listing):
    assert _reserve(client, alice, listing.id).status_code == 201
    again = _reserve(client, alice, listing.id, visit_time="15:30")
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "EXISTING_RESERVATION"


def test_cancelled_reservation_frees_slot(client, alice, bob, listing):
    reservation_id = _reserve(client, alice, listing.id).json()["data"]["id"]
    cancelled = client.put(f"/api/reservations/{reservation_id}", json={"status": "cancelled"}, headers=auth_headers(alice))
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["status"] == "cancelled"
    assert _reserve(client, bob, listing.id).status_code == 201


def test_past_visit_and_bad_time_rejected(client, alice, listing):
    yesterday = (utcnow().date() - timedelta(days=1)).isoformat()
    past = _reserve(client, alice, listing.id, visit_date=yesterday)
    assert past.status_code == 400
    assert past.json()["error"]["code"] == "INVALID_DATE"

    bad_time = _reserve(client, alice, listing.id, visit_time="25:99")
    assert bad_time.status_code == 400
    assert bad_time.json()["error"]["code"] == "INVALID_TIME"


def test_unknown_listing(client, alice, listing):
    response = _reserve(client, alice, 9999)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PROPERTY_NOT_FOUND"


def test_status_transitions(client, alice, company, listing):
    reservation_id = _reserve(client, alice, listing.id).json()["data"]["id"]
    company_headers = auth_headers(company)

    confirmed = client.put(f"/api/reservations/{reservation_id}", json={"status": "confirmed"}, headers=company_headers)
    assert confirmed.status_code == 200
    completed = client.put(f"/api/reservations/{reservation_id}", json={"status": "COMPLETED"}, headers=company_headers)
    assert completed.json()["data"]["status"] == "completed"

    back = client.put(f"/api/reservations/{reservation_id}", json={"status": "pending"}, headers=company_headers)
    assert back.status_code == 400
    assert back.json()["error"]["code"] == "INVALID_TRANSITION"

    unknown = client.put(f"/api/reservations/{reservation_id}", json={"status": "archived"}, headers=company_headers)
    assert unknown.status_code == 400
    assert unknown.json()["error"]["code"] == "INVALID_STATUS"


def test_requester_can_only_cancel(client, alice, listing):
    reservation_id = _reserve(client, alice, listing.id).json()["data"]["id"]
    response = client.put(f"/api/reservations/{reservation_id}", json={"status": "confirmed"}, headers=auth_headers(alice))
    assert response.status_code == 403


def test_reschedule_rechecks_slot(client, alice, bob, listing):
    _reserve(client, alice, listing.id, visit_time="09:00")
    bob_id = _reserve(client, bob, listing.id, visit_time="12:00").json()["data"]["id"]
    clash = client.put(f"/api/reservations/{bob_id}", json={"visit_time": "09:00"}, headers=auth_headers(bob))
    assert clash.status_code == 409

    moved = client.put(f"/api/reservations/{bob_id}", json={"visit_time": "13:15"}, headers=auth_headers(bob))
    assert moved.status_code == 200
    assert moved.json()["data"]["visit_time"] == "13:15"


def test_visibility_follows_ownership(client, alice, bob, company, other_company, admin, listing):
    reservation_id = _reserve(client, alice, listing.id).json()["data"]["id"]
    url = f"/api/reservations/{reservation_id}"
    assert client.get(url, headers=auth_headers(alice)).status_code == 200
    assert client.get(url, headers=auth_headers(company)).status_code == 200
    assert client.get(url, headers=auth_headers(admin)).status_code == 200
    assert client.get(url, headers=auth_headers(bob)).status_code == 403
    assert client.get(url, headers=auth_headers(other_company)).status_code == 403

    assert client.get("/api/reservations", headers=auth_headers(other_company)).json()["data"]["pagination"]["total"] == 0
    assert client.get("/api/reservations", headers=auth_headers(company)).json()["data"]["pagination"]["total"] == 1


def test_company_snapshot_survives_listing_transfer(client, db, alice, company, other_company, listing):
    reservation_id = _reserve(client, alice, listing.id).json()["data"]["id"]
    listing.company_id = other_company.id
    db.commit()
    data = client.get(f"/api/reservations/{reservation_id}", headers=auth_headers(alice)).json()["data"]
    assert data["company_id"] == company.id


def test_mine_stats_and_upcoming(client, db, alice, company, taxonomy, listing):
    second = make_listing(db, taxonomy, company, title="Second")
    _reserve(client, alice, listing.id)
    other_id = _reserve(client, alice, second.id).json()["data"]["id"]
    client.put(f"/api/reservations/{other_id}", json={"status": "cancelled"}, headers=auth_headers(alice))

    mine = client.get("/api/reservations/mine", headers=auth_headers(alice)).json()["data"]
    assert len(mine["items"]) == 2
    assert mine["stats"]["by_status"]["pending"] == 1
    assert mine["stats"]["by_status"]["cancelled"] == 1

    stats = client.get("/api/reservations/stats", headers=auth_headers(company)).json()["data"]
    assert stats["total"] == 2

    upcoming = client.get("/api/reservations/upcoming", headers=auth_headers(alice)).json()["data"]
    assert len(upcoming) == 1
    assert upcoming[0]["days_until_visit"] == 1


def test_delete_reservation_permissions(client, alice, bob, listing):
    reservation_id = _reserve(client, alice, listing.id).json()["data"]["id"]
    assert client.delete(f"/api/reservations/{reservation_id}", headers=auth_headers(bob)).status_code == 403
    assert client.delete(f"/api/reservations/{reservation_id}", headers=auth_headers(alice)).status_code == 200


def test_sweep_cancels_only_expired_pending(db, alice, bob, listing):
    with freeze_time("2030-01-01 08:00:00"):
        expired = create_booking(db, RESERVATION, listing.id, alice, date(2030, 1, 2), "09:00")
        confirmed = create_booking(db, RESERVATION, listing.id, bob, date(2030, 1, 2), "10:00")
        confirmed.status = ReservationStatus.CONFIRMED
        db.commit()
        later = create_booking(db, RESERVATION, make_listing(db, _taxonomy_of(listing)).id, alice, date(2030, 1, 2), "18:00")

    with freeze_time("2030-01-02 12:00:00"):
        assert sweep_expired_reservations(db) == 1
        assert sweep_expired_reservations(db) == 0

    statuses = {r.id: r.status for r in db.query(Reservation).all()}
    assert statuses[expired.id] == ReservationStatus.CANCELLED
    assert statuses[confirmed.id] == ReservationStatus.CONFIRMED
    assert statuses[later.id] == ReservationStatus.PENDING


def test_sweep_endpoint_is_admin_only(client, admin, alice):
    assert client.post("/api/reservations/sweep", headers=auth_headers(alice)).status_code == 403
    response = client.post("/api/reservations/sweep", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["data"] == {"cancelled": 0}


def test_admission_rolls_back_on_conflict(db, alice, bob, listing):
    create_booking(db, RESERVATION, listing.id, alice, utcnow().date() + timedelta(days=3), "10:00")
    with pytest.raises(ConflictError):
        create_booking(db, RESERVATION, listing.id, bob, utcnow().date() + timedelta(days=3), "10:00")
    assert db.query(Reservation).count() == 1


def _taxonomy_of(listing):
    return {
        "city_id": listing.city_id,
        "neighborhood_id": listing.neighborhood_id,
        "main_type_id": listing.main_type_id,
        "sub_type_id": listing.sub_type_id,
        "final_type_id": listing.final_type_id,
    }


def test_admin_cancel_frees_slot_for_another_user(client, admin, alice, bob, listing):
    reservation_id = _reserve(client, alice, listing.id).json()["data"]["id"]
    cancelled = client.put(f"/api/reservations/{reservation_id}", json={"status": "cancelled"}, headers=auth_headers(admin))
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["status"] == "cancelled"

    rebooked = _reserve(client, bob, listing.id)
    assert rebooked.status_code == 201
    assert rebooked.json()["data"]["user_name"] == "Bob"


def test_other_company_cannot_update_reservation(client, alice, other_company, listing):
    reservation_id = _reserve(client, alice, listing.id).json()["data"]["id"]
    response = client.put(
        f"/api/reservations/{reservation_id}", json={"status": "confirmed"}, headers=auth_headers(other_company)
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ACCESS_DENIED"

    current = client.get(f"/api/reservations/{reservation_id}", headers=auth_headers(alice))
    assert current.json()["data"]["status"] == "pending"
