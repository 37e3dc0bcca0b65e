from datetime import timedelta
import os
import time

from conftest import auth_headers
from realestate_api.services.bookings import utcnow
from realestate_api.services.uploads import UploadType, folder_for
from realestate_api.workers.tasks import cleanup_general_uploads

TOMORROW = (utcnow().date() + timedelta(days=1)).isoformat()
PNG = b"\x89PNG\r\n\x1a\n id scan"


def _offer(client, user, listing_id, amount="150000", visit_time="10:00", files=None):
    return client.post(
        "/api/offers",
        data={"real_estate_id": str(listing_id), "visit_date": TOMORROW, "visit_time": visit_time, "offer_amount": amount},
        files=files,
        headers=auth_headers(user),
    )


def test_offer_with_id_image(client, alice, company, listing):
    response = _offer(client, alice, listing.id, files={"id_image": ("id.png", PNG, "image/png")})
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["kind"] == "offer"
    assert data["offer_amount"] == 150000
    assert data["company_id"] == company.id
    assert data["id_image"].startswith("http://testserver/uploads/general/")


def test_offer_amount_must_be_positive_integer(client, alice, listing):
    for amount in ("0", "-5", "12.5", "lots"):
        response = _offer(client, alice, listing.id, amount=amount)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_AMOUNT"


def test_offers_do_not_hold_time_slots(client, alice, bob, listing):
    assert _offer(client, alice, listing.id).status_code == 201
    assert _offer(client, bob, listing.id).status_code == 201


def test_one_active_offer_per_user_and_listing(client, alice, listing):
    assert _offer(client, alice, listing.id).status_code == 201
    again = _offer(client, alice, listing.id, amount="160000")
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "EXISTING_OFFER"


def test_offer_lifecycle(client, alice, company, listing):
    offer_id = _offer(client, alice, listing.id).json()["data"]["id"]

    raised = client.put(f"/api/offers/{offer_id}", json={"offer_amount": 175000}, headers=auth_headers(alice))
    assert raised.json()["data"]["offer_amount"] == 175000

    accepted = client.put(f"/api/offers/{offer_id}", json={"status": "accepted"}, headers=auth_headers(company))
    assert accepted.json()["data"]["status"] == "accepted"

    locked = client.put(f"/api/offers/{offer_id}", json={"notes": "changed my mind"}, headers=auth_headers(alice))
    assert locked.status_code == 400
    assert locked.json()["error"]["code"] == "BOOKING_LOCKED"

    rejected = client.put(f"/api/offers/{offer_id}", json={"status": "rejected"}, headers=auth_headers(company))
    assert rejected.status_code == 400
    assert rejected.json()["error"]["code"] == "INVALID_TRANSITION"

    withdrawn = client.put(f"/api/offers/{offer_id}", json={"status": "cancelled"}, headers=auth_headers(alice))
    assert withdrawn.json()["data"]["status"] == "cancelled"


def test_offer_stats_are_scoped(client, alice, company, other_company, listing):
    _offer(client, alice, listing.id)
    assert client.get("/api/offers/stats", headers=auth_headers(company)).json()["data"]["by_status"]["pending"] == 1
    assert client.get("/api/offers/stats", headers=auth_headers(other_company)).json()["data"]["total"] == 0


def test_other_company_cannot_update_offer(client, alice, other_company, listing):
    offer_id = _offer(client, alice, listing.id).json()["data"]["id"]
    response = client.put(f"/api/offers/{offer_id}", json={"status": "accepted"}, headers=auth_headers(other_company))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ACCESS_DENIED"


def test_upload_cleanup_keeps_id_images_of_offers(client, alice, listing):
    response = _offer(client, alice, listing.id, files={"id_image": ("id.png", PNG, "image/png")})
    general = folder_for(UploadType.GENERAL)
    id_image = general / response.json()["data"]["id_image"].rsplit("/", 1)[-1]
    leftover = general / "stale-upload.png"
    leftover.write_bytes(PNG)

    forty_days_ago = time.time() - 40 * 24 * 60 * 60
    for path in (id_image, leftover):
        os.utime(path, (forty_days_ago, forty_days_ago))

    cleanup_general_uploads()

    assert id_image.exists()
    assert not leftover.exists()
