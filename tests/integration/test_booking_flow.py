from datetime import timedelta

import pytest

from cinebook.infrastructure.db.session import StorageUnavailableError


USER = {"X-User-Id": "user1"}
OTHER_USER = {"X-User-Id": "user2"}


@pytest.fixture
def show_id(client, admin_headers, clock):
    tomorrow = (clock.now + timedelta(days=1)).date()
    response = client.post(
        "/admin/shows",
        json={
            "movie_id": "movie-1",
            "movie_title": "Interstellar",
            "theater": "PVR Phoenix",
            "location": "Mumbai",
            "start_date": tomorrow.isoformat(),
            "end_date": tomorrow.isoformat(),
            "time_slots": ["18:00"],
            "price": 200,
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()["data"][0]["id"]


def _book(client, show_id, seats, headers=USER):
    return client.post(
        "/bookings",
        json={
            "show_id": show_id,
            "seats": seats,
            "email": "user1@example.com",
            "phone": "9876543210",
        },
        headers=headers,
    )


def _pay(client, payments, booking_id, payment_id="pay_1", headers=USER):
    order = client.post(f"/bookings/{booking_id}/payment/order", headers=headers)
    assert order.status_code == 200
    order_id = order.json()["data"]["order_id"]
    return client.post(
        f"/bookings/{booking_id}/payment/verify",
        json={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": payments.sign(order_id, payment_id),
        },
        headers=headers,
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_booking_flow(client, payments, show_id):
    response = _book(client, show_id, [{"row": "A", "number": 1}, {"row": "A", "number": 2}])

    assert response.status_code == 201
    booking = response.json()["data"]
    assert booking["status"] == "pending"
    assert booking["pricing"] == {
        "base_price": 400.0,
        "convenience_fee": 20.0,
        "tax": 72.0,
        "total": 492.0,
        "currency": "INR",
    }

    pay_response = _pay(client, payments, booking["id"])
    assert pay_response.status_code == 200
    assert pay_response.json()["data"]["status"] == "confirmed"
    assert pay_response.json()["data"]["payment_status"] == "completed"

    seats = client.get(f"/shows/{show_id}/seats").json()["data"]
    assert seats["free_count"] == 118
    assert seats["seat_map"] == {"A1": "booked", "A2": "booked"}

    mine = client.get("/bookings/me", headers=USER).json()["data"]
    assert [b["id"] for b in mine] == [booking["id"]]

    by_code = client.get(f"/bookings/{booking['booking_code']}", headers=USER)
    assert by_code.json()["data"]["id"] == booking["id"]


def test_payment_order_carries_amount_in_paise(client, show_id):
    booking = _book(client, show_id, [{"row": "A", "number": 1}]).json()["data"]

    order = client.post(f"/bookings/{booking['id']}/payment/order", headers=USER)

    assert order.json()["data"]["amount"] == 24600
    assert order.json()["data"]["currency"] == "INR"


def test_double_booking_is_a_conflict(client, show_id):
    _book(client, show_id, [{"row": "A", "number": 5}])

    response = _book(client, show_id, [{"row": "A", "number": 5}], headers=OTHER_USER)

    assert response.status_code == 409
    assert response.json()["detail"] == {
        "success": False,
        "code": "SEAT_UNAVAILABLE",
        "message": "Seat A5 is already booked",
        "details": {"seats": ["A5"]},
    }


@pytest.mark.parametrize(
    "payload_overrides, status_code, code",
    [
        ({"seats": [{"row": "Z", "number": 1}]}, 400, "SEAT_INVALID"),
        ({"seats": []}, 422, "VALIDATION_ERROR"),
        ({"email": "not-an-email"}, 422, "VALIDATION_ERROR"),
        ({"phone": "123"}, 422, "VALIDATION_ERROR"),
        ({"show_id": "missing"}, 404, "SHOW_NOT_FOUND"),
    ],
)
def test_booking_errors_map_to_status_codes(client, show_id, payload_overrides, status_code, code):
    payload = {
        "show_id": show_id,
        "seats": [{"row": "A", "number": 1}],
        "email": "user1@example.com",
        "phone": "9876543210",
    }
    payload.update(payload_overrides)

    response = client.post("/bookings", json=payload, headers=USER)

    assert response.status_code == status_code
    assert response.json()["detail"]["code"] == code


def test_booking_requires_user_header(client, show_id):
    response = _book(client, show_id, [{"row": "A", "number": 1}], headers={})

    assert response.status_code == 401


def test_forged_signature_is_payment_required(client, show_id):
    booking = _book(client, show_id, [{"row": "A", "number": 1}]).json()["data"]
    order_id = client.post(
        f"/bookings/{booking['id']}/payment/order", headers=USER
    ).json()["data"]["order_id"]

    response = client.post(
        f"/bookings/{booking['id']}/payment/verify",
        json={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": "forged",
        },
        headers=USER,
    )

    assert response.status_code == 402
    assert response.json()["detail"]["code"] == "PAYMENT_NOT_VERIFIED"
    seats = client.get(f"/shows/{show_id}/seats").json()["data"]
    assert seats["free_count"] == 120


def test_cancel_flow(client, payments, show_id):
    booking = _book(client, show_id, [{"row": "B", "number": 1}]).json()["data"]
    _pay(client, payments, booking["id"])

    forbidden = client.post(f"/bookings/{booking['id']}/cancel", headers=OTHER_USER)
    cancelled = client.post(f"/bookings/{booking['id']}/cancel", headers=USER)
    again = client.post(f"/bookings/{booking['id']}/cancel", headers=USER)

    assert forbidden.status_code == 403
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["payment_status"] == "refund_pending"
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "ALREADY_CANCELLED"


def test_admin_routes_require_key(client):
    assert client.get("/admin/stats").status_code == 403
    assert client.get("/admin/stats", headers={"X-Admin-Key": "wrong"}).status_code == 403


def test_admin_expire_and_reports(client, payments, admin_headers, show_id, clock):
    confirmed = _book(client, show_id, [{"row": "C", "number": 1}]).json()["data"]
    _pay(client, payments, confirmed["id"])
    _book(client, show_id, [{"row": "C", "number": 2}], headers=OTHER_USER)

    clock.advance(minutes=11)
    expired = client.post("/admin/holds/expire", headers=admin_headers)
    stats = client.get("/admin/stats", headers=admin_headers).json()["data"]
    report = client.get("/admin/reports", headers=admin_headers).json()["data"]
    expired_list = client.get(
        "/admin/bookings", params={"status": "expired"}, headers=admin_headers
    ).json()["data"]

    assert expired.json()["data"] == {"expired": 1}
    assert stats["total_bookings"] == 1
    assert stats["total_revenue"] == 246.0
    assert report["top_movies"][0]["title"] == "Interstellar"
    assert len(expired_list) == 1


def test_admin_update_and_remove_show(client, admin_headers, show_id):
    updated = client.put(
        f"/admin/shows/{show_id}", json={"price": 250}, headers=admin_headers
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["price"] == 250.0

    _book(client, show_id, [{"row": "A", "number": 1}])
    locked = client.put(f"/admin/shows/{show_id}", json={"price": 300}, headers=admin_headers)
    assert locked.status_code == 409
    assert locked.json()["detail"]["code"] == "SHOW_HAS_BOOKINGS"

    removed = client.delete(f"/admin/shows/{show_id}", headers=admin_headers)
    assert removed.json()["data"] == {"show_id": show_id, "deleted": False, "deactivated": True}
    assert client.get("/shows").json()["data"] == []


def test_storage_outage_is_service_unavailable(client, app, monkeypatch):
    def unavailable(show_id):
        raise StorageUnavailableError("database is down")

    monkeypatch.setattr(app.state.facade.inventory, "get_availability", unavailable)

    response = client.get("/shows/any/seats")

    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "STORAGE_UNAVAILABLE"
