from datetime import date, datetime, timedelta

import pytest

from tableside.schemas import ReservationCreate
from tableside.services.reservations import (
    ReservationError,
    create_reservation,
    normalize_date,
    normalize_time,
    validate_slot,
)
from tests.helpers import auth_headers, next_week


def _booking(email="diner@example.com", party_size=2, day=None, time="18:30"):
    return {
        "customer_info": {"name": "Diner", "email": email, "phone": "+1 555-444-5555"},
        "party_size": party_size,
        "date": day or next_week(),
        "time": time,
    }


def test_time_normalization():
    assert normalize_time("9:05") == "09:05"
    assert normalize_time("19:30:00") == "19:30"
    with pytest.raises(ReservationError):
        normalize_time("25:00")
    with pytest.raises(ReservationError):
        normalize_time("7pm")


def test_date_normalization_accepts_datetimes():
    assert normalize_date("2030-05-17") == date(2030, 5, 17)
    assert normalize_date("2030-05-17T00:00:00.000Z") == date(2030, 5, 17)
    with pytest.raises(ReservationError):
        normalize_date("17/05/2030")


def test_slot_rules():
    now = datetime(2030, 5, 17, 12, 0)
    validate_slot(date(2030, 5, 17), "18:00", 4, now=now)

    with pytest.raises(ReservationError, match="past"):
        validate_slot(date(2030, 5, 17), "11:00", 2, now=now)
    with pytest.raises(ReservationError, match="between"):
        validate_slot(date(2030, 5, 18), "08:30", 2, now=now)
    with pytest.raises(ReservationError, match="between"):
        validate_slot(date(2030, 5, 18), "22:00", 2, now=now)
    with pytest.raises(ReservationError, match="Party size"):
        validate_slot(date(2030, 5, 18), "18:00", 21, now=now)


async def test_book_table(client, seeded):
    response = await client.post("/api/reservations", json=_booking(time="9:30"))

    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["status"] == "pending"
    assert data["time"] == "09:30"
    assert data["party_size"] == 2


async def test_book_table_normalizes_slot(client, seeded):
    response = await client.post(
        "/api/reservations",
        json=_booking(day=f"{next_week()}T00:00:00.000Z", time="19:45:00"),
    )

    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["date"] == next_week()
    assert data["time"] == "19:45"
    assert data["customer_info"]["email"] == "diner@example.com"


async def test_past_and_closed_hours_rejected(client, seeded):
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    past = await client.post("/api/reservations", json=_booking(day=yesterday))
    late = await client.post("/api/reservations", json=_booking(time="23:00"))

    assert past.status_code == 400
    assert late.status_code == 400


async def test_restaurant_caps_party_size(client, seeded):
    # The seeded restaurant allows parties of up to 8
    response = await client.post("/api/reservations", json=_booking(party_size=9))
    assert response.status_code == 400


async def test_duplicate_booking_conflicts(client, seeded):
    first = await client.post("/api/reservations", json=_booking())
    second = await client.post("/api/reservations", json=_booking())

    assert first.status_code == 201
    assert second.status_code == 409


async def test_full_slot_conflicts(client, db):
    day = next_week()
    for i in range(10):
        await create_reservation(db, ReservationCreate(**_booking(email=f"guest{i}@example.com", day=day)))

    response = await client.post("/api/reservations", json=_booking(email="late@example.com", day=day))
    availability = await client.get("/api/reservations/availability", params={"date": day, "time": "18:30"})

    assert response.status_code == 409
    assert availability.json()["data"] == {
        "date": day,
        "time": "18:30",
        "booked": 10,
        "remaining": 0,
        "available": False,
    }


async def test_cancelled_bookings_free_the_slot(client, users):
    created = (
        await client.post("/api/reservations", json=_booking(email="customer@example.com"))
    ).json()["data"]

    cancel = await client.post(
        f"/api/reservations/{created['id']}/cancel",
        headers=auth_headers(users["customer"]),
    )
    again = await client.post("/api/reservations", json=_booking(email="customer@example.com"))

    assert cancel.status_code == 200
    assert cancel.json()["data"]["status"] == "cancelled"
    assert again.status_code == 201


async def test_only_owner_or_staff_can_cancel(client, users):
    created = (await client.post("/api/reservations", json=_booking())).json()["data"]

    stranger = await client.post(
        f"/api/reservations/{created['id']}/cancel",
        headers=auth_headers(users["jane"]),
    )
    staff = await client.post(
        f"/api/reservations/{created['id']}/cancel",
        headers=auth_headers(users["staff"]),
    )
    twice = await client.post(
        f"/api/reservations/{created['id']}/cancel",
        headers=auth_headers(users["staff"]),
    )

    assert stranger.status_code == 403
    assert staff.status_code == 200
    assert twice.status_code == 409


async def test_staff_workflow(client, users):
    created = (await client.post("/api/reservations", json=_booking())).json()["data"]
    staff = auth_headers(users["staff"])

    confirmed = await client.patch(
        f"/api/reservations/{created['id']}/status",
        json={"status": "confirmed", "table_number": "12"},
        headers=staff,
    )
    completed = await client.patch(
        f"/api/reservations/{created['id']}/status",
        json={"status": "completed"},
        headers=staff,
    )

    assert confirmed.status_code == 200
    assert confirmed.json()["data"]["table_number"] == "12"
    # Must be seated first
    assert completed.status_code == 409


async def test_staff_list_and_my_reservations(client, users):
    await client.post("/api/reservations", json=_booking(email="customer@example.com"))
    await client.post("/api/reservations", json=_booking(email="other@example.com"))

    listing = await client.get(
        "/api/reservations",
        params={"email": "customer@example.com"},
        headers=auth_headers(users["staff"]),
    )
    mine = await client.get("/api/reservations/mine", headers=auth_headers(users["customer"]))
    forbidden = await client.get("/api/reservations", headers=auth_headers(users["customer"]))

    assert listing.json()["count"] == 1
    assert [r["customer_info"]["email"] for r in mine.json()["data"]] == ["customer@example.com"]
    assert forbidden.status_code == 403
