import json

from tests.helpers import auth_headers, guest_customer


async def _paid_order(client, menu, payment_service, email):
    created = (
        await client.post(
            "/api/checkout",
            json={
                "items": [{"menu_item_id": menu["Tiramisu"].id, "quantity": 1}],
                "customer_info": guest_customer(email),
            },
        )
    ).json()
    event = payment_service.complete_session(created["session_id"])
    await client.post("/api/checkout/webhook", content=json.dumps(event))
    return created["order_id"]


async def test_guest_review_needs_name_and_email(client, seeded):
    response = await client.post("/api/reviews", json={"rating": 5, "comment": "Lovely"})
    assert response.status_code == 400


async def test_review_on_paid_order_is_verified(client, menu, payment_service):
    order_id = await _paid_order(client, menu, payment_service, "fan@example.com")

    verified = await client.post(
        "/api/reviews",
        json={
            "rating": 5,
            "comment": "Best tiramisu in town",
            "order_id": order_id,
            "customer_name": "Fan",
            "customer_email": "fan@example.com",
        },
    )
    unverified = await client.post(
        "/api/reviews",
        json={
            "rating": 1,
            "comment": "Never ate here",
            "order_id": order_id,
            "customer_name": "Troll",
            "customer_email": "troll@example.com",
        },
    )

    assert verified.status_code == 201
    assert verified.json()["data"]["verified"] is True
    assert unverified.json()["data"]["verified"] is False


async def test_summary_counts_verified_reviews_only(client, menu, payment_service, users):
    for email, rating in (("a@example.com", 5), ("b@example.com", 4)):
        order_id = await _paid_order(client, menu, payment_service, email)
        await client.post(
            "/api/reviews",
            json={"rating": rating, "comment": "Good", "order_id": order_id,
                  "customer_name": "Diner", "customer_email": email},
        )
    await client.post(
        "/api/reviews",
        json={"rating": 1, "comment": "Meh", "customer_name": "Anon", "customer_email": "c@example.com"},
    )

    summary = (await client.get("/api/reviews/summary")).json()["data"]

    assert summary["total_reviews"] == 2
    assert summary["average_rating"] == 4.5
    assert summary["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 1, "5": 1}

    listing = await client.get("/api/reviews", params={"verified": False})
    assert [r["rating"] for r in listing.json()["data"]] == [1]


async def test_staff_reply_verify_and_helpful(client, users):
    created = (
        await client.post(
            "/api/reviews",
            json={"rating": 3, "comment": "Slow service"},
            headers=auth_headers(users["customer"]),
        )
    ).json()["data"]
    staff = auth_headers(users["staff"])

    reply = await client.post(f"/api/reviews/{created['id']}/response", json={"text": "Sorry!"}, headers=staff)
    verify = await client.post(f"/api/reviews/{created['id']}/verify", headers=staff)
    helpful = await client.post(f"/api/reviews/{created['id']}/helpful")
    customer_reply = await client.post(
        f"/api/reviews/{created['id']}/response",
        json={"text": "Me too"},
        headers=auth_headers(users["customer"]),
    )

    assert created["customer_name"] == "John Customer"
    assert reply.json()["data"]["response"]["author"] == "Floor Staff"
    assert verify.json()["data"]["verified"] is True
    assert helpful.json()["data"]["helpful"] == 1
    assert customer_reply.status_code == 403


async def test_rating_range_validated(client, seeded):
    response = await client.post(
        "/api/reviews",
        json={"rating": 6, "comment": "Too good", "customer_name": "X", "customer_email": "x@example.com"},
    )
    assert response.status_code == 422
