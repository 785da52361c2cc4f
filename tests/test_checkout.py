import json

from tableside.services.payment import MockPaymentService
from tests.helpers import auth_headers, guest_customer


def _checkout_payload(menu, **extra):
    payload = {
        "items": [
            {"menu_item_id": menu["Grilled Salmon"].id, "quantity": 1},
            {"menu_item_id": menu["Sparkling Lemonade"].id, "quantity": 2},
        ],
        "customer_info": guest_customer(),
    }
    payload.update(extra)
    return payload


async def test_card_checkout_opens_hosted_session(client, menu):
    response = await client.post(
        "/api/checkout",
        json=_checkout_payload(menu, tip=2.5),
        headers={"Origin": "https://shop.example.com"},
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success"] is True
    assert body["session_id"].startswith("cs_mock_")
    assert body["url"].endswith(body["session_id"])
    assert body["payment_status"] == "processing"
    # 22.99 + 2 x 3.99 = 30.97, tax 2.48, tip 2.50
    assert body["total"] == 35.95


async def test_checkout_redirects_use_request_origin(client, menu, payment_service):
    response = await client.post(
        "/api/checkout",
        json=_checkout_payload(menu),
        headers={"Origin": "https://shop.example.com"},
    )
    session = payment_service._sessions[response.json()["session_id"]]

    assert session["success_url"] == (
        f"https://shop.example.com/checkout/success?session_id={response.json()['session_id']}"
    )
    assert session["cancel_url"] == "https://shop.example.com/cart"
    assert session["metadata"]["user_id"] == "guest"
    # 2 menu lines + tax
    assert session["amount_total"] == int(round(response.json()["total"] * 100))


async def test_completed_webhook_confirms_order(client, menu, payment_service):
    created = (await client.post("/api/checkout", json=_checkout_payload(menu))).json()
    event = payment_service.complete_session(created["session_id"])

    response = await client.post("/api/checkout/webhook", content=json.dumps(event))

    assert response.status_code == 200
    assert response.json() == {"received": True, "order_id": created["order_id"]}

    status = await client.get(f"/api/checkout/session/{created['session_id']}")
    order = status.json()["data"]
    assert order["payment_status"] == "completed"
    assert order["status"] == "confirmed"
    assert order["payment_intent_id"].startswith("pi_mock_")


async def test_webhook_is_idempotent(client, menu, payment_service):
    created = (await client.post("/api/checkout", json=_checkout_payload(menu))).json()
    event = payment_service.complete_session(created["session_id"])

    await client.post("/api/checkout/webhook", content=json.dumps(event))
    again = await client.post("/api/checkout/webhook", content=json.dumps(event))

    assert again.status_code == 200
    status = await client.get(f"/api/checkout/session/{created['session_id']}")
    assert status.json()["data"]["status"] == "confirmed"


async def test_expired_webhook_cancels_order(client, menu):
    created = (await client.post("/api/checkout", json=_checkout_payload(menu))).json()
    event = {
        "type": "checkout.session.expired",
        "data": {"object": {"id": created["session_id"]}},
    }

    await client.post("/api/checkout/webhook", content=json.dumps(event))

    order = (await client.get(f"/api/checkout/session/{created['session_id']}")).json()["data"]
    assert order["payment_status"] == "failed"
    assert order["status"] == "cancelled"


async def test_webhook_for_unknown_session_is_acknowledged(client, seeded):
    event = {"type": "checkout.session.completed", "data": {"object": {"id": "cs_mock_missing"}}}
    response = await client.post("/api/checkout/webhook", content=json.dumps(event))
    assert response.status_code == 200
    assert response.json()["order_id"] is None


async def test_malformed_webhook_rejected(client, seeded):
    response = await client.post("/api/checkout/webhook", content=b"not json")
    assert response.status_code == 400


async def test_provider_failure_cancels_order(client, menu, payment_service):
    payment_service.failure_rate = 1.0

    response = await client.post("/api/checkout", json=_checkout_payload(menu))

    assert response.status_code == 502


async def test_checkout_session_lookup_404(client, seeded):
    response = await client.get("/api/checkout/session/cs_mock_nope")
    assert response.status_code == 404


async def test_card_refund_goes_through_provider(client, menu, users, payment_service):
    created = (await client.post("/api/checkout", json=_checkout_payload(menu))).json()
    event = payment_service.complete_session(created["session_id"])
    await client.post("/api/checkout/webhook", content=json.dumps(event))

    response = await client.post(
        f"/api/orders/{created['order_id']}/refund",
        json={"amount": 10.0, "reason": "Missing drink"},
        headers=auth_headers(users["admin"]),
    )

    assert response.status_code == 200, response.text
    order = response.json()["data"]
    assert order["payment_status"] == "refunded"
    assert order["refunded_amount"] == 10.0
    assert "Missing drink" in order["notes"]


async def test_tip_locked_while_payment_processing(client, menu, users):
    created = (
        await client.post("/api/checkout", json=_checkout_payload(menu), headers=auth_headers(users["customer"]))
    ).json()

    response = await client.post(
        f"/api/orders/{created['order_id']}/tip",
        json={"tip": 3},
        headers=auth_headers(users["customer"]),
    )
    assert response.status_code == 409


async def test_mock_refund_requires_payment_intent():
    service = MockPaymentService(min_latency=0, max_latency=0)
    result = await service.refund_payment("ch_123")
    assert result.success is False


async def test_tip_locked_after_card_payment_captured(client, menu, users, payment_service):
    customer = auth_headers(users["customer"])
    created = (await client.post("/api/checkout", json=_checkout_payload(menu), headers=customer)).json()
    event = payment_service.complete_session(created["session_id"])
    await client.post("/api/checkout/webhook", content=json.dumps(event))

    tip = await client.post(f"/api/orders/{created['order_id']}/tip", json={"tip": 50}, headers=customer)
    refund = await client.post(
        f"/api/orders/{created['order_id']}/refund",
        json={},
        headers=auth_headers(users["admin"]),
    )

    assert tip.status_code == 409
    assert refund.status_code == 200, refund.text
    assert refund.json()["data"]["total"] == created["total"]
    assert refund.json()["data"]["refunded_amount"] == created["total"]
