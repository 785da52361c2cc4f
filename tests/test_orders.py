from tests.helpers import auth_headers, guest_customer


def _cart(menu, *names, payment_method="cash", **extra):
    payload = {
        "items": [{"menu_item_id": menu[name].id, "quantity": 1} for name in names],
        "payment_method": payment_method,
    }
    payload.update(extra)
    return payload


async def _place_cash_order(client, menu, headers=None, **extra):
    extra.setdefault("customer_info", guest_customer())
    response = await client.post(
        "/api/orders",
        json=_cart(menu, "Margherita Pizza", "Tiramisu", **extra),
        headers=headers or {},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_guest_cash_order_is_priced_server_side(client, menu):
    payload = _cart(menu, "Margherita Pizza", customer_info=guest_customer())
    payload["items"][0]["quantity"] = 2

    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 201
    body = response.json()
    order = body["data"]
    assert body["checkout"] is None
    assert order["subtotal"] == 29.98
    assert order["tax"] == 2.40
    assert order["delivery_fee"] == 0.0
    assert order["total"] == 32.38
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"
    assert order["items"][0]["name"] == "Margherita Pizza"
    assert order["items"][0]["price"] == 14.99


async def test_delivery_address_adds_fee(client, menu):
    order = await _place_cash_order(
        client,
        menu,
        delivery_address={"street": "1 Elm St", "city": "Springfield", "state": "IL", "zip_code": "62701"},
    )
    assert order["delivery_fee"] == 3.99
    assert order["total"] == round(order["subtotal"] + order["tax"] + 3.99, 2)


async def test_guest_order_requires_customer_info(client, menu):
    response = await client.post("/api/orders", json=_cart(menu, "Tiramisu"))
    assert response.status_code == 400


async def test_signed_in_order_uses_account_details(client, menu, users):
    response = await client.post(
        "/api/orders",
        json=_cart(menu, "Tiramisu"),
        headers=auth_headers(users["customer"]),
    )
    assert response.status_code == 201
    order = response.json()["data"]
    assert order["user_id"] == users["customer"].id
    assert order["customer_info"]["email"] == "customer@example.com"


async def test_unknown_menu_item_rejected(client, seeded):
    response = await client.post(
        "/api/orders",
        json={"items": [{"menu_item_id": 9999, "quantity": 1}], "customer_info": guest_customer()},
    )
    assert response.status_code == 400
    assert "9999" in response.json()["detail"]


async def test_payment_method_must_be_accepted(client, menu):
    response = await client.post(
        "/api/orders",
        json=_cart(menu, "Tiramisu", payment_method="bank_transfer", customer_info=guest_customer()),
    )
    assert response.status_code == 400


async def test_empty_cart_rejected(client, seeded):
    response = await client.post("/api/orders", json={"items": [], "customer_info": guest_customer()})
    assert response.status_code == 422


async def test_staff_moves_order_through_lifecycle(client, menu, users):
    order = await _place_cash_order(client, menu)
    staff = auth_headers(users["staff"])

    for status in ("confirmed", "preparing", "ready", "delivered"):
        response = await client.patch(f"/api/orders/{order['id']}/status", json={"status": status}, headers=staff)
        assert response.status_code == 200, response.text

    data = response.json()["data"]
    assert data["status"] == "delivered"
    assert data["payment_status"] == "completed"


async def test_invalid_transition_conflicts(client, menu, users):
    order = await _place_cash_order(client, menu)
    response = await client.patch(
        f"/api/orders/{order['id']}/status",
        json={"status": "delivered"},
        headers=auth_headers(users["staff"]),
    )
    assert response.status_code == 409


async def test_customer_cannot_change_status(client, menu, users):
    order = await _place_cash_order(client, menu)
    response = await client.patch(
        f"/api/orders/{order['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers(users["customer"]),
    )
    assert response.status_code == 403


async def test_order_visibility(client, menu, users):
    order = await _place_cash_order(client, menu, headers=auth_headers(users["customer"]))

    own = await client.get(f"/api/orders/{order['id']}", headers=auth_headers(users["customer"]))
    other = await client.get(f"/api/orders/{order['id']}", headers=auth_headers(users["jane"]))
    staff = await client.get(f"/api/orders/{order['id']}", headers=auth_headers(users["staff"]))
    anonymous = await client.get(f"/api/orders/{order['id']}")

    assert own.status_code == 200
    assert other.status_code == 403
    assert staff.status_code == 200
    assert anonymous.status_code == 401


async def test_order_history_matches_account_and_email(client, menu, users):
    await _place_cash_order(client, menu, headers=auth_headers(users["customer"]), customer_info=None)
    # Guest order placed before signing in, same email
    await _place_cash_order(client, menu, customer_info=guest_customer("Customer@Example.com"))
    await _place_cash_order(client, menu, customer_info=guest_customer("someone@else.com"))

    response = await client.get("/api/orders/my-orders", headers=auth_headers(users["customer"]))

    assert response.status_code == 200
    emails = {o["customer_email"] for o in response.json()["data"]}
    assert emails == {"customer@example.com"}
    assert len(response.json()["data"]) == 2


async def test_unverified_account_does_not_inherit_guest_orders(client, menu, seeded):
    await _place_cash_order(
        client,
        menu,
        customer_info=guest_customer("victim@example.com"),
        delivery_address={"street": "1 Elm St", "city": "Springfield", "state": "IL", "zip_code": "62701"},
    )
    registered = await client.post(
        "/api/auth/register",
        json={"email": "victim@example.com", "name": "Mallory", "password": "Secret123"},
    )
    token = registered.json()["data"]["access_token"]

    response = await client.get("/api/orders/my-orders", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["pagination"]["total"] == 0


async def test_staff_list_filters_by_status(client, menu, users):
    first = await _place_cash_order(client, menu)
    await _place_cash_order(client, menu)
    staff = auth_headers(users["staff"])
    await client.patch(f"/api/orders/{first['id']}/status", json={"status": "cancelled"}, headers=staff)

    response = await client.get("/api/orders", params={"status": "cancelled"}, headers=staff)

    assert response.status_code == 200
    assert [o["id"] for o in response.json()["data"]] == [first["id"]]
    assert response.json()["pagination"]["total"] == 1

    forbidden = await client.get("/api/orders", headers=auth_headers(users["customer"]))
    assert forbidden.status_code == 403


async def test_owner_can_add_tip(client, menu, users):
    order = await _place_cash_order(client, menu, headers=auth_headers(users["customer"]))

    response = await client.post(
        f"/api/orders/{order['id']}/tip",
        json={"tip": 4.0},
        headers=auth_headers(users["customer"]),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["tip"] == 4.0
    assert data["total"] == round(order["total"] + 4.0, 2)


async def test_cash_refund_after_delivery(client, menu, users):
    order = await _place_cash_order(client, menu)
    staff = auth_headers(users["staff"])
    for status in ("confirmed", "preparing", "ready", "delivered"):
        await client.patch(f"/api/orders/{order['id']}/status", json={"status": status}, headers=staff)

    response = await client.post(
        f"/api/orders/{order['id']}/refund",
        json={"reason": "Cold food"},
        headers=auth_headers(users["admin"]),
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["payment_status"] == "refunded"
    assert data["refunded_amount"] == order["total"]


async def test_refund_requires_completed_payment(client, menu, users):
    order = await _place_cash_order(client, menu)
    response = await client.post(
        f"/api/orders/{order['id']}/refund",
        json={},
        headers=auth_headers(users["admin"]),
    )
    assert response.status_code == 409


async def test_admin_deletes_order(client, menu, users):
    order = await _place_cash_order(client, menu)
    admin = auth_headers(users["admin"])

    response = await client.delete(f"/api/orders/{order['id']}", headers=admin)
    assert response.status_code == 200

    missing = await client.get(f"/api/orders/{order['id']}", headers=admin)
    assert missing.status_code == 404
