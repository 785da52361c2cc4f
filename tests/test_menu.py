from tests.helpers import auth_headers


NEW_ITEM = {
    "name": "Mushroom Risotto",
    "description": "Arborio rice, wild mushrooms, parmesan",
    "price": 17.5,
    "category": "Mains",
    "tags": ["Vegetarian", " Creamy "],
    "allergens": ["dairy"],
    "is_vegetarian": True,
}


async def test_menu_lists_active_items(client, menu):
    response = await client.get("/api/menu")

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 8
    names = [item["name"] for item in body["data"]]
    assert names == sorted(names)


async def test_menu_filters(client, menu):
    pizza = await client.get("/api/menu", params={"category": "pizza"})
    spicy = await client.get("/api/menu", params={"tags": "spicy"})
    vegan = await client.get("/api/menu", params={"vegan": True})
    cheap = await client.get("/api/menu", params={"max_price": 5})
    search = await client.get("/api/menu", params={"search": "SALMON"})

    assert {i["name"] for i in pizza.json()["data"]} == {"Margherita Pizza", "Pepperoni Pizza"}
    assert {i["name"] for i in spicy.json()["data"]} == {"Pepperoni Pizza", "Spicy Thai Curry"}
    assert {i["name"] for i in vegan.json()["data"]} == {"Quinoa Power Bowl", "Sparkling Lemonade"}
    assert [i["name"] for i in cheap.json()["data"]] == ["Sparkling Lemonade"]
    assert [i["name"] for i in search.json()["data"]] == ["Grilled Salmon"]


async def test_menu_sort_and_paginate(client, menu):
    response = await client.get(
        "/api/menu",
        params={"sort_by": "price", "sort_order": "desc", "limit": 3, "page": 1},
    )

    body = response.json()
    assert [i["price"] for i in body["data"]] == [22.99, 16.99, 15.49]
    assert body["pagination"]["total_pages"] == 3
    assert body["pagination"]["has_next"] is True


async def test_get_item_404(client, menu):
    assert (await client.get("/api/menu/9999")).status_code == 404
    found = await client.get(f"/api/menu/{menu['Tiramisu'].id}")
    assert found.json()["data"]["allergens"] == ["gluten", "dairy", "eggs"]


async def test_admin_creates_item(client, users):
    response = await client.post("/api/menu", json=NEW_ITEM, headers=auth_headers(users["admin"]))

    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["tags"] == ["vegetarian", "creamy"]
    assert data["restaurant_id"] == "default"


async def test_duplicate_name_conflicts(client, users):
    admin = auth_headers(users["admin"])
    await client.post("/api/menu", json=NEW_ITEM, headers=admin)

    response = await client.post("/api/menu", json=NEW_ITEM, headers=admin)
    assert response.status_code == 409


async def test_non_admin_cannot_edit_menu(client, users):
    customer = await client.post("/api/menu", json=NEW_ITEM, headers=auth_headers(users["customer"]))
    staff = await client.post("/api/menu", json=NEW_ITEM, headers=auth_headers(users["staff"]))
    anonymous = await client.post("/api/menu", json=NEW_ITEM)

    assert customer.status_code == 403
    assert staff.status_code == 403
    assert anonymous.status_code == 401


async def test_invalid_item_rejected(client, users):
    bad = dict(NEW_ITEM, price=-1, image_url="ftp://example.com/x.png")
    response = await client.post("/api/menu", json=bad, headers=auth_headers(users["admin"]))
    assert response.status_code == 422


async def test_partial_update(client, menu, users):
    item = menu["Caesar Salad"]
    admin = auth_headers(users["admin"])

    response = await client.put(
        f"/api/menu/{item.id}",
        json={"price": 10.49, "active": False, "preparation_time": None},
        headers=admin,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["price"] == 10.49
    assert data["active"] is False
    assert data["preparation_time"] is None
    assert data["category"] == "Salads"

    listing = await client.get("/api/menu")
    assert "Caesar Salad" not in {i["name"] for i in listing.json()["data"]}


async def test_rename_onto_existing_name_conflicts(client, menu, users):
    response = await client.put(
        f"/api/menu/{menu['Caesar Salad'].id}",
        json={"name": "Tiramisu"},
        headers=auth_headers(users["admin"]),
    )
    assert response.status_code == 409


async def test_delete_item(client, menu, users):
    item_id = menu["Tiramisu"].id
    response = await client.delete(f"/api/menu/{item_id}", headers=auth_headers(users["admin"]))

    assert response.status_code == 200
    assert (await client.get(f"/api/menu/{item_id}")).status_code == 404
