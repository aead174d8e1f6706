from conftest import bearer, make_user, make_restaurant, make_menu_item


async def test_list_restaurants_is_public(client, restaurant, other_restaurant):
    response = await client.get("/restaurants")

    assert response.status_code == 200
    assert {r["name"] for r in response.json()["restaurants"]} == {"Burger House", "Pizza Place"}


async def test_pending_restaurant_hidden(client, session):
    owner = make_user(session, "late@example.com", role="restaurant", status="pending")
    restaurant = make_restaurant(session, owner, "Late", status="pending")

    assert (await client.get("/restaurants")).json()["restaurants"] == []
    assert (await client.get(f"/restaurants/{restaurant.id}")).status_code == 404


async def test_create_restaurant(client, session):
    owner = make_user(session, "new@example.com", role="restaurant")

    response = await client.post("/restaurants", json={
        "name": "Koshary Corner", "address": "Downtown", "latitude": 30.04, "longitude": 31.23
    }, headers=bearer(owner))

    assert response.status_code == 201
    restaurant = response.json()["restaurant"]
    assert restaurant["status"] == "pending"
    assert restaurant["is_active"] is False
    assert restaurant["owner_id"] == owner.id


async def test_second_restaurant_conflict(client, owner, restaurant):
    response = await client.post("/restaurants", json={"name": "Again"}, headers=bearer(owner))

    assert response.status_code == 409


async def test_customers_cannot_create_restaurants(client, customer):
    response = await client.post("/restaurants", json={"name": "Nope"}, headers=bearer(customer))

    assert response.status_code == 403


async def test_my_restaurant(client, owner, restaurant):
    response = await client.get("/restaurants/me", headers=bearer(owner))
    assert response.json()["restaurant"]["id"] == restaurant.id

    response = await client.put("/restaurants/me", json={"description": "Smash burgers"}, headers=bearer(owner))
    assert response.status_code == 200
    assert response.json()["restaurant"]["description"] == "Smash burgers"


async def test_my_restaurant_missing(client, other_owner):
    response = await client.get("/restaurants/me", headers=bearer(other_owner))

    assert response.status_code == 404


async def test_public_menu(client, session, restaurant, menu):
    make_menu_item(session, restaurant, "Shake", "40.00", is_available=False)

    response = await client.get(f"/restaurants/{restaurant.id}/menu")

    assert response.status_code == 200
    assert sorted(item["name"] for item in response.json()["menu"]) == ["Burger", "Fries"]
