from conftest import PASSWORD, bearer
from models.refresh_tokens import RefreshToken


async def login(client, user) -> dict:
    response = await client.post("/auth/token", data={"username": user.email, "password": PASSWORD})
    return response.json()


async def deactivate(client, headers, **body):
    return await client.request("DELETE", "/users/deactivate", headers=headers, json=body)


async def test_deactivate_account(client, customer, session):
    tokens = await login(client, customer)

    response = await deactivate(client, {"Authorization": f"Bearer {tokens['access_token']}"}, password=PASSWORD)

    assert response.status_code == 200
    assert response.json()["message"] == "Account deactivated"

    session.refresh(customer)
    assert customer.is_active is False

    rows = session.query(RefreshToken).filter(RefreshToken.user_id == customer.id).all()
    assert rows and all(row.revoked for row in rows)

    # Deactivated accounts cannot sign in again
    assert (await client.post("/auth/token", data={
        "username": customer.email, "password": PASSWORD
    })).status_code == 401


async def test_rider_can_deactivate(client, rider, session):
    response = await deactivate(client, bearer(rider), password=PASSWORD)

    assert response.status_code == 200
    session.refresh(rider)
    assert rider.is_active is False


async def test_deactivate_requires_authentication(client):
    assert (await deactivate(client, {}, password=PASSWORD)).status_code == 401
    assert (await deactivate(client, {"Authorization": "Bearer invalid_token"}, password=PASSWORD)).status_code == 401


async def test_deactivate_wrong_password(client, customer, session):
    response = await deactivate(client, bearer(customer), password="WrongPassword123!")

    assert response.status_code == 401
    assert "incorrect password" in response.json()["detail"].lower()

    session.refresh(customer)
    assert customer.is_active is True


async def test_deactivate_missing_password(client, customer):
    response = await deactivate(client, bearer(customer))

    assert response.status_code == 422


async def test_deactivate_ends_every_session(client, customer):
    first = await login(client, customer)
    second = await login(client, customer)

    response = await deactivate(client, {"Authorization": f"Bearer {first['access_token']}"}, password=PASSWORD)
    assert response.status_code == 200

    for tokens in (first, second):
        response = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401
