"""
Integration tests for the load and truck HTTP API.

Register -> create truck -> create load -> post -> advance -> logs,
plus role guards, ownership checks and error codes.
"""

import pytest


async def register(client, email: str, role: str) -> dict:
    payload = {
        "email": email,
        "name": email.split("@")[0],
        "password": "password123",
        "role": role
    }
    response = await client.post("/v1/auth/register", json=payload)
    assert response.status_code == 201
    return response.json()


def auth_header(user: dict) -> dict:
    return {"Authorization": f"Bearer {user['access_token']}"}


LOAD_PAYLOAD = {
    "name": "Office chairs",
    "description": "Twelve boxed chairs",
    "dimensions": {"width": 120, "length": 200, "height": 100},
    "payload": 300,
    "pick_up_address": {"city": "Kyiv", "street": "Khreshchatyk 1", "zip": "01001"},
    "delivery_address": {"city": "Lviv", "street": "Svobody 5", "zip": "79000"}
}


@pytest.fixture
async def shipper_user(client):
    return await register(client, "shipper@api.com", "SHIPPER")


@pytest.fixture
async def driver_user(client):
    return await register(client, "driver@api.com", "DRIVER")


async def create_load(client, shipper_user, payload=None) -> dict:
    response = await client.post("/v1/loads", json=payload or LOAD_PAYLOAD, headers=auth_header(shipper_user))
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_register_login_me(client):
    user = await register(client, "someone@api.com", "SHIPPER")
    assert user["role"] == "SHIPPER"

    response = await client.post("/v1/auth/login", json={"email": "someone@api.com", "password": "password123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["email"] == "someone@api.com"


@pytest.mark.asyncio
async def test_duplicate_email_and_bad_password(client):
    await register(client, "dup@api.com", "DRIVER")

    response = await client.post("/v1/auth/register", json={
        "email": "dup@api.com", "password": "password123", "role": "DRIVER"
    })
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_BAD_REQUEST"

    response = await client.post("/v1/auth/login", json={"email": "dup@api.com", "password": "wrong-password"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_requires_token(client):
    response = await client.get("/v1/loads")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_full_shipping_flow(client, shipper_user, driver_user):
    response = await client.post("/v1/trucks", json={"type": "LARGE_STRAIGHT", "name": "Big one"},
                                 headers=auth_header(driver_user))
    assert response.status_code == 201
    truck = response.json()
    assert truck["status"] == "FREE"

    load = await create_load(client, shipper_user)
    assert load["status"] == "NEW"
    assert load["state"] is None
    assert load["pick_up_address"]["city"] == "Kyiv"

    response = await client.patch(f"/v1/loads/{load['id']}/post", headers=auth_header(shipper_user))
    assert response.status_code == 200
    posted = response.json()
    assert posted["status"] == "ASSIGNED"
    assert posted["assigned_to"] == driver_user["user_id"]
    assert posted["truck_id"] == truck["id"]
    assert posted["no_driver_found"] is False

    response = await client.get("/v1/loads", headers=auth_header(driver_user))
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["loads"]] == [load["id"]]

    states = []
    for _ in range(3):
        response = await client.patch(f"/v1/loads/{load['id']}/state", headers=auth_header(driver_user))
        assert response.status_code == 200
        states.append((response.json()["status"], response.json()["state"]))

    assert states == [
        ("ASSIGNED", "ARRIVED_TO_PICK_UP"),
        ("ASSIGNED", "EN_ROUTE_TO_DELIVERY"),
        ("DELIVERED", None),
    ]

    response = await client.patch(f"/v1/loads/{load['id']}/state", headers=auth_header(driver_user))
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_LOAD_TRANSITION"

    response = await client.get(f"/v1/loads/{load['id']}/logs", headers=auth_header(shipper_user))
    assert response.status_code == 200
    assert [entry["message"] for entry in response.json()["logs"]] == [
        "Load posted",
        f"Assigned to driver {driver_user['user_id']}",
        "Load state changed to 'Arrived to Pick Up'",
        "Load state changed to 'En route to delivery'",
        "Load delivered",
    ]
    assert all(entry["time"] for entry in response.json()["logs"])

    response = await client.get("/v1/trucks", headers=auth_header(driver_user))
    assert response.json()["trucks"][0]["status"] == "FREE"


@pytest.mark.asyncio
async def test_post_without_trucks_then_match(client, shipper_user, driver_user):
    load = await create_load(client, shipper_user)

    response = await client.patch(f"/v1/loads/{load['id']}/post", headers=auth_header(shipper_user))
    assert response.status_code == 200
    assert response.json()["status"] == "POSTED"
    assert response.json()["no_driver_found"] is True

    await client.post("/v1/trucks", json={"type": "SPRINTER"}, headers=auth_header(driver_user))

    response = await client.patch(f"/v1/loads/{load['id']}/match", headers=auth_header(shipper_user))
    assert response.status_code == 200
    assert response.json()["status"] == "ASSIGNED"
    assert response.json()["assigned_to"] == driver_user["user_id"]


@pytest.mark.asyncio
async def test_unpost_edit_and_delete(client, shipper_user):
    load = await create_load(client, shipper_user)
    headers = auth_header(shipper_user)

    await client.patch(f"/v1/loads/{load['id']}/post", headers=headers)

    response = await client.put(f"/v1/loads/{load['id']}", json={"payload": 50}, headers=headers)
    assert response.status_code == 409

    response = await client.patch(f"/v1/loads/{load['id']}/unpost", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "NEW"

    response = await client.put(f"/v1/loads/{load['id']}", json={"payload": 50}, headers=headers)
    assert response.status_code == 200
    assert response.json()["payload"] == 50

    response = await client.delete(f"/v1/loads/{load['id']}", headers=headers)
    assert response.status_code == 200

    response = await client.get(f"/v1/loads/{load['id']}", headers=headers)
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_malformed_load_spec(client, shipper_user):
    payload = dict(LOAD_PAYLOAD, payload=0)

    response = await client.post("/v1/loads", json=payload, headers=auth_header(shipper_user))

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_LOAD_SPEC"


@pytest.mark.asyncio
async def test_role_guards(client, shipper_user, driver_user):
    response = await client.post("/v1/loads", json=LOAD_PAYLOAD, headers=auth_header(driver_user))
    assert response.status_code == 403

    response = await client.post("/v1/trucks", json={"type": "SPRINTER"}, headers=auth_header(shipper_user))
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_FORBIDDEN"


@pytest.mark.asyncio
async def test_other_shipper_cannot_touch_load(client, shipper_user):
    load = await create_load(client, shipper_user)
    intruder = await register(client, "intruder@api.com", "SHIPPER")

    for response in (
        await client.get(f"/v1/loads/{load['id']}", headers=auth_header(intruder)),
        await client.patch(f"/v1/loads/{load['id']}/post", headers=auth_header(intruder)),
        await client.delete(f"/v1/loads/{load['id']}", headers=auth_header(intruder)),
    ):
        assert response.status_code == 403
        assert response.json()["error_code"] == "ERR_PERM_001"


@pytest.mark.asyncio
async def test_other_driver_cannot_advance(client, shipper_user, driver_user):
    await client.post("/v1/trucks", json={"type": "SPRINTER"}, headers=auth_header(driver_user))
    load = await create_load(client, shipper_user)
    await client.patch(f"/v1/loads/{load['id']}/post", headers=auth_header(shipper_user))
    stranger = await register(client, "stranger@api.com", "DRIVER")

    response = await client.patch(f"/v1/loads/{load['id']}/state", headers=auth_header(stranger))
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"

    response = await client.get(f"/v1/loads/{load['id']}", headers=auth_header(driver_user))
    assert response.json()["state"] == "EN_ROUTE_TO_PICK_UP"


@pytest.mark.asyncio
async def test_truck_management(client, shipper_user, driver_user):
    headers = auth_header(driver_user)
    first = (await client.post("/v1/trucks", json={"type": "SPRINTER"}, headers=headers)).json()
    second = (await client.post("/v1/trucks", json={"type": "SMALL_STRAIGHT"}, headers=headers)).json()

    response = await client.patch(f"/v1/trucks/{second['id']}/assign", headers=headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is True

    response = await client.put(f"/v1/trucks/{first['id']}", json={"name": "Renamed"}, headers=headers)
    assert response.json()["name"] == "Renamed"

    load = await create_load(client, shipper_user)
    await client.patch(f"/v1/loads/{load['id']}/post", headers=auth_header(shipper_user))

    response = await client.delete(f"/v1/trucks/{first['id']}", headers=headers)
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_TRUCK_UNAVAILABLE"

    response = await client.patch(f"/v1/trucks/{first['id']}/assign", headers=headers)
    assert response.status_code == 409

    response = await client.delete(f"/v1/trucks/{second['id']}", headers=headers)
    assert response.status_code == 200

    response = await client.get("/v1/trucks", headers=headers)
    assert [truck["id"] for truck in response.json()["trucks"]] == [first["id"]]


@pytest.mark.asyncio
async def test_profiles_and_shipper_removal(client, shipper_user, driver_user):
    response = await client.get(f"/v1/drivers/{driver_user['user_id']}", headers=auth_header(shipper_user))
    assert response.status_code == 200
    assert response.json()["email"] == "driver@api.com"

    response = await client.get(f"/v1/shippers/{driver_user['user_id']}", headers=auth_header(shipper_user))
    assert response.status_code == 404

    await client.post("/v1/trucks", json={"type": "SPRINTER"}, headers=auth_header(driver_user))
    load = await create_load(client, shipper_user)
    await client.patch(f"/v1/loads/{load['id']}/post", headers=auth_header(shipper_user))

    response = await client.delete("/v1/shippers/me", headers=auth_header(shipper_user))
    assert response.status_code == 409

    for _ in range(3):
        await client.patch(f"/v1/loads/{load['id']}/state", headers=auth_header(driver_user))

    response = await client.delete("/v1/shippers/me", headers=auth_header(shipper_user))
    assert response.status_code == 200

    response = await client.get("/v1/auth/me", headers=auth_header(shipper_user))
    assert response.status_code in (401, 403)
