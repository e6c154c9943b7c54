"""
Integration tests for booking and the ride lifecycle over HTTP.
"""

from conftest import DELHI, INDIA_GATE, IGI_AIRPORT, auth, signup

BOOKING = {
    "pickup": {"latitude": DELHI.latitude, "longitude": DELHI.longitude, "address": "Connaught Place"},
    "destination": {"latitude": INDIA_GATE.latitude, "longitude": INDIA_GATE.longitude},
}


async def book(client, token, **overrides):
    response = await client.post("/api/rides", json={**BOOKING, **overrides}, headers=auth(token))
    assert response.status_code == 201, response.text
    return response.json()


async def test_booking_without_drivers_stays_pending(client, rider):
    data = await book(client, rider["access_token"])

    assert data["drivers_available"] is False
    assert data["candidates"] == []
    assert data["search_radius_km"] == 15.0
    assert data["ride"]["status"] == "pending"
    assert data["ride"]["pickup_address"] == "Connaught Place"
    assert data["ride"]["distance_km"] == 2.0
    assert data["fare"]["base_fare"] == 30


async def test_booking_lists_nearest_drivers(client, rider, make_driver):
    near = await make_driver("near@example.com", INDIA_GATE)
    far = await make_driver("far@example.com", IGI_AIRPORT)
    await make_driver("unapproved@example.com", DELHI, approve=False)

    data = await book(client, rider["access_token"])

    assert data["drivers_available"] is True
    assert data["search_radius_km"] == 5.0
    assert [c["driver_id"] for c in data["candidates"]] == [near["driver_id"]]
    assert far["driver_id"] not in [c["driver_id"] for c in data["candidates"]]
    assert data["ride"]["driver_id"] is None


async def test_emergency_booking_is_auto_assigned(client, rider, make_driver):
    driver = await make_driver("near@example.com", INDIA_GATE)

    data = await book(client, rider["access_token"], purpose="emergency")

    assert data["assigned_driver_id"] == driver["driver_id"]
    assert data["ride"]["status"] == "accepted"
    assert data["ride"]["driver_id"] == driver["driver_id"]
    assert data["fare"]["emergency_multiplier"] == 1.5


async def test_drivers_cannot_book(client, make_driver):
    driver = await make_driver("d@example.com")
    response = await client.post("/api/rides", json=BOOKING, headers=auth(driver["access_token"]))
    assert response.status_code == 403


async def test_claim_then_second_claim_conflicts(client, rider, make_driver):
    first = await make_driver("one@example.com")
    second = await make_driver("two@example.com")
    ride_id = (await book(client, rider["access_token"]))["ride"]["id"]

    response = await client.post(f"/api/rides/{ride_id}/claim", headers=auth(first["access_token"]))
    assert response.status_code == 200
    assert response.json()["ride"]["driver_id"] == first["driver_id"]
    assert response.json()["ride"]["status"] == "accepted"

    response = await client.post(f"/api/rides/{ride_id}/claim", headers=auth(second["access_token"]))
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_RIDE_001"

    response = await client.get(f"/api/rides/{ride_id}", headers=auth(rider["access_token"]))
    assert response.json()["driver_id"] == first["driver_id"]


async def test_unapproved_driver_cannot_claim(client, rider, make_driver):
    driver = await make_driver("new@example.com", approve=False, online=False)
    ride_id = (await book(client, rider["access_token"]))["ride"]["id"]

    response = await client.post(f"/api/rides/{ride_id}/claim", headers=auth(driver["access_token"]))
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_DRIVER_001"


async def test_offline_driver_cannot_claim(client, rider, make_driver):
    driver = await make_driver("idle@example.com", online=False)
    ride_id = (await book(client, rider["access_token"]))["ride"]["id"]

    response = await client.post(f"/api/rides/{ride_id}/claim", headers=auth(driver["access_token"]))
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_DRIVER_001"

    response = await client.get(f"/api/rides/{ride_id}", headers=auth(rider["access_token"]))
    assert response.json()["status"] == "pending"


async def test_claim_unknown_ride(client, make_driver):
    driver = await make_driver("d@example.com")
    response = await client.post("/api/rides/nope/claim", headers=auth(driver["access_token"]))
    assert response.status_code == 404


async def test_complete_and_rate(client, rider, make_driver):
    driver = await make_driver("d@example.com")
    booked = (await book(client, rider["access_token"]))["ride"]
    ride_id = booked["id"]

    # Not accepted yet
    response = await client.post(f"/api/rides/{ride_id}/rate", json={"rating": 5},
                                 headers=auth(rider["access_token"]))
    assert response.status_code == 409

    await client.post(f"/api/rides/{ride_id}/claim", headers=auth(driver["access_token"]))
    response = await client.post(f"/api/rides/{ride_id}/complete", headers=auth(driver["access_token"]))
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["completed_at"] is not None

    response = await client.post(f"/api/rides/{ride_id}/rate", json={"rating": 4},
                                 headers=auth(rider["access_token"]))
    assert response.status_code == 200
    assert response.json()["rating"] == 4

    profile = (await client.get("/api/drivers/me", headers=auth(driver["access_token"]))).json()
    assert profile["total_rides"] == 1
    assert profile["total_earnings"] == booked["estimated_fare"]
    assert profile["total_km"] == booked["distance_km"]
    assert profile["rating"] == 4.0
    assert profile["rating_count"] == 1


async def test_only_assigned_driver_completes(client, rider, make_driver):
    driver = await make_driver("d@example.com")
    other = await make_driver("other@example.com")
    ride_id = (await book(client, rider["access_token"]))["ride"]["id"]
    await client.post(f"/api/rides/{ride_id}/claim", headers=auth(driver["access_token"]))

    response = await client.post(f"/api/rides/{ride_id}/complete", headers=auth(other["access_token"]))
    assert response.status_code == 403


async def test_cancel_pending_ride(client, rider, make_driver):
    driver = await make_driver("d@example.com")
    ride_id = (await book(client, rider["access_token"]))["ride"]["id"]

    response = await client.post(f"/api/rides/{ride_id}/cancel", headers=auth(rider["access_token"]))
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    # Cancelled rides cannot be claimed or cancelled again
    response = await client.post(f"/api/rides/{ride_id}/claim", headers=auth(driver["access_token"]))
    assert response.status_code == 409
    response = await client.post(f"/api/rides/{ride_id}/cancel", headers=auth(rider["access_token"]))
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_RIDE_002"


async def test_assigned_driver_can_cancel(client, rider, make_driver):
    driver = await make_driver("d@example.com")
    ride_id = (await book(client, rider["access_token"]))["ride"]["id"]
    await client.post(f"/api/rides/{ride_id}/claim", headers=auth(driver["access_token"]))

    response = await client.post(f"/api/rides/{ride_id}/cancel", headers=auth(driver["access_token"]))
    assert response.status_code == 200
    assert response.json()["cancelled_at"] is not None


async def test_other_riders_cannot_see_ride(client, rider):
    ride_id = (await book(client, rider["access_token"]))["ride"]["id"]
    stranger = await signup(client, "stranger@example.com")

    response = await client.get(f"/api/rides/{ride_id}", headers=auth(stranger["access_token"]))
    assert response.status_code == 403
    response = await client.post(f"/api/rides/{ride_id}/cancel", headers=auth(stranger["access_token"]))
    assert response.status_code == 403


async def test_list_my_rides(client, rider, make_driver):
    driver = await make_driver("d@example.com")
    first = (await book(client, rider["access_token"]))["ride"]["id"]
    await book(client, rider["access_token"])
    await client.post(f"/api/rides/{first}/claim", headers=auth(driver["access_token"]))

    response = await client.get("/api/rides", headers=auth(rider["access_token"]))
    assert response.json()["total"] == 2

    response = await client.get("/api/rides", headers=auth(driver["access_token"]))
    assert [r["id"] for r in response.json()["rides"]] == [first]

    response = await client.get("/api/rides?status=pending", headers=auth(rider["access_token"]))
    assert response.json()["total"] == 1
