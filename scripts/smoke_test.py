"""
Post-deploy smoke test.

Runs against a live server seeded with `python -m uride.seed_demo`:
1. Health check
2. Rider and driver signup
3. Admin approves the driver, driver goes online
4. Rider books; driver claims, a second claim gets 409; driver completes
"""

import sys
import uuid

import httpx

BASE_URL = "http://127.0.0.1:8000"
API = f"{BASE_URL}/api"
PICKUP = {"latitude": 28.6139, "longitude": 77.2090}
DESTINATION = {"latitude": 28.6129, "longitude": 77.2295}


def check(condition, message):
    if not condition:
        print(f"FAIL: {message}")
        sys.exit(1)
    print(f"ok: {message}")


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def signup(client, role):
    email = f"smoke-{role.lower()}-{uuid.uuid4().hex[:8]}@example.com"
    resp = client.post(f"{API}/auth/signup", json={
        "email": email, "name": f"Smoke {role.title()}", "password": "smoke123", "role": role,
    })
    check(resp.status_code == 201, f"{role} signup ({resp.status_code})")
    return resp.json()


def run():
    with httpx.Client(timeout=10) as client:
        resp = client.get(f"{BASE_URL}/health")
        check(resp.status_code == 200, f"health {resp.json() if resp.status_code == 200 else ''}")

        rider = signup(client, "RIDER")
        driver = signup(client, "DRIVER")
        rival = signup(client, "DRIVER")

        resp = client.post(f"{API}/auth/login", json={"email": "admin@example.com", "password": "admin123"})
        check(resp.status_code == 200, "admin login (run seed_demo first)")
        admin_token = resp.json()["access_token"]

        for d in (driver, rival):
            resp = client.post(f"{API}/admin/drivers/{d['driver_id']}/approve", json={"approved": True},
                               headers=bearer(admin_token))
            check(resp.status_code == 200, "driver approved")
            client.put(f"{API}/drivers/me/location", json=PICKUP, headers=bearer(d["access_token"]))
            resp = client.put(f"{API}/drivers/me/status", json={"online_status": "online"},
                              headers=bearer(d["access_token"]))
            check(resp.json()["is_eligible"], "driver online and eligible")

        resp = client.post(f"{API}/rides", json={"pickup": PICKUP, "destination": DESTINATION},
                           headers=bearer(rider["access_token"]))
        check(resp.status_code == 201 and resp.json()["drivers_available"], "ride booked with candidates")
        ride_id = resp.json()["ride"]["id"]

        resp = client.post(f"{API}/rides/{ride_id}/claim", headers=bearer(driver["access_token"]))
        check(resp.status_code == 200, "first claim wins")
        resp = client.post(f"{API}/rides/{ride_id}/claim", headers=bearer(rival["access_token"]))
        check(resp.status_code == 409, "second claim rejected")

        resp = client.post(f"{API}/rides/{ride_id}/complete", headers=bearer(driver["access_token"]))
        check(resp.json().get("status") == "completed", "ride completed")

    print("\nSmoke test passed")


if __name__ == "__main__":
    run()
