"""
Ride store tests: the conditional claim and status transitions, for the
in-memory and SQL backends.
"""

import asyncio
import pytest

from conftest import DELHI, INDIA_GATE, TestingSessionLocal
from uride.app.core.security import get_password_hash
from uride.app.domain.entities import Driver, NewRide, RideQuery
from uride.app.models.enums import OnlineStatus, RideStatus, UserRole
from uride.app.models.user import User
from uride.app.storage.base import RideStore
from uride.app.storage.memory_store import MemoryRideStore
from uride.app.storage.sql_store import SqlRideStore


def new_ride(rider_id=1):
    return NewRide(
        rider_id=rider_id,
        pickup=DELHI,
        destination=INDIA_GATE,
        distance_km=2.0,
        estimated_fare=30,
    )


def online_driver(driver_id):
    return Driver(
        id=driver_id,
        display_name=driver_id,
        is_active=True,
        is_approved=True,
        online_status=OnlineStatus.ONLINE,
        last_known_location=DELHI,
    )


async def create_user(db, email, role=UserRole.RIDER) -> User:
    user = User(
        email=email,
        name=email,
        hashed_password=get_password_hash("secret123"),
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def test_backends_satisfy_protocol():
    assert isinstance(MemoryRideStore(), RideStore)
    assert isinstance(SqlRideStore(db=None), RideStore)


# Memory store

async def test_memory_concurrent_claims_have_one_winner():
    store = MemoryRideStore()
    ride = await store.create_ride(new_ride())
    driver_ids = [f"driver-{i}" for i in range(10)]

    results = await asyncio.gather(
        *(store.conditional_claim(ride.id, d) for d in driver_ids)
    )

    assert results.count(True) == 1
    winner = driver_ids[results.index(True)]
    claimed = await store.get_ride(ride.id)
    assert claimed.status == RideStatus.ACCEPTED
    assert claimed.driver_id == winner
    assert claimed.accepted_at is not None


async def test_memory_claim_unknown_ride_fails():
    assert await MemoryRideStore().conditional_claim("missing", "d1") is False


async def test_memory_eligible_drivers_and_presence():
    store = MemoryRideStore()
    store.add_driver(online_driver("d1"))
    created = await store.create_driver(user_id=7, display_name="New")

    assert [d.id for d in await store.get_eligible_drivers()] == ["d1"]

    await store.set_driver_approval(created.id, True)
    await store.update_driver_location(created.id, INDIA_GATE)
    await store.set_driver_online_status(created.id, OnlineStatus.ONLINE)

    assert {d.id for d in await store.get_eligible_drivers()} == {"d1", created.id}
    assert (await store.get_driver_for_user(7)).id == created.id

    await store.set_driver_online_status("d1", OnlineStatus.OFFLINE)
    assert [d.id for d in await store.get_eligible_drivers()] == [created.id]


async def test_memory_transitions_are_status_gated():
    store = MemoryRideStore()
    store.add_driver(online_driver("d1"))
    ride = await store.create_ride(new_ride())

    # Cannot complete before it is accepted
    assert not await store.conditional_transition(
        ride.id, [RideStatus.ACCEPTED], RideStatus.COMPLETED, driver_id="d1"
    )
    assert await store.conditional_claim(ride.id, "d1")
    # Wrong driver
    assert not await store.conditional_transition(
        ride.id, [RideStatus.ACCEPTED], RideStatus.COMPLETED, driver_id="d2"
    )
    assert await store.conditional_transition(
        ride.id, [RideStatus.ACCEPTED], RideStatus.COMPLETED, driver_id="d1"
    )

    completed = await store.get_ride(ride.id)
    assert completed.status == RideStatus.COMPLETED
    assert completed.completed_at is not None
    assert (await store.get_driver("d1")).total_rides == 1

    # Completed rides cannot be cancelled or claimed
    assert not await store.conditional_transition(
        ride.id, [RideStatus.PENDING, RideStatus.ACCEPTED], RideStatus.CANCELLED
    )
    assert not await store.conditional_claim(ride.id, "d2")


async def test_memory_rating_once_on_completed_ride():
    store = MemoryRideStore()
    ride = await store.create_ride(new_ride(rider_id=3))

    assert not await store.set_ride_rating(ride.id, 3, 5)

    await store.conditional_claim(ride.id, "d1")
    await store.conditional_transition(ride.id, [RideStatus.ACCEPTED], RideStatus.COMPLETED)

    assert not await store.set_ride_rating(ride.id, 4, 5)
    assert await store.set_ride_rating(ride.id, 3, 4)
    assert not await store.set_ride_rating(ride.id, 3, 1)
    assert (await store.get_ride(ride.id)).rating == 4


async def test_memory_driver_totals_and_rating_average():
    store = MemoryRideStore()
    store.add_driver(online_driver("d1"))

    for rating in (5, 2):
        ride = await store.create_ride(new_ride(rider_id=3))
        await store.conditional_claim(ride.id, "d1")
        await store.conditional_transition(
            ride.id, [RideStatus.ACCEPTED], RideStatus.COMPLETED, driver_id="d1"
        )
        await store.set_ride_rating(ride.id, 3, rating)

    driver = await store.get_driver("d1")
    assert driver.total_rides == 2
    assert driver.total_earnings == 60
    assert driver.total_km == 4.0
    assert driver.rating == 3.5
    assert driver.rating_count == 2


async def test_memory_inactive_driver_is_not_eligible():
    store = MemoryRideStore()
    store.add_driver(online_driver("d1"))

    assert await store.set_driver_active("d1", False)
    assert await store.get_eligible_drivers() == []
    assert await store.set_driver_active("d1", True)
    assert [d.id for d in await store.get_eligible_drivers()] == ["d1"]
    assert await store.set_driver_active("missing", False) is False


async def test_memory_list_rides_newest_first_with_filters():
    store = MemoryRideStore()
    first = await store.create_ride(new_ride(rider_id=1))
    await asyncio.sleep(0.001)
    second = await store.create_ride(new_ride(rider_id=1))
    await store.create_ride(new_ride(rider_id=2))
    await store.conditional_claim(first.id, "d1")

    rides = await store.list_rides(RideQuery(rider_id=1))
    assert [r.id for r in rides] == [second.id, first.id]
    assert await store.count_rides(RideQuery(rider_id=1)) == 2
    assert await store.count_rides(RideQuery(driver_id="d1")) == 1
    assert await store.count_rides(RideQuery(statuses=[RideStatus.PENDING])) == 2


# SQL store

async def test_sql_second_claim_loses(db_session):
    rider = await create_user(db_session, "rider@example.com")
    store = SqlRideStore(db_session)
    first_driver = await store.create_driver(
        (await create_user(db_session, "d1@example.com", UserRole.DRIVER)).id, "One"
    )
    second_driver = await store.create_driver(
        (await create_user(db_session, "d2@example.com", UserRole.DRIVER)).id, "Two"
    )
    ride = await store.create_ride(new_ride(rider.id))

    # Two independent sessions, as two concurrent requests would have
    async with TestingSessionLocal() as s1, TestingSessionLocal() as s2:
        first = await SqlRideStore(s1).conditional_claim(ride.id, first_driver.id)
        second = await SqlRideStore(s2).conditional_claim(ride.id, second_driver.id)

    assert (first, second) == (True, False)
    claimed = await store.get_ride(ride.id)
    assert claimed.status == RideStatus.ACCEPTED
    assert claimed.driver_id == first_driver.id


async def test_sql_driver_presence_and_eligibility(db_session):
    store = SqlRideStore(db_session)
    user = await create_user(db_session, "driver@example.com", UserRole.DRIVER)
    driver = await store.create_driver(user.id, "Ravi", vehicle_number="DL01AB1234")

    assert driver.is_approved is False
    assert await store.get_eligible_drivers() == []

    assert await store.set_driver_approval(driver.id, True)
    assert await store.update_driver_location(driver.id, INDIA_GATE)
    assert await store.set_driver_online_status(driver.id, OnlineStatus.ONLINE)

    eligible = await store.get_eligible_drivers()
    assert [d.id for d in eligible] == [driver.id]
    assert eligible[0].last_known_location == INDIA_GATE
    assert (await store.get_driver_for_user(user.id)).vehicle_number == "DL01AB1234"
    assert await store.update_driver_location("missing", DELHI) is False

    assert await store.set_driver_active(driver.id, False)
    assert await store.get_eligible_drivers() == []


async def test_sql_complete_and_rate(db_session):
    store = SqlRideStore(db_session)
    rider = await create_user(db_session, "rider@example.com")
    driver = await store.create_driver(
        (await create_user(db_session, "d@example.com", UserRole.DRIVER)).id, "D"
    )
    ride = await store.create_ride(new_ride(rider.id))

    assert await store.conditional_claim(ride.id, driver.id)
    assert await store.conditional_transition(
        ride.id, [RideStatus.ACCEPTED], RideStatus.COMPLETED, driver_id=driver.id
    )
    assert await store.set_ride_rating(ride.id, rider.id, 5)
    assert not await store.set_ride_rating(ride.id, rider.id, 3)

    done = await store.get_ride(ride.id)
    assert done.status == RideStatus.COMPLETED
    assert done.rating == 5
    assert await store.count_rides(RideQuery(rider_id=rider.id)) == 1

    profile = await store.get_driver(driver.id)
    assert profile.total_rides == 1
    assert profile.total_earnings == 30
    assert profile.total_km == 2.0
    assert profile.rating == 5.0
    assert profile.rating_count == 1
