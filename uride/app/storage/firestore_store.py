"""
Firestore ride store.

Uses the synchronous firebase-admin client, so every call is pushed to the
threadpool. Status changes run inside `@firestore.transactional` functions:
the ride snapshot is read through the transaction and the update is only
staged if the status still matches. Firestore aborts and retries the
transaction if the document changed underneath it, which gives the same
compare-and-swap guarantee as the SQL store's conditional UPDATE.

Collections:
    drivers/{driver_id}
    rides/{ride_id}
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import firebase_admin
from fastapi.concurrency import run_in_threadpool
from firebase_admin import credentials, firestore

from uride.app.domain.entities import Driver, NewRide, Ride, RideQuery, running_average
from uride.app.domain.geo import Coordinate
from uride.app.models.enums import (
    DriverType, OnlineStatus, RideStatus, RidePurpose, RideType
)
from uride.app.storage.base import TRANSITION_TIMESTAMPS

logger = logging.getLogger("uride.storage.firestore")

DRIVERS_COL = "drivers"
RIDES_COL = "rides"
FIREBASE_APP_NAME = "uride"


def init_firestore_client(cred_path: Optional[str], project_id: Optional[str] = None):
    """
    Initialize (or reuse) the named Firebase app and return its Firestore client.

    Without a credentials file the application default credentials are used.
    """
    try:
        app = firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        cred = credentials.Certificate(cred_path) if cred_path else credentials.ApplicationDefault()
        options = {"projectId": project_id} if project_id else None
        app = firebase_admin.initialize_app(cred, options, name=FIREBASE_APP_NAME)
        logger.info("Initialized Firebase app", extra={"project_id": project_id})
    return firestore.client(app=app)


# Document mapping

def _coordinate_from(value: Any) -> Optional[Coordinate]:
    if value is None:
        return None
    # GeoPoint or a plain {"latitude", "longitude"} map
    if isinstance(value, dict):
        lat, lng = value.get("latitude"), value.get("longitude")
        if lat is None or lng is None:
            return None
        return Coordinate(float(lat), float(lng))
    return Coordinate(float(value.latitude), float(value.longitude))


def _geopoint(coordinate: Coordinate) -> firestore.GeoPoint:
    return firestore.GeoPoint(coordinate.latitude, coordinate.longitude)


def driver_from_doc(doc_id: str, data: Dict[str, Any]) -> Driver:
    return Driver(
        id=doc_id,
        display_name=data.get("display_name", ""),
        is_active=bool(data.get("is_active", False)),
        is_approved=bool(data.get("is_approved", False)),
        online_status=OnlineStatus(data.get("online_status", OnlineStatus.OFFLINE.value)),
        last_known_location=_coordinate_from(data.get("last_known_location")),
        user_id=data.get("user_id"),
        driver_type=DriverType(data.get("driver_type", DriverType.OWNER.value)),
        vehicle_number=data.get("vehicle_number"),
        rating=float(data.get("rating", 5.0)),
        rating_count=int(data.get("rating_count", 0)),
        total_rides=int(data.get("total_rides", 0)),
        total_earnings=float(data.get("total_earnings", 0.0)),
        total_km=float(data.get("total_km", 0.0)),
        location_updated_at=data.get("location_updated_at"),
    )


def ride_from_doc(doc_id: str, data: Dict[str, Any]) -> Ride:
    return Ride(
        id=doc_id,
        rider_id=data["rider_id"],
        driver_id=data.get("driver_id"),
        pickup=_coordinate_from(data["pickup"]),
        destination=_coordinate_from(data["destination"]),
        pickup_address=data.get("pickup_address"),
        destination_address=data.get("destination_address"),
        status=RideStatus(data["status"]),
        purpose=RidePurpose(data.get("purpose", RidePurpose.GENERAL.value)),
        ride_type=RideType(data.get("ride_type", RideType.ECONOMY.value)),
        distance_km=float(data.get("distance_km", 0.0)),
        estimated_fare=float(data.get("estimated_fare", 0.0)),
        rating=data.get("rating"),
        requested_at=data["requested_at"],
        accepted_at=data.get("accepted_at"),
        completed_at=data.get("completed_at"),
        cancelled_at=data.get("cancelled_at"),
    )


def ride_to_doc(ride: NewRide, requested_at: datetime) -> Dict[str, Any]:
    return {
        "rider_id": ride.rider_id,
        "driver_id": None,
        "pickup": _geopoint(ride.pickup),
        "destination": _geopoint(ride.destination),
        "pickup_address": ride.pickup_address,
        "destination_address": ride.destination_address,
        "status": RideStatus.PENDING.value,
        "purpose": ride.purpose.value,
        "ride_type": ride.ride_type.value,
        "distance_km": ride.distance_km,
        "estimated_fare": ride.estimated_fare,
        "rating": None,
        "requested_at": requested_at,
    }


# Transaction bodies (plain functions so they can run without a live project)

def apply_transition(
    transaction,
    ride_ref,
    expected: Iterable[RideStatus],
    updates: Dict[str, Any],
    driver_id: Optional[str] = None,
    drivers_col=None,
) -> bool:
    """
    Stage `updates` on the ride if its current status is in `expected`.

    With `drivers_col`, the assigned driver is also credited with the ride's
    fare and distance in the same transaction (used on completion).
    """
    snapshot = ride_ref.get(transaction=transaction)
    if not snapshot.exists:
        return False

    data = snapshot.to_dict() or {}
    if data.get("status") not in {s.value for s in expected}:
        return False
    if driver_id is not None and data.get("driver_id") != driver_id:
        return False

    transaction.update(ride_ref, updates)
    if drivers_col is not None and data.get("driver_id"):
        transaction.update(drivers_col.document(data["driver_id"]), {
            "total_rides": firestore.Increment(1),
            "total_earnings": firestore.Increment(float(data.get("estimated_fare", 0.0))),
            "total_km": firestore.Increment(float(data.get("distance_km", 0.0))),
        })
    return True


def apply_rating(transaction, ride_ref, drivers_col, rider_id: int, rating: int) -> bool:
    """Rate the ride and fold the rating into its driver's average."""
    snapshot = ride_ref.get(transaction=transaction)
    if not snapshot.exists:
        return False

    data = snapshot.to_dict() or {}
    if (
        data.get("rider_id") != rider_id
        or data.get("status") != RideStatus.COMPLETED.value
        or data.get("rating") is not None
    ):
        return False

    # Transactions require every read before the first write
    driver_ref = driver_data = None
    if data.get("driver_id"):
        driver_ref = drivers_col.document(data["driver_id"])
        driver_snapshot = driver_ref.get(transaction=transaction)
        if driver_snapshot.exists:
            driver_data = driver_snapshot.to_dict() or {}

    transaction.update(ride_ref, {"rating": rating})
    if driver_data is not None:
        count = int(driver_data.get("rating_count", 0))
        transaction.update(driver_ref, {
            "rating": running_average(float(driver_data.get("rating", 5.0)), count, rating),
            "rating_count": count + 1,
        })
    return True


class FirestoreRideStore:

    def __init__(self, client):
        self.client = client

    def _drivers(self):
        return self.client.collection(DRIVERS_COL)

    def _rides(self):
        return self.client.collection(RIDES_COL)

    # Drivers

    def _eligible_drivers_sync(self) -> List[Driver]:
        query = (
            self._drivers()
            .where("is_active", "==", True)
            .where("is_approved", "==", True)
            .where("online_status", "==", OnlineStatus.ONLINE.value)
        )
        drivers = [driver_from_doc(doc.id, doc.to_dict() or {}) for doc in query.stream()]
        # Location presence can't be expressed as an equality filter
        return [d for d in drivers if d.last_known_location is not None]

    async def get_eligible_drivers(self) -> List[Driver]:
        return await run_in_threadpool(self._eligible_drivers_sync)

    def _get_driver_sync(self, driver_id: str) -> Optional[Driver]:
        snapshot = self._drivers().document(driver_id).get()
        if not snapshot.exists:
            return None
        return driver_from_doc(snapshot.id, snapshot.to_dict() or {})

    async def get_driver(self, driver_id: str) -> Optional[Driver]:
        return await run_in_threadpool(self._get_driver_sync, driver_id)

    def _driver_for_user_sync(self, user_id: int) -> Optional[Driver]:
        for doc in self._drivers().where("user_id", "==", user_id).limit(1).stream():
            return driver_from_doc(doc.id, doc.to_dict() or {})
        return None

    async def get_driver_for_user(self, user_id: int) -> Optional[Driver]:
        return await run_in_threadpool(self._driver_for_user_sync, user_id)

    def _create_driver_sync(self, user_id, display_name, driver_type, vehicle_number) -> Driver:
        ref = self._drivers().document()
        data = {
            "user_id": user_id,
            "display_name": display_name,
            "is_active": True,
            "is_approved": False,
            "online_status": OnlineStatus.OFFLINE.value,
            "last_known_location": None,
            "driver_type": driver_type.value,
            "vehicle_number": vehicle_number,
            "rating": 5.0,
            "rating_count": 0,
            "total_rides": 0,
            "total_earnings": 0.0,
            "total_km": 0.0,
            "created_at": firestore.SERVER_TIMESTAMP,
        }
        ref.set(data)
        return driver_from_doc(ref.id, data)

    async def create_driver(
        self,
        user_id: int,
        display_name: str,
        driver_type: DriverType = DriverType.OWNER,
        vehicle_number: Optional[str] = None,
    ) -> Driver:
        return await run_in_threadpool(
            self._create_driver_sync, user_id, display_name, driver_type, vehicle_number
        )

    def _update_driver_sync(self, driver_id: str, updates: Dict[str, Any]) -> bool:
        ref = self._drivers().document(driver_id)
        if not ref.get().exists:
            return False
        # Writes to one driver's own document; no cross-driver coordination
        ref.update(updates)
        return True

    async def update_driver_location(self, driver_id: str, location: Coordinate) -> bool:
        return await run_in_threadpool(self._update_driver_sync, driver_id, {
            "last_known_location": _geopoint(location),
            "location_updated_at": datetime.now(timezone.utc),
        })

    async def set_driver_online_status(self, driver_id: str, status: OnlineStatus) -> bool:
        return await run_in_threadpool(
            self._update_driver_sync, driver_id, {"online_status": status.value}
        )

    async def set_driver_approval(self, driver_id: str, approved: bool) -> bool:
        return await run_in_threadpool(
            self._update_driver_sync, driver_id, {"is_approved": approved}
        )

    async def set_driver_active(self, driver_id: str, active: bool) -> bool:
        return await run_in_threadpool(
            self._update_driver_sync, driver_id, {"is_active": active}
        )

    # Rides

    def _create_ride_sync(self, ride: NewRide) -> Ride:
        ref = self._rides().document()
        data = ride_to_doc(ride, requested_at=datetime.now(timezone.utc))
        ref.set(data)
        return ride_from_doc(ref.id, data)

    async def create_ride(self, ride: NewRide) -> Ride:
        return await run_in_threadpool(self._create_ride_sync, ride)

    def _get_ride_sync(self, ride_id: str) -> Optional[Ride]:
        snapshot = self._rides().document(ride_id).get()
        if not snapshot.exists:
            return None
        return ride_from_doc(snapshot.id, snapshot.to_dict() or {})

    async def get_ride(self, ride_id: str) -> Optional[Ride]:
        return await run_in_threadpool(self._get_ride_sync, ride_id)

    def _query(self, query: RideQuery):
        q = self._rides()
        if query.rider_id is not None:
            q = q.where("rider_id", "==", query.rider_id)
        if query.driver_id is not None:
            q = q.where("driver_id", "==", query.driver_id)
        if query.statuses:
            q = q.where("status", "in", [s.value for s in query.statuses])
        return q

    def _list_rides_sync(self, query: RideQuery) -> List[Ride]:
        q = (
            self._query(query)
            .order_by("requested_at", direction=firestore.Query.DESCENDING)
            .offset(query.offset)
            .limit(query.limit)
        )
        return [ride_from_doc(doc.id, doc.to_dict() or {}) for doc in q.stream()]

    async def list_rides(self, query: RideQuery) -> List[Ride]:
        return await run_in_threadpool(self._list_rides_sync, query)

    def _count_rides_sync(self, query: RideQuery) -> int:
        result = self._query(query).count().get()
        return int(result[0][0].value)

    async def count_rides(self, query: RideQuery) -> int:
        return await run_in_threadpool(self._count_rides_sync, query)

    def _transition_sync(self, ride_id, expected, updates, driver_id=None, credit_driver=False) -> bool:
        ride_ref = self._rides().document(ride_id)
        drivers_col = self._drivers() if credit_driver else None

        @firestore.transactional
        def txn_transition(transaction):
            return apply_transition(
                transaction, ride_ref, expected, updates, driver_id, drivers_col
            )

        return txn_transition(self.client.transaction())

    async def conditional_claim(self, ride_id: str, driver_id: str) -> bool:
        claimed = await run_in_threadpool(
            self._transition_sync,
            ride_id,
            [RideStatus.PENDING],
            {
                "status": RideStatus.ACCEPTED.value,
                "driver_id": driver_id,
                "accepted_at": datetime.now(timezone.utc),
            },
        )
        if not claimed:
            logger.info("Claim rejected", extra={"ride_id": ride_id, "driver_id": driver_id})
        return claimed

    async def conditional_transition(
        self,
        ride_id: str,
        expected: Iterable[RideStatus],
        new_status: RideStatus,
        driver_id: Optional[str] = None,
    ) -> bool:
        updates = {"status": new_status.value}
        stamp = TRANSITION_TIMESTAMPS.get(new_status)
        if stamp:
            updates[stamp] = datetime.now(timezone.utc)

        return await run_in_threadpool(
            self._transition_sync,
            ride_id,
            list(expected),
            updates,
            driver_id,
            new_status == RideStatus.COMPLETED,
        )

    def _rate_sync(self, ride_id: str, rider_id: int, rating: int) -> bool:
        ride_ref = self._rides().document(ride_id)
        drivers_col = self._drivers()

        @firestore.transactional
        def txn_rate(transaction):
            return apply_rating(transaction, ride_ref, drivers_col, rider_id, rating)

        return txn_rate(self.client.transaction())

    async def set_ride_rating(self, ride_id: str, rider_id: int, rating: int) -> bool:
        return await run_in_threadpool(self._rate_sync, ride_id, rider_id, rating)
