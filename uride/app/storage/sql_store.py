"""
SQLAlchemy ride store (PostgreSQL in production, SQLite in tests).

Claims and other status changes are single `UPDATE ... WHERE status IN (...)`
statements; the row count says whether this caller won.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from uride.app.domain.entities import Driver, NewRide, Ride, RideQuery, running_average
from uride.app.domain.geo import Coordinate
from uride.app.models.driver import Driver as DriverRow
from uride.app.models.ride import Ride as RideRow
from uride.app.models.enums import DriverType, OnlineStatus, RideStatus
from uride.app.storage.base import TRANSITION_TIMESTAMPS

logger = logging.getLogger("uride.storage.sql")


def _driver_from_row(row: DriverRow) -> Driver:
    location = None
    if row.last_latitude is not None and row.last_longitude is not None:
        location = Coordinate(row.last_latitude, row.last_longitude)

    return Driver(
        id=row.id,
        display_name=row.display_name,
        is_active=row.is_active,
        is_approved=row.is_approved,
        online_status=row.online_status,
        last_known_location=location,
        user_id=row.user_id,
        driver_type=row.driver_type,
        vehicle_number=row.vehicle_number,
        rating=row.rating,
        rating_count=row.rating_count,
        total_rides=row.total_rides,
        total_earnings=row.total_earnings,
        total_km=row.total_km,
        location_updated_at=row.location_updated_at,
    )


def _ride_from_row(row: RideRow) -> Ride:
    return Ride(
        id=row.id,
        rider_id=row.rider_id,
        driver_id=row.driver_id,
        pickup=Coordinate(row.pickup_latitude, row.pickup_longitude),
        destination=Coordinate(row.destination_latitude, row.destination_longitude),
        pickup_address=row.pickup_address,
        destination_address=row.destination_address,
        status=row.status,
        purpose=row.purpose,
        ride_type=row.ride_type,
        distance_km=row.distance_km,
        estimated_fare=row.estimated_fare,
        rating=row.rating,
        requested_at=row.requested_at,
        accepted_at=row.accepted_at,
        completed_at=row.completed_at,
        cancelled_at=row.cancelled_at,
    )


class SqlRideStore:
    """Ride store backed by the request's AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Drivers

    async def get_eligible_drivers(self) -> List[Driver]:
        result = await self.db.execute(
            select(DriverRow).where(
                DriverRow.is_active.is_(True),
                DriverRow.is_approved.is_(True),
                DriverRow.online_status == OnlineStatus.ONLINE,
                DriverRow.last_latitude.is_not(None),
                DriverRow.last_longitude.is_not(None),
            ).execution_options(populate_existing=True)
        )
        return [_driver_from_row(row) for row in result.scalars().all()]

    async def get_driver(self, driver_id: str) -> Optional[Driver]:
        result = await self.db.execute(
            select(DriverRow)
            .where(DriverRow.id == driver_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _driver_from_row(row) if row else None

    async def get_driver_for_user(self, user_id: int) -> Optional[Driver]:
        result = await self.db.execute(
            select(DriverRow)
            .where(DriverRow.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _driver_from_row(row) if row else None

    async def create_driver(
        self,
        user_id: int,
        display_name: str,
        driver_type: DriverType = DriverType.OWNER,
        vehicle_number: Optional[str] = None,
    ) -> Driver:
        row = DriverRow(
            user_id=user_id,
            display_name=display_name,
            driver_type=driver_type,
            vehicle_number=vehicle_number,
            is_active=True,
            is_approved=False,
            online_status=OnlineStatus.OFFLINE,
            rating=5.0,
            rating_count=0,
            total_rides=0,
            total_earnings=0.0,
            total_km=0.0,
        )
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return _driver_from_row(row)

    async def _update_driver(self, driver_id: str, **values) -> bool:
        result = await self.db.execute(
            update(DriverRow)
            .where(DriverRow.id == driver_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def update_driver_location(self, driver_id: str, location: Coordinate) -> bool:
        return await self._update_driver(
            driver_id,
            last_latitude=location.latitude,
            last_longitude=location.longitude,
            location_updated_at=datetime.now(timezone.utc),
        )

    async def set_driver_online_status(self, driver_id: str, status: OnlineStatus) -> bool:
        return await self._update_driver(driver_id, online_status=status)

    async def set_driver_approval(self, driver_id: str, approved: bool) -> bool:
        return await self._update_driver(driver_id, is_approved=approved)

    async def set_driver_active(self, driver_id: str, active: bool) -> bool:
        return await self._update_driver(driver_id, is_active=active)

    # Rides

    async def create_ride(self, ride: NewRide) -> Ride:
        row = RideRow(
            rider_id=ride.rider_id,
            pickup_latitude=ride.pickup.latitude,
            pickup_longitude=ride.pickup.longitude,
            pickup_address=ride.pickup_address,
            destination_latitude=ride.destination.latitude,
            destination_longitude=ride.destination.longitude,
            destination_address=ride.destination_address,
            status=RideStatus.PENDING,
            purpose=ride.purpose,
            ride_type=ride.ride_type,
            distance_km=ride.distance_km,
            estimated_fare=ride.estimated_fare,
            requested_at=datetime.now(timezone.utc),
        )
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return _ride_from_row(row)

    async def get_ride(self, ride_id: str) -> Optional[Ride]:
        # Bypass the identity map so status written by another session shows up
        result = await self.db.execute(
            select(RideRow)
            .where(RideRow.id == ride_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _ride_from_row(row) if row else None

    def _filtered(self, stmt, query: RideQuery):
        if query.rider_id is not None:
            stmt = stmt.where(RideRow.rider_id == query.rider_id)
        if query.driver_id is not None:
            stmt = stmt.where(RideRow.driver_id == query.driver_id)
        if query.statuses:
            stmt = stmt.where(RideRow.status.in_(query.statuses))
        return stmt

    async def list_rides(self, query: RideQuery) -> List[Ride]:
        stmt = self._filtered(select(RideRow), query)
        stmt = (
            stmt.order_by(RideRow.requested_at.desc(), RideRow.id)
            .offset(query.offset)
            .limit(query.limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return [_ride_from_row(row) for row in result.scalars().all()]

    async def count_rides(self, query: RideQuery) -> int:
        result = await self.db.execute(self._filtered(select(func.count(RideRow.id)), query))
        return result.scalar()

    async def conditional_claim(self, ride_id: str, driver_id: str) -> bool:
        result = await self.db.execute(
            update(RideRow)
            .where(RideRow.id == ride_id, RideRow.status == RideStatus.PENDING)
            .values(
                status=RideStatus.ACCEPTED,
                driver_id=driver_id,
                accepted_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        claimed = result.rowcount == 1
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
        stmt = update(RideRow).where(
            RideRow.id == ride_id,
            RideRow.status.in_(list(expected)),
        )
        if driver_id is not None:
            stmt = stmt.where(RideRow.driver_id == driver_id)

        values = {"status": new_status}
        stamp = TRANSITION_TIMESTAMPS.get(new_status)
        if stamp:
            values[stamp] = datetime.now(timezone.utc)

        result = await self.db.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        changed = result.rowcount == 1

        if changed and new_status == RideStatus.COMPLETED:
            # Fare, distance and driver are fixed once a ride is accepted
            ride = (await self.db.execute(
                select(RideRow.driver_id, RideRow.estimated_fare, RideRow.distance_km)
                .where(RideRow.id == ride_id)
            )).one()
            if ride.driver_id is not None:
                await self.db.execute(
                    update(DriverRow)
                    .where(DriverRow.id == ride.driver_id)
                    .values(
                        total_rides=DriverRow.total_rides + 1,
                        total_earnings=DriverRow.total_earnings + ride.estimated_fare,
                        total_km=DriverRow.total_km + ride.distance_km,
                    )
                    .execution_options(synchronize_session=False)
                )

        await self.db.commit()
        return changed

    async def set_ride_rating(self, ride_id: str, rider_id: int, rating: int) -> bool:
        result = await self.db.execute(
            update(RideRow)
            .where(
                RideRow.id == ride_id,
                RideRow.rider_id == rider_id,
                RideRow.status == RideStatus.COMPLETED,
                RideRow.rating.is_(None),
            )
            .values(rating=rating)
            .execution_options(synchronize_session=False)
        )
        rated = result.rowcount == 1

        if rated:
            driver_id = (await self.db.execute(
                select(RideRow.driver_id).where(RideRow.id == ride_id)
            )).scalar_one()
            if driver_id is not None:
                # Ride and driver rows commit together
                await self.db.execute(
                    update(DriverRow)
                    .where(DriverRow.id == driver_id)
                    .values(
                        rating=running_average(DriverRow.rating, DriverRow.rating_count, rating),
                        rating_count=DriverRow.rating_count + 1,
                    )
                    .execution_options(synchronize_session=False)
                )

        await self.db.commit()
        return rated
