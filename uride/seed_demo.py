"""
Database seeding script for local development.

Creates an ADMIN, a demo rider and a handful of approved, online drivers
around New Delhi so booking and nearby search return something.
Run this script after the database is set up but before first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from uride.app.db.session import AsyncSessionLocal, engine, Base
from uride.app.models.user import User
from uride.app.models.audit_log import AuditLog  # noqa: F401
from uride.app.models.driver import Driver  # noqa: F401
from uride.app.models.ride import Ride  # noqa: F401
from uride.app.models.enums import UserRole, OnlineStatus, DriverType
from uride.app.core.security import get_password_hash
from uride.app.domain.geo import Coordinate
from uride.app.storage.sql_store import SqlRideStore

DEMO_DRIVERS = [
    ("Ravi Kumar", "DL01AB1234", DriverType.OWNER, Coordinate(28.6129, 77.2295)),    # India Gate
    ("Priya Singh", "DL03CD5678", DriverType.FLEET, Coordinate(28.6304, 77.2177)),   # Connaught Place
    ("Amit Sharma", "DL05EF9012", DriverType.OWNER, Coordinate(28.5245, 77.1855)),   # Qutub Minar
    ("Neha Verma", "DL07GH3456", DriverType.FLEET, Coordinate(28.5562, 77.1000)),    # IGI Airport
]


async def seed_demo():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("Starting demo seeding...")

        result = await db.execute(select(User).where(User.email == "admin@example.com"))
        if result.scalar_one_or_none():
            print("Admin user already exists, skipping seeding")
            return

        db.add(User(
            email="admin@example.com",
            name="Admin",
            hashed_password=get_password_hash("admin123"),
            role=UserRole.ADMIN,
            is_active=True,
        ))
        db.add(User(
            email="rider@example.com",
            name="Demo Rider",
            hashed_password=get_password_hash("rider123"),
            role=UserRole.RIDER,
            is_active=True,
        ))
        await db.commit()

        store = SqlRideStore(db)
        for index, (name, vehicle, driver_type, location) in enumerate(DEMO_DRIVERS, start=1):
            user = User(
                email=f"driver{index}@example.com",
                name=name,
                hashed_password=get_password_hash("driver123"),
                role=UserRole.DRIVER,
                is_active=True,
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)

            driver = await store.create_driver(user.id, name, driver_type, vehicle)
            await store.set_driver_approval(driver.id, True)
            await store.update_driver_location(driver.id, location)
            await store.set_driver_online_status(driver.id, OnlineStatus.ONLINE)
            print(f"Created driver {name} ({user.email} / driver123)")

        print("\nSeeded users:")
        print("  - ADMIN:  admin@example.com / admin123")
        print("  - RIDER:  rider@example.com / rider123")
        print(f"  - DRIVER: driver1..{len(DEMO_DRIVERS)}@example.com / driver123")


if __name__ == "__main__":
    asyncio.run(seed_demo())
