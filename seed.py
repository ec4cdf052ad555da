"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates (through the same services the API uses):
  - 3 drivers and 4 passengers (password: ``password123``)
  - 6 upcoming rides around Metro Manila
  - a few bookings: one confirmed, one rejected, one cancelled, rest pending
"""

import asyncio
from datetime import timedelta

from sqlalchemy import text

from src.config import settings
from src.domain.clock import utcnow
from src.domain.entities import RideDetails
from src.domain.enums import UserType
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.locks import LocalLockManager
from src.services.registry import build_services

PASSWORD = "password123"

DRIVERS = [
    {"name": "Jose Santos", "email": "jose@example.com"},
    {"name": "Maria Reyes", "email": "maria@example.com"},
    {"name": "Paolo Cruz", "email": "paolo@example.com"},
]

PASSENGERS = [
    {"name": "Ana Garcia", "email": "ana@example.com"},
    {"name": "Miguel Torres", "email": "miguel@example.com"},
    {"name": "Bea Ramos", "email": "bea@example.com"},
    {"name": "Luis Mendoza", "email": "luis@example.com"},
]

# (driver index, from, to, hours from now, seats, km, minutes)
RIDES = [
    (0, "Manila City Hall", "Makati CBD", 6, 3, 8.5, 35),
    (0, "Makati CBD", "Quezon City Circle", 30, 2, 14.0, 50),
    (1, "Pasig Ortigas Center", "BGC Taguig", 4, 3, 6.2, 25),
    (1, "BGC Taguig", "NAIA Terminal 3", 28, 1, 9.8, 30),
    (2, "Quezon City Circle", "Manila City Hall", 10, 3, 12.4, 55),
    (2, "Alabang Town Center", "Makati CBD", 52, 2, 21.0, 60),
]


async def seed():
    async with async_session_factory() as session:
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

    services = build_services(
        async_session_factory,
        LocalLockManager(settings.lock_timeout_seconds),
        settings,
    )

    # ── Users ─────────────────────────────────────────────────────────
    drivers = [
        await services.credentials.register_user(
            d["name"], d["email"], PASSWORD, UserType.DRIVER
        )
        for d in DRIVERS
    ]
    passengers = [
        await services.credentials.register_user(
            p["name"], p["email"], PASSWORD, UserType.PASSENGER
        )
        for p in PASSENGERS
    ]

    # ── Rides ─────────────────────────────────────────────────────────
    now = utcnow()
    rides = []
    for driver_idx, start, end, hours, seats, km, minutes in RIDES:
        rides.append(
            await services.rides.create_ride(
                drivers[driver_idx].id,
                RideDetails(
                    start_location=start,
                    end_location=end,
                    departure_time=now + timedelta(hours=hours),
                    available_seats=seats,
                    distance=km,
                    duration=minutes,
                ),
            )
        )

    # ── Bookings ──────────────────────────────────────────────────────
    confirmed = await services.bookings.create_booking(
        rides[0].id, passengers[0].id, 2, notes="Two small bags"
    )
    await services.bookings.confirm_booking(confirmed.booking.id, drivers[0].id)

    rejected = await services.bookings.create_booking(
        rides[2].id, passengers[1].id, 1
    )
    await services.bookings.reject_booking(rejected.booking.id, drivers[1].id)

    cancelled = await services.bookings.create_booking(
        rides[4].id, passengers[2].id, 1
    )
    await services.bookings.cancel_booking(cancelled.booking.id, passengers[2].id)

    await services.bookings.create_booking(rides[1].id, passengers[3].id, 1)
    await services.bookings.create_booking(rides[2].id, passengers[0].id, 2)

    print(
        f"Seeded {len(drivers)} drivers, {len(passengers)} passengers, "
        f"{len(rides)} rides and 5 bookings (password: {PASSWORD})."
    )


async def main():
    try:
        await seed()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
