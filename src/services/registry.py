"""Wires the services together around one session factory and lock manager."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domain.clock import Clock, utcnow
from src.domain.pricing import PricingEngine
from src.infrastructure.locks import LockManager
from src.services.booking_ledger import BookingLedger
from src.services.identity import BcryptPasswordHasher, CredentialStore, PasswordHasher
from src.services.ride_inventory import RideInventory


@dataclass
class ServiceRegistry:
    pricing: PricingEngine
    rides: RideInventory
    bookings: BookingLedger
    credentials: CredentialStore


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    locks: LockManager,
    settings,
    *,
    hasher: PasswordHasher | None = None,
    clock: Clock = utcnow,
) -> ServiceRegistry:
    pricing = PricingEngine.from_settings(settings)
    rides = RideInventory(
        session_factory,
        locks,
        pricing,
        max_seats=settings.max_seats_per_ride,
        edit_resets_seats=settings.ride_edit_resets_seats,
        clock=clock,
    )
    bookings = BookingLedger(
        session_factory,
        locks,
        rides,
        pricing,
        max_notes_length=settings.max_booking_notes_length,
        clock=clock,
    )
    credentials = CredentialStore(
        session_factory,
        hasher or BcryptPasswordHasher(),
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl_seconds=settings.jwt_ttl_seconds,
    )
    return ServiceRegistry(
        pricing=pricing, rides=rides, bookings=bookings, credentials=credentials
    )
