"""
Ride Inventory
==============

Owns ride records: creation, driver edits, soft cancellation, search and
the seat counter.

Concurrency safety
------------------
* Every mutation of an existing ride runs inside the ride's lock (see
  ``src.infrastructure.locks``) and a single DB transaction, so a
  read-check-write sequence is atomic with respect to other operations
  on the same ride.
* ``apply_seat_delta`` is the only code path that changes
  ``available_seats``.  Callers that already hold the ride lock and an
  open session (the booking ledger) call it directly; everyone else goes
  through ``update_available_seats``.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domain.clock import Clock, utcnow
from src.domain.entities import RideDetails, RideSearch
from src.domain.enums import RideStatus
from src.domain.errors import AuthorizationError, CapacityError, NotFoundError
from src.domain.pricing import PricingEngine
from src.domain.validation import validate_ride_details, validate_trip_metrics
from src.infrastructure.locks import LockManager, ride_lock_key
from src.infrastructure.models import RideModel
from src.infrastructure.repositories import RideRepository

logger = logging.getLogger(__name__)


class RideInventory:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: LockManager,
        pricing: PricingEngine,
        *,
        max_seats: int = 3,
        edit_resets_seats: bool = False,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.pricing = pricing
        self.max_seats = max_seats
        self.edit_resets_seats = edit_resets_seats
        self.clock = clock

    # ── Commands ──────────────────────────────────────────────────────

    async def create_ride(self, driver_id: str, details: RideDetails) -> RideModel:
        details = validate_ride_details(details, self.clock(), self.max_seats)
        now = self.clock()
        ride = RideModel(
            driver_id=driver_id,
            start_location=details.start_location,
            end_location=details.end_location,
            departure_time=details.departure_time,
            total_seats=details.available_seats,
            available_seats=details.available_seats,
            distance=details.distance,
            duration=details.duration,
            notes=details.notes,
            price=self.pricing.calculate_price(details.distance, details.duration),
            status=RideStatus.ACTIVE,
            created_at=now,
        )
        async with self.session_factory() as session, session.begin():
            await RideRepository(session).create(ride)
        logger.info("Ride %s created by driver %s", ride.id, driver_id)
        return ride

    async def update_ride(
        self, ride_id: str, driver_id: str, details: RideDetails
    ) -> RideModel:
        """
        Re-validate and overwrite the driver-editable fields.

        Price and seat counts are recomputed.  With ``edit_resets_seats``
        the counter restarts at the new total, discarding seats held by
        existing bookings; otherwise booked seats stay consumed and a
        total below them is refused.
        """
        async with self.locks.hold(ride_lock_key(ride_id)):
            async with self.session_factory() as session, session.begin():
                ride = await self._owned_ride_for_update(
                    session, ride_id, driver_id, "edit"
                )
                details = validate_ride_details(
                    details, self.clock(), self.max_seats
                )
                new_total = details.available_seats
                if self.edit_resets_seats:
                    new_available = new_total
                else:
                    booked = ride.booked_seats
                    if new_total < booked:
                        raise CapacityError(
                            f"{booked} seat(s) are already booked; "
                            f"cannot reduce the ride to {new_total}",
                            ride_id=ride.id,
                            requested=booked,
                            available=new_total,
                        )
                    new_available = new_total - booked

                ride.start_location = details.start_location
                ride.end_location = details.end_location
                ride.departure_time = details.departure_time
                ride.total_seats = new_total
                ride.available_seats = new_available
                ride.distance = details.distance
                ride.duration = details.duration
                ride.notes = details.notes
                ride.price = self.pricing.calculate_price(
                    details.distance, details.duration
                )
                ride.updated_at = self.clock()
        logger.info("Ride %s updated by driver %s", ride_id, driver_id)
        return ride

    async def delete_ride(self, ride_id: str, driver_id: str) -> RideModel:
        """Soft-cancel: the ride stays on record with status CANCELLED."""
        async with self.locks.hold(ride_lock_key(ride_id)):
            async with self.session_factory() as session, session.begin():
                ride = await self._owned_ride_for_update(
                    session, ride_id, driver_id, "delete"
                )
                ride.transition_to(RideStatus.CANCELLED)
                ride.cancelled_at = self.clock()
        logger.info("Ride %s cancelled by driver %s", ride_id, driver_id)
        return ride

    async def update_available_seats(self, ride_id: str, delta: int) -> RideModel:
        async with self.locks.hold(ride_lock_key(ride_id)):
            async with self.session_factory() as session, session.begin():
                ride = await self.apply_seat_delta(session, ride_id, delta)
        return ride

    async def apply_seat_delta(
        self, session: AsyncSession, ride_id: str, delta: int
    ) -> RideModel:
        """Seat-count choke point.  Caller must hold the ride lock."""
        ride = await RideRepository(session).get_for_update(ride_id)
        if ride is None:
            raise NotFoundError("Ride", ride_id)
        ride.adjust_seats(delta)
        logger.info(
            "Ride %s seats %+d -> %d/%d",
            ride_id, delta, ride.available_seats, ride.total_seats,
        )
        return ride

    async def restore_seats(
        self, session: AsyncSession, ride_id: str, seats: int
    ) -> RideModel:
        """
        Give *seats* back to the ride.  Caller must hold the ride lock.

        After a resetting edit the counter may already sit at the new
        total; the restoration is then capped at ``total_seats`` and the
        surplus dropped, so the cancellation itself still goes through.
        """
        if self.edit_resets_seats:
            ride = await RideRepository(session).get_for_update(ride_id)
            if ride is not None and seats > ride.total_seats - ride.available_seats:
                capped = ride.total_seats - ride.available_seats
                logger.warning(
                    "Ride %s: dropping %d restored seat(s) discarded by an earlier edit",
                    ride_id, seats - capped,
                )
                seats = capped
        return await self.apply_seat_delta(session, ride_id, seats)

    # ── Queries ───────────────────────────────────────────────────────

    async def get_ride_by_id(self, ride_id: str) -> Optional[RideModel]:
        async with self.session_factory() as session:
            return await RideRepository(session).get_by_id(ride_id)

    async def get_rides_by_driver(self, driver_id: str) -> list[RideModel]:
        async with self.session_factory() as session:
            return await RideRepository(session).list_by_driver(driver_id)

    async def search_rides(self, filters: RideSearch) -> list[RideModel]:
        async with self.session_factory() as session:
            return await RideRepository(session).search(filters, self.clock())

    async def get_available_rides(self) -> list[RideModel]:
        return await self.search_rides(RideSearch())

    def quote(self, distance: float, duration: int) -> dict[str, object]:
        validate_trip_metrics(distance, duration)
        return self.pricing.quote(distance, duration, self.max_seats)

    # ── Internals ─────────────────────────────────────────────────────

    async def _owned_ride_for_update(
        self, session: AsyncSession, ride_id: str, driver_id: str, action: str
    ) -> RideModel:
        ride = await RideRepository(session).get_for_update(ride_id)
        if ride is None:
            raise NotFoundError("Ride", ride_id)
        if ride.driver_id != driver_id:
            raise AuthorizationError(
                f"You can only {action} your own rides",
                entity="Ride",
                entity_id=ride_id,
                actor_id=driver_id,
            )
        return ride
