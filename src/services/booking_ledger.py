"""
Booking Ledger
==============

Owns bookings and their payment-ledger rows, and drives seat changes on
the ride inventory.

State machine
-------------
  PENDING --confirm (driver)--> CONFIRMED
  PENDING --reject (driver)---> CANCELLED (rejected_by_driver)
  PENDING | CONFIRMED --cancel (passenger)--> CANCELLED
  CANCELLED, COMPLETED are terminal.

Atomicity
---------
Each command takes the lock of the ride the booking belongs to, then
opens one DB transaction for the whole read-validate-write sequence:

* create:          booking + payment rows + seat decrement
* reject / cancel: booking status + payment refund + seat restoration

Any error raised inside rolls the transaction back, so either every
write lands or none does.  A booking never changes ride, so the ride
lock also serialises all operations on the same booking.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domain.clock import Clock, utcnow
from src.domain.entities import BookingReceipt, DriverSummary
from src.domain.enums import BookingStatus, PaymentStatus, RideStatus
from src.domain.errors import (
    AuthorizationError,
    CapacityError,
    NotFoundError,
    StateError,
)
from src.domain.pricing import PricingEngine
from src.domain.validation import validate_booking_request
from src.infrastructure.locks import LockManager, ride_lock_key
from src.infrastructure.models import BookingModel, PaymentModel
from src.infrastructure.repositories import (
    BookingRepository,
    PaymentRepository,
    RideRepository,
)
from src.services.ride_inventory import RideInventory

logger = logging.getLogger(__name__)


class BookingLedger:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: LockManager,
        inventory: RideInventory,
        pricing: PricingEngine,
        *,
        max_notes_length: int = 500,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.inventory = inventory
        self.pricing = pricing
        self.max_notes_length = max_notes_length
        self.clock = clock

    # ── Commands ──────────────────────────────────────────────────────

    async def create_booking(
        self,
        ride_id: str,
        passenger_id: str,
        number_of_seats: int,
        notes: str = "",
    ) -> BookingReceipt:
        notes = validate_booking_request(
            number_of_seats, notes, self.max_notes_length
        )

        async with self.locks.hold(ride_lock_key(ride_id)):
            async with self.session_factory() as session, session.begin():
                ride = await RideRepository(session).get_for_update(ride_id)
                if ride is None:
                    raise NotFoundError("Ride", ride_id)
                if ride.status != RideStatus.ACTIVE:
                    raise StateError(
                        "Ride is not available",
                        entity="Ride",
                        entity_id=ride_id,
                        current=RideStatus(ride.status).value,
                        attempted="BOOK",
                    )
                if ride.available_seats < number_of_seats:
                    raise CapacityError(
                        f"Only {ride.available_seats} seat(s) available",
                        ride_id=ride_id,
                        requested=number_of_seats,
                        available=ride.available_seats,
                    )

                fare = self.pricing.booking_fare(
                    ride.price, ride.total_seats, number_of_seats
                )
                now = self.clock()
                booking = await BookingRepository(session).create(
                    BookingModel(
                        ride_id=ride_id,
                        passenger_id=passenger_id,
                        number_of_seats=number_of_seats,
                        notes=notes,
                        fare=fare,
                        status=BookingStatus.PENDING,
                        rejected_by_driver=False,
                        booked_at=now,
                    )
                )
                payment = await PaymentRepository(session).create(
                    PaymentModel(
                        booking_id=booking.id,
                        ride_id=ride_id,
                        passenger_id=passenger_id,
                        amount=fare,
                        status=PaymentStatus.PENDING,
                        created_at=now,
                    )
                )
                await self.inventory.apply_seat_delta(
                    session, ride_id, -number_of_seats
                )

        logger.info(
            "Booking %s created: ride=%s passenger=%s seats=%d fare=%.2f",
            booking.id, ride_id, passenger_id, number_of_seats, fare,
        )
        return BookingReceipt(booking=booking, payment=payment)

    async def confirm_booking(self, booking_id: str, driver_id: str) -> BookingModel:
        ride_id = await self._ride_id_of(booking_id)
        async with self.locks.hold(ride_lock_key(ride_id)):
            async with self.session_factory() as session, session.begin():
                booking = await self._booking_for_driver(
                    session, booking_id, driver_id, "confirm"
                )
                if booking.status != BookingStatus.PENDING:
                    raise self._not_pending(booking, BookingStatus.CONFIRMED, "confirmed")
                booking.transition_to(BookingStatus.CONFIRMED)
                booking.confirmed_at = self.clock()
        logger.info("Booking %s confirmed by driver %s", booking_id, driver_id)
        return booking

    async def reject_booking(self, booking_id: str, driver_id: str) -> BookingModel:
        ride_id = await self._ride_id_of(booking_id)
        async with self.locks.hold(ride_lock_key(ride_id)):
            async with self.session_factory() as session, session.begin():
                booking = await self._booking_for_driver(
                    session, booking_id, driver_id, "reject"
                )
                if booking.status != BookingStatus.PENDING:
                    raise self._not_pending(booking, BookingStatus.CANCELLED, "rejected")
                booking.rejected_by_driver = True
                await self._cancel(session, booking)
        logger.info("Booking %s rejected by driver %s", booking_id, driver_id)
        return booking

    async def cancel_booking(self, booking_id: str, passenger_id: str) -> BookingModel:
        ride_id = await self._ride_id_of(booking_id)
        async with self.locks.hold(ride_lock_key(ride_id)):
            async with self.session_factory() as session, session.begin():
                booking = await BookingRepository(session).get_for_update(booking_id)
                if booking is None:
                    raise NotFoundError("Booking", booking_id)
                if booking.passenger_id != passenger_id:
                    raise AuthorizationError(
                        "You can only cancel your own bookings",
                        entity="Booking",
                        entity_id=booking_id,
                        actor_id=passenger_id,
                    )
                if booking.status == BookingStatus.CANCELLED:
                    raise StateError(
                        "Booking is already cancelled",
                        entity="Booking",
                        entity_id=booking_id,
                        current=BookingStatus.CANCELLED.value,
                        attempted=BookingStatus.CANCELLED.value,
                    )
                if booking.status == BookingStatus.COMPLETED:
                    raise StateError(
                        "Cannot cancel a completed booking",
                        entity="Booking",
                        entity_id=booking_id,
                        current=BookingStatus.COMPLETED.value,
                        attempted=BookingStatus.CANCELLED.value,
                    )
                await self._cancel(session, booking)
        logger.info("Booking %s cancelled by passenger %s", booking_id, passenger_id)
        return booking

    # ── Queries ───────────────────────────────────────────────────────

    async def get_booking_by_id(self, booking_id: str) -> Optional[BookingModel]:
        async with self.session_factory() as session:
            return await BookingRepository(session).get_by_id(booking_id)

    async def get_bookings_by_passenger(self, passenger_id: str) -> list[BookingModel]:
        async with self.session_factory() as session:
            return await BookingRepository(session).list_by_passenger(passenger_id)

    async def get_bookings_by_ride(self, ride_id: str) -> list[BookingModel]:
        async with self.session_factory() as session:
            return await BookingRepository(session).list_by_ride(ride_id)

    async def get_bookings_for_driver(self, driver_id: str) -> list[BookingModel]:
        async with self.session_factory() as session:
            return await BookingRepository(session).list_for_driver(driver_id)

    async def get_payment_for_booking(self, booking_id: str) -> Optional[PaymentModel]:
        async with self.session_factory() as session:
            return await PaymentRepository(session).get_by_booking(booking_id)

    async def get_driver_summary(self, driver_id: str) -> DriverSummary:
        async with self.session_factory() as session:
            active = await RideRepository(session).count_upcoming_for_driver(
                driver_id, self.clock()
            )
            earnings, passengers = await BookingRepository(
                session
            ).confirmed_totals_for_driver(driver_id)
        return DriverSummary(
            active_rides=active,
            total_earnings=earnings,
            total_passengers=passengers,
        )

    # ── Internals ─────────────────────────────────────────────────────

    async def _ride_id_of(self, booking_id: str) -> str:
        booking = await self.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking.ride_id

    async def _booking_for_driver(
        self, session: AsyncSession, booking_id: str, driver_id: str, action: str
    ) -> BookingModel:
        booking = await BookingRepository(session).get_for_update(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        ride = await RideRepository(session).get_by_id(booking.ride_id)
        if ride is None or ride.driver_id != driver_id:
            raise AuthorizationError(
                f"You can only {action} bookings for your own rides",
                entity="Booking",
                entity_id=booking_id,
                actor_id=driver_id,
            )
        return booking

    @staticmethod
    def _not_pending(
        booking: BookingModel, attempted: BookingStatus, verb: str
    ) -> StateError:
        return StateError(
            f"Only pending bookings can be {verb}",
            entity="Booking",
            entity_id=booking.id,
            current=BookingStatus(booking.status).value,
            attempted=attempted.value,
        )

    async def _cancel(self, session: AsyncSession, booking: BookingModel) -> None:
        """Cancel, refund the payment once, and give the seats back."""
        now = self.clock()
        booking.transition_to(BookingStatus.CANCELLED)
        booking.cancelled_at = now

        payment = await PaymentRepository(session).get_by_booking(
            booking.id, for_update=True
        )
        if payment is not None:
            payment.transition_to(PaymentStatus.REFUNDED)
            payment.refunded_at = now

        await self.inventory.restore_seats(
            session, booking.ride_id, booking.number_of_seats
        )
