"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``*_for_update`` variants issue
``SELECT ... FOR UPDATE`` so a read that precedes a write holds the row
until the surrounding transaction ends.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, PaymentModel, RideModel, UserModel
from src.domain.entities import RideSearch
from src.domain.enums import BookingStatus, RideStatus


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: str) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def get_for_update(self, ride_id: str) -> Optional[RideModel]:
        result = await self.session.execute(
            select(RideModel).where(RideModel.id == ride_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def list_by_driver(self, driver_id: str) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.driver_id == driver_id)
            .order_by(RideModel.created_at)
        )
        return list(result.scalars().all())

    async def search(self, filters: RideSearch, now: datetime) -> list[RideModel]:
        """Bookable rides matching *filters*, earliest departure first."""
        query = select(RideModel).where(
            RideModel.status == RideStatus.ACTIVE,
            RideModel.available_seats > 0,
            RideModel.departure_time > now,
        )
        if filters.from_location:
            query = query.where(
                RideModel.start_location.icontains(
                    filters.from_location, autoescape=True
                )
            )
        if filters.to_location:
            query = query.where(
                RideModel.end_location.icontains(filters.to_location, autoescape=True)
            )
        if filters.on_date is not None:
            # Calendar day in UTC, time of day ignored
            day_start = datetime.combine(
                filters.on_date, datetime.min.time(), tzinfo=timezone.utc
            )
            query = query.where(
                RideModel.departure_time >= day_start,
                RideModel.departure_time < day_start + timedelta(days=1),
            )
        if filters.min_price is not None:
            query = query.where(RideModel.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.where(RideModel.price <= filters.max_price)

        result = await self.session.execute(
            query.order_by(RideModel.departure_time)
        )
        return list(result.scalars().all())

    async def count_upcoming_for_driver(self, driver_id: str, now: datetime) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RideModel)
            .where(
                RideModel.driver_id == driver_id,
                RideModel.status == RideStatus.ACTIVE,
                RideModel.departure_time > now,
            )
        )
        return result.scalar() or 0


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: str) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def get_for_update(self, booking_id: str) -> Optional[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.id == booking_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def list_by_passenger(self, passenger_id: str) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.passenger_id == passenger_id)
            .order_by(BookingModel.booked_at)
        )
        return list(result.scalars().all())

    async def list_by_ride(self, ride_id: str) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.ride_id == ride_id)
            .order_by(BookingModel.booked_at)
        )
        return list(result.scalars().all())

    async def list_for_driver(self, driver_id: str) -> list[BookingModel]:
        """Bookings on any ride owned by *driver_id* (join, not stored)."""
        result = await self.session.execute(
            select(BookingModel)
            .join(RideModel, RideModel.id == BookingModel.ride_id)
            .where(RideModel.driver_id == driver_id)
            .order_by(BookingModel.booked_at)
        )
        return list(result.scalars().all())

    async def confirmed_totals_for_driver(self, driver_id: str) -> tuple[float, int]:
        """(sum of fares, sum of seats) over CONFIRMED bookings."""
        result = await self.session.execute(
            select(
                func.coalesce(func.sum(BookingModel.fare), 0.0),
                func.coalesce(func.sum(BookingModel.number_of_seats), 0),
            )
            .select_from(BookingModel)
            .join(RideModel, RideModel.id == BookingModel.ride_id)
            .where(
                RideModel.driver_id == driver_id,
                BookingModel.status == BookingStatus.CONFIRMED,
            )
        )
        earnings, passengers = result.one()
        return float(earnings), int(passengers)


class PaymentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, payment: PaymentModel) -> PaymentModel:
        self.session.add(payment)
        await self.session.flush()
        return payment

    async def get_by_booking(
        self, booking_id: str, for_update: bool = False
    ) -> Optional[PaymentModel]:
        query = select(PaymentModel).where(PaymentModel.booking_id == booking_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: str) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email.lower())
        )
        return result.scalar_one_or_none()
