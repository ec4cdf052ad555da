"""
Concurrency safety tests.

Demonstrates:
1. Two passengers racing for the last seat: exactly one booking lands.
2. Concurrent cancels, rejects and bookings never push the seat counter out of
   ``[0, total_seats]``.
3. Lock acquisition is bounded and surfaces ``LockTimeoutError``.
4. Distributed lock logic against a mocked Redis.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.domain.enums import BookingStatus, PaymentStatus
from src.domain.errors import CapacityError, LockTimeoutError, StateError
from src.infrastructure.locks import (
    DistributedLock,
    LocalLockManager,
    LockManager,
    RedisLockManager,
    ride_lock_key,
)
from tests.conftest import DRIVER_ID, ride_details


class TestBookingRaces:
    @pytest.mark.asyncio
    async def test_last_seat_goes_to_exactly_one_passenger(self, services, clock):
        ride = await services.rides.create_ride(
            DRIVER_ID, ride_details(clock(), available_seats=1)
        )

        results = await asyncio.gather(
            services.bookings.create_booking(ride.id, "passenger-a", 1),
            services.bookings.create_booking(ride.id, "passenger-b", 1),
            return_exceptions=True,
        )

        booked = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(booked) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], CapacityError)

        stored = await services.rides.get_ride_by_id(ride.id)
        assert stored.available_seats == 0
        assert len(await services.bookings.get_bookings_by_ride(ride.id)) == 1

    @pytest.mark.asyncio
    async def test_many_passengers_never_overbook(self, services, clock):
        ride = await services.rides.create_ride(
            DRIVER_ID, ride_details(clock(), available_seats=3)
        )

        results = await asyncio.gather(
            *(
                services.bookings.create_booking(ride.id, f"passenger-{i}", 1)
                for i in range(6)
            ),
            return_exceptions=True,
        )

        assert sum(not isinstance(r, Exception) for r in results) == 3
        assert all(
            isinstance(r, CapacityError) for r in results if isinstance(r, Exception)
        )
        stored = await services.rides.get_ride_by_id(ride.id)
        assert stored.available_seats == 0

    @pytest.mark.asyncio
    async def test_cancel_and_book_interleave_consistently(self, services, clock):
        ride = await services.rides.create_ride(
            DRIVER_ID, ride_details(clock(), available_seats=2)
        )
        first = await services.bookings.create_booking(ride.id, "passenger-a", 2)

        results = await asyncio.gather(
            services.bookings.cancel_booking(first.booking.id, "passenger-a"),
            services.bookings.create_booking(ride.id, "passenger-b", 2),
            return_exceptions=True,
        )

        stored = await services.rides.get_ride_by_id(ride.id)
        assert 0 <= stored.available_seats <= stored.total_seats
        if isinstance(results[1], Exception):
            # booking ran before the cancel
            assert isinstance(results[1], CapacityError)
            assert stored.available_seats == 2
        else:
            assert stored.available_seats == 0

    @pytest.mark.asyncio
    async def test_cancel_and_reject_same_booking(self, services, clock):
        ride = await services.rides.create_ride(
            DRIVER_ID, ride_details(clock(), available_seats=3)
        )
        receipt = await services.bookings.create_booking(ride.id, "passenger-a", 2)

        results = await asyncio.gather(
            services.bookings.cancel_booking(receipt.booking.id, "passenger-a"),
            services.bookings.reject_booking(receipt.booking.id, DRIVER_ID),
            return_exceptions=True,
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], StateError)

        booking = await services.bookings.get_booking_by_id(receipt.booking.id)
        assert booking.status == BookingStatus.CANCELLED
        payment = await services.bookings.get_payment_for_booking(receipt.booking.id)
        assert payment.status == PaymentStatus.REFUNDED
        stored = await services.rides.get_ride_by_id(ride.id)
        assert stored.available_seats == 3


class TestLocalLockManager:
    @pytest.mark.asyncio
    async def test_same_key_is_serialised(self):
        locks = LocalLockManager(timeout_seconds=1.0)
        order = []

        async def worker(name):
            async with locks.hold(ride_lock_key("r1")):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    @pytest.mark.asyncio
    async def test_wait_is_bounded(self):
        locks = LocalLockManager(timeout_seconds=0.05)
        async with locks.hold(ride_lock_key("r1")):
            with pytest.raises(LockTimeoutError, match="busy"):
                async with locks.hold(ride_lock_key("r1")):
                    pass

    @pytest.mark.asyncio
    async def test_other_keys_are_independent(self):
        locks = LocalLockManager(timeout_seconds=0.05)
        async with locks.hold(ride_lock_key("r1")):
            async with locks.hold(ride_lock_key("r2")):
                pass

    @pytest.mark.asyncio
    async def test_lock_is_usable_after_a_timeout(self):
        locks = LocalLockManager(timeout_seconds=0.05)
        async with locks.hold(ride_lock_key("r1")):
            with pytest.raises(LockTimeoutError):
                async with locks.hold(ride_lock_key("r1")):
                    pass

        async with locks.hold(ride_lock_key("r1")):
            pass

    @pytest.mark.asyncio
    async def test_idle_keys_are_dropped(self):
        locks = LocalLockManager(timeout_seconds=1.0)

        async def worker(ride_id):
            async with locks.hold(ride_lock_key(ride_id)):
                await asyncio.sleep(0.001)

        await asyncio.gather(*(worker(f"r{i % 3}") for i in range(9)))
        assert locks._locks == {}
        assert locks._users == {}

    def test_lock_manager_is_abstract(self):
        with pytest.raises(TypeError):
            LockManager()


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "ride:1", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_called_once_with(
            "lock:ride:1", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "ride:1", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "ride:1", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()


class TestRedisLockManager:
    @pytest.mark.asyncio
    async def test_hold_acquires_and_releases(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        locks = RedisLockManager(mock_redis, ttl_seconds=10, timeout_seconds=1.0)
        async with locks.hold(ride_lock_key("r1")):
            mock_redis.eval.assert_not_called()

        mock_redis.set.assert_called_once()
        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_hold_retries_until_free(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(side_effect=[False, False, True])
        mock_redis.eval = AsyncMock(return_value=1)

        locks = RedisLockManager(
            mock_redis, timeout_seconds=1.0, retry_interval=0.001
        )
        async with locks.hold(ride_lock_key("r1")):
            pass

        assert mock_redis.set.call_count == 3

    @pytest.mark.asyncio
    async def test_hold_times_out(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        locks = RedisLockManager(
            mock_redis, timeout_seconds=0.02, retry_interval=0.005
        )
        with pytest.raises(LockTimeoutError):
            async with locks.hold(ride_lock_key("r1")):
                pass
        mock_redis.eval.assert_not_called()

    @pytest.mark.asyncio
    async def test_release_happens_on_error(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        locks = RedisLockManager(mock_redis, timeout_seconds=1.0)
        with pytest.raises(CapacityError):
            async with locks.hold(ride_lock_key("r1")):
                raise CapacityError("Only 0 seat(s) available")
        mock_redis.eval.assert_called_once()
