"""
Ride Pricing Engine  (Strategy Pattern)
=======================================

Formula
-------
Price = Base_Fare + Distance x Rate_Per_KM + Duration x Rate_Per_Minute

* Defaults: 30 + 12 / km + 1.50 / min.
* The price is the total for the whole ride; each booked seat pays
  ``price / total_seats``.

Callers validate that distance and duration are positive before pricing.
Complexity: O(1) per price calculation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .errors import InternalConsistencyError


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def calculate(self, distance_km: float, duration_min: int) -> float: ...


class DistanceDurationPricing(PricingStrategy):
    def __init__(
        self,
        base_fare: float = 30.0,
        rate_per_km: float = 12.0,
        rate_per_minute: float = 1.50,
    ):
        self.base_fare = base_fare
        self.rate_per_km = rate_per_km
        self.rate_per_minute = rate_per_minute

    def calculate(self, distance_km: float, duration_min: int) -> float:
        return (
            self.base_fare
            + distance_km * self.rate_per_km
            + duration_min * self.rate_per_minute
        )


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the ride inventory, booking ledger and API."""

    def __init__(self, strategy: PricingStrategy | None = None):
        self.strategy = strategy or DistanceDurationPricing()

    @classmethod
    def from_settings(cls, settings) -> "PricingEngine":
        return cls(
            DistanceDurationPricing(
                base_fare=settings.base_fare,
                rate_per_km=settings.rate_per_km,
                rate_per_minute=settings.rate_per_minute,
            )
        )

    def calculate_price(self, distance: float, duration: int) -> float:
        """Total price of a ride."""
        return self.strategy.calculate(distance, duration)

    @staticmethod
    def fare_per_seat(total_price: float, total_seats: int) -> float:
        if total_seats <= 0:
            raise InternalConsistencyError(
                f"Ride has {total_seats} total seats; cannot split fare"
            )
        return total_price / total_seats

    def booking_fare(
        self, total_price: float, total_seats: int, seats: int
    ) -> float:
        """Fare for *seats* seats, frozen into the booking at creation."""
        return self.fare_per_seat(total_price, total_seats) * seats

    def quote(
        self, distance: float, duration: int, max_seats: int
    ) -> dict[str, object]:
        """Price preview: total price and per-seat share for 1..max_seats."""
        price = self.calculate_price(distance, duration)
        return {
            "price": price,
            "per_seat": {
                n: self.fare_per_seat(price, n) for n in range(1, max_seats + 1)
            },
        }
