"""Unit tests for the ride pricing engine."""

import pytest

from src.config import Settings
from src.domain.errors import InternalConsistencyError
from src.domain.pricing import DistanceDurationPricing, PricingEngine


class TestDistanceDurationPricing:
    def test_default_rates(self):
        strategy = DistanceDurationPricing()
        assert strategy.calculate(10.0, 60) == 240.0  # 30 + 120 + 90

    def test_custom_rates(self):
        strategy = DistanceDurationPricing(
            base_fare=50.0, rate_per_km=10.0, rate_per_minute=2.0
        )
        assert strategy.calculate(5.0, 15) == 130.0  # 50 + 50 + 30

    def test_fractional_distance(self):
        strategy = DistanceDurationPricing()
        assert strategy.calculate(2.5, 10) == pytest.approx(75.0)  # 30 + 30 + 15


class TestPricingEngine:
    def setup_method(self):
        self.engine = PricingEngine()

    def test_calculate_price(self):
        assert self.engine.calculate_price(10.0, 30) == 195.0  # 30 + 120 + 45

    def test_fare_per_seat_splits_evenly(self):
        assert self.engine.fare_per_seat(180.0, 3) == 60.0

    def test_booking_fare_multiplies_by_seats(self):
        assert self.engine.booking_fare(180.0, 3, 2) == 120.0

    def test_booking_all_seats_costs_full_price(self):
        assert self.engine.booking_fare(195.0, 3, 3) == pytest.approx(195.0)

    def test_zero_total_seats_is_internal_error(self):
        with pytest.raises(InternalConsistencyError):
            self.engine.fare_per_seat(180.0, 0)

    def test_quote_lists_share_for_each_seat_count(self):
        quote = self.engine.quote(10.0, 30, max_seats=3)
        assert quote["price"] == 195.0
        assert quote["per_seat"] == {
            1: 195.0,
            2: 97.5,
            3: pytest.approx(65.0),
        }

    def test_from_settings_uses_configured_rates(self):
        engine = PricingEngine.from_settings(
            Settings(base_fare=0.0, rate_per_km=10.0, rate_per_minute=0.0)
        )
        assert engine.calculate_price(3.0, 40) == 30.0
