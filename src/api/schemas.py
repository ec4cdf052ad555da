"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from src.domain.clock import ensure_utc
from src.domain.entities import RideDetails
from src.domain.enums import BookingStatus, PaymentStatus, RideStatus, UserType


# ── Requests ──────────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    user_type: UserType = UserType.PASSENGER


class LoginRequest(BaseModel):
    email: str
    password: str
    user_type: Optional[UserType] = Field(
        None, description="Reject the login if the account is of another type."
    )


class RideRequest(BaseModel):
    """Body for both creating and editing a ride."""

    start_location: str
    end_location: str
    departure_time: datetime
    available_seats: int
    distance: float = Field(..., description="Trip distance in km.")
    duration: int = Field(..., description="Trip duration in minutes.")
    notes: str = ""

    def to_details(self) -> RideDetails:
        return RideDetails(
            start_location=self.start_location,
            end_location=self.end_location,
            departure_time=self.departure_time,
            available_seats=self.available_seats,
            distance=self.distance,
            duration=self.duration,
            notes=self.notes,
        )


class BookingRequest(BaseModel):
    ride_id: str
    number_of_seats: int = 1
    notes: str = ""


# ── Responses ─────────────────────────────────────────────────────────


class _UtcModel(BaseModel):
    """Timestamps read back from SQLite are naive; normalise to UTC."""

    model_config = {"from_attributes": True}

    @field_validator("*", mode="after")
    @classmethod
    def _utc(cls, value):
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value


class UserResponse(_UtcModel):
    id: str
    name: str
    email: str
    user_type: UserType
    created_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"


class RideResponse(_UtcModel):
    id: str
    driver_id: str
    start_location: str
    end_location: str
    departure_time: datetime
    total_seats: int
    available_seats: int
    distance: float
    duration: int
    notes: str
    price: float
    status: RideStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @computed_field
    @property
    def price_per_seat(self) -> float:
        return self.price / self.total_seats


class BookingResponse(_UtcModel):
    id: str
    ride_id: str
    passenger_id: str
    number_of_seats: int
    notes: str
    fare: float
    status: BookingStatus
    rejected_by_driver: bool = False
    booked_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class PaymentResponse(_UtcModel):
    id: str
    booking_id: str
    ride_id: str
    passenger_id: str
    amount: float
    status: PaymentStatus
    created_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None


class BookingReceiptResponse(BaseModel):
    booking: BookingResponse
    payment: PaymentResponse


class QuoteResponse(BaseModel):
    price: float
    per_seat: dict[int, float]


class DriverSummaryResponse(BaseModel):
    active_rides: int
    total_earnings: float
    total_passengers: int

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    field: Optional[str] = None
