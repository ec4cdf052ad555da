"""
SQLAlchemy ORM models.

Tables
------
* ``users``     -- drivers and passengers with their credential record
* ``rides``     -- driver-published trips with a seat counter
* ``bookings``  -- passenger reservations on a ride
* ``payments``  -- ledger stub, one row per booking

Rides are never deleted (soft-cancel), so bookings always resolve their
ride.  IDs are UUID4 strings generated on insert.

Indexes
-------
* **B-Tree** on ``status``/``departure_time`` for search, and on the
  foreign keys used by the per-driver / per-passenger listings.
"""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from .database import Base
from src.domain.clock import utcnow
from src.domain.entities import SeatInventory, Stateful
from src.domain.enums import (
    BOOKING_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    RIDE_TRANSITIONS,
    BookingStatus,
    PaymentStatus,
    RideStatus,
    UserType,
)


def new_id() -> str:
    return str(uuid.uuid4())


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    user_type = Column(Enum(UserType), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class RideModel(Stateful, SeatInventory, Base):
    __tablename__ = "rides"

    TRANSITIONS = RIDE_TRANSITIONS
    ENTITY_NAME = "Ride"

    id = Column(String(36), primary_key=True, default=new_id)
    driver_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    start_location = Column(String(255), nullable=False)
    end_location = Column(String(255), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)

    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)

    distance = Column(Float, nullable=False)  # km
    duration = Column(Integer, nullable=False)  # minutes
    notes = Column(Text, default="", nullable=False)
    price = Column(Float, nullable=False)  # total for the whole ride

    status = Column(Enum(RideStatus), default=RideStatus.ACTIVE, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "available_seats >= 0 AND available_seats <= total_seats",
            name="ck_rides_seat_bounds",
        ),
        Index("idx_rides_search", "status", "departure_time"),
        Index("idx_rides_driver", "driver_id"),
    )


class BookingModel(Stateful, Base):
    __tablename__ = "bookings"

    TRANSITIONS = BOOKING_TRANSITIONS
    ENTITY_NAME = "Booking"

    id = Column(String(36), primary_key=True, default=new_id)
    ride_id = Column(String(36), ForeignKey("rides.id"), nullable=False)
    passenger_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    number_of_seats = Column(Integer, nullable=False)
    notes = Column(Text, default="", nullable=False)
    fare = Column(Float, nullable=False)  # frozen at booking time

    status = Column(
        Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False
    )
    rejected_by_driver = Column(Boolean, default=False, nullable=False)

    booked_at = Column(DateTime(timezone=True), default=utcnow)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_bookings_ride", "ride_id"),
        Index("idx_bookings_passenger", "passenger_id"),
    )


class PaymentModel(Stateful, Base):
    __tablename__ = "payments"

    TRANSITIONS = PAYMENT_TRANSITIONS
    ENTITY_NAME = "Payment"

    id = Column(String(36), primary_key=True, default=new_id)
    booking_id = Column(
        String(36), ForeignKey("bookings.id"), unique=True, nullable=False
    )
    ride_id = Column(String(36), ForeignKey("rides.id"), nullable=False)
    passenger_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    amount = Column(Float, nullable=False)

    status = Column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )

    created_at = Column(DateTime(timezone=True), default=utcnow)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
