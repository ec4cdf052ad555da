"""
Booking endpoints
=================

POST  /api/v1/bookings                      -- book seats (passenger)
GET   /api/v1/bookings                      -- the caller's own bookings
GET   /api/v1/bookings/{booking_id}         -- booking details
GET   /api/v1/bookings/{booking_id}/payment -- payment ledger entry
PATCH /api/v1/bookings/{booking_id}/confirm -- driver accepts
PATCH /api/v1/bookings/{booking_id}/reject  -- driver rejects (refund + seats back)
PATCH /api/v1/bookings/{booking_id}/cancel  -- passenger cancels (refund + seats back)

Only the booking's passenger and the ride's driver may read a booking.
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import (
    get_current_user,
    get_services,
    require_driver,
    require_passenger,
)
from src.api.middleware import limiter
from src.api.schemas import (
    BookingReceiptResponse,
    BookingRequest,
    BookingResponse,
    PaymentResponse,
)
from src.config import settings
from src.domain.entities import CurrentUser
from src.domain.errors import AuthorizationError, NotFoundError
from src.infrastructure.models import BookingModel
from src.services.registry import ServiceRegistry

router = APIRouter(prefix="/bookings", tags=["bookings"])


async def _visible_booking(
    booking_id: str, user: CurrentUser, services: ServiceRegistry
) -> BookingModel:
    booking = await services.bookings.get_booking_by_id(booking_id)
    if booking is None:
        raise NotFoundError("Booking", booking_id)
    if booking.passenger_id == user.id:
        return booking
    ride = await services.rides.get_ride_by_id(booking.ride_id)
    if ride is not None and ride.driver_id == user.id:
        return booking
    raise AuthorizationError(
        "You can only view your own bookings",
        entity="Booking",
        entity_id=booking_id,
        actor_id=user.id,
    )


@router.post(
    "",
    status_code=201,
    response_model=BookingReceiptResponse,
    summary="Book seats on a ride",
    description=(
        "Creates a PENDING booking and its PENDING payment and takes the "
        "seats off the ride in one transaction.  The fare is frozen now."
    ),
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingRequest,
    passenger: CurrentUser = Depends(require_passenger),
    services: ServiceRegistry = Depends(get_services),
):
    receipt = await services.bookings.create_booking(
        ride_id=body.ride_id,
        passenger_id=passenger.id,
        number_of_seats=body.number_of_seats,
        notes=body.notes,
    )
    return BookingReceiptResponse(
        booking=BookingResponse.model_validate(receipt.booking),
        payment=PaymentResponse.model_validate(receipt.payment),
    )


@router.get(
    "",
    response_model=list[BookingResponse],
    summary="List your bookings",
)
@limiter.limit(settings.rate_limit)
async def list_my_bookings(
    request: Request,
    passenger: CurrentUser = Depends(require_passenger),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.bookings.get_bookings_by_passenger(passenger.id)


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking",
)
@limiter.limit(settings.rate_limit)
async def get_booking(
    request: Request,
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: ServiceRegistry = Depends(get_services),
):
    return await _visible_booking(booking_id, user, services)


@router.get(
    "/{booking_id}/payment",
    response_model=PaymentResponse,
    summary="Get the payment entry of a booking",
)
@limiter.limit(settings.rate_limit)
async def get_booking_payment(
    request: Request,
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: ServiceRegistry = Depends(get_services),
):
    await _visible_booking(booking_id, user, services)
    payment = await services.bookings.get_payment_for_booking(booking_id)
    if payment is None:
        raise NotFoundError("Payment", booking_id)
    return payment


@router.patch(
    "/{booking_id}/confirm",
    response_model=BookingResponse,
    summary="Confirm a pending booking",
)
@limiter.limit(settings.rate_limit)
async def confirm_booking(
    request: Request,
    booking_id: str,
    driver: CurrentUser = Depends(require_driver),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.bookings.confirm_booking(booking_id, driver.id)


@router.patch(
    "/{booking_id}/reject",
    response_model=BookingResponse,
    summary="Reject a pending booking",
)
@limiter.limit(settings.rate_limit)
async def reject_booking(
    request: Request,
    booking_id: str,
    driver: CurrentUser = Depends(require_driver),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.bookings.reject_booking(booking_id, driver.id)


@router.patch(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel your booking",
)
@limiter.limit(settings.rate_limit)
async def cancel_booking(
    request: Request,
    booking_id: str,
    passenger: CurrentUser = Depends(require_passenger),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.bookings.cancel_booking(booking_id, passenger.id)
