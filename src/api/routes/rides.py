"""
Ride endpoints
==============

POST   /api/v1/rides                   -- publish a ride (driver)
GET    /api/v1/rides                   -- search bookable rides
GET    /api/v1/rides/quote             -- price preview for a trip
GET    /api/v1/rides/{ride_id}         -- ride details
PUT    /api/v1/rides/{ride_id}         -- edit a ride (owning driver)
DELETE /api/v1/rides/{ride_id}         -- soft-cancel a ride (owning driver)
GET    /api/v1/rides/{ride_id}/bookings -- bookings on a ride (owning driver)
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from src.api.dependencies import get_services, require_driver
from src.api.middleware import limiter
from src.api.schemas import BookingResponse, QuoteResponse, RideRequest, RideResponse
from src.config import settings
from src.domain.entities import CurrentUser, RideSearch
from src.domain.errors import AuthorizationError, NotFoundError
from src.services.registry import ServiceRegistry

router = APIRouter(prefix="/rides", tags=["rides"])


@router.post(
    "",
    status_code=201,
    response_model=RideResponse,
    summary="Publish a ride",
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideRequest,
    driver: CurrentUser = Depends(require_driver),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.rides.create_ride(driver.id, body.to_details())


@router.get(
    "",
    response_model=list[RideResponse],
    summary="Search bookable rides",
    description=(
        "Active rides with free seats departing in the future, earliest "
        "first.  ``from``/``to`` are case-insensitive substring matches; "
        "``date`` matches the departure day (UTC); prices are inclusive."
    ),
)
@limiter.limit(settings.rate_limit)
async def search_rides(
    request: Request,
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    services: ServiceRegistry = Depends(get_services),
):
    return await services.rides.search_rides(
        RideSearch(
            from_location=from_,
            to_location=to,
            on_date=on_date,
            min_price=min_price,
            max_price=max_price,
        )
    )


@router.get(
    "/quote",
    response_model=QuoteResponse,
    summary="Preview the price of a trip",
)
@limiter.limit(settings.rate_limit)
async def quote_price(
    request: Request,
    distance: float,
    duration: int,
    services: ServiceRegistry = Depends(get_services),
):
    return services.rides.quote(distance, duration)


@router.get(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Get a ride",
)
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: str,
    services: ServiceRegistry = Depends(get_services),
):
    ride = await services.rides.get_ride_by_id(ride_id)
    if ride is None:
        raise NotFoundError("Ride", ride_id)
    return ride


@router.put(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Edit a ride",
    description="Re-validates every field and recomputes the price.",
)
@limiter.limit(settings.rate_limit)
async def update_ride(
    request: Request,
    ride_id: str,
    body: RideRequest,
    driver: CurrentUser = Depends(require_driver),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.rides.update_ride(ride_id, driver.id, body.to_details())


@router.delete(
    "/{ride_id}",
    response_model=RideResponse,
    summary="Cancel a ride",
    description="Soft delete: the ride is kept with status CANCELLED.",
)
@limiter.limit(settings.rate_limit)
async def delete_ride(
    request: Request,
    ride_id: str,
    driver: CurrentUser = Depends(require_driver),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.rides.delete_ride(ride_id, driver.id)


@router.get(
    "/{ride_id}/bookings",
    response_model=list[BookingResponse],
    summary="List bookings on one of your rides",
)
@limiter.limit(settings.rate_limit)
async def list_ride_bookings(
    request: Request,
    ride_id: str,
    driver: CurrentUser = Depends(require_driver),
    services: ServiceRegistry = Depends(get_services),
):
    ride = await services.rides.get_ride_by_id(ride_id)
    if ride is None:
        raise NotFoundError("Ride", ride_id)
    if ride.driver_id != driver.id:
        raise AuthorizationError(
            "You can only view bookings for your own rides",
            entity="Ride",
            entity_id=ride_id,
            actor_id=driver.id,
        )
    return await services.bookings.get_bookings_by_ride(ride_id)
