"""
Driver dashboard endpoints
==========================

GET /api/v1/drivers/me/rides    -- every ride the driver published
GET /api/v1/drivers/me/bookings -- bookings across all of the driver's rides
GET /api/v1/drivers/me/summary  -- upcoming rides, confirmed earnings/passengers
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_services, require_driver
from src.api.middleware import limiter
from src.api.schemas import BookingResponse, DriverSummaryResponse, RideResponse
from src.config import settings
from src.domain.entities import CurrentUser
from src.services.registry import ServiceRegistry

router = APIRouter(prefix="/drivers/me", tags=["drivers"])


@router.get("/rides", response_model=list[RideResponse], summary="Your rides")
@limiter.limit(settings.rate_limit)
async def my_rides(
    request: Request,
    driver: CurrentUser = Depends(require_driver),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.rides.get_rides_by_driver(driver.id)


@router.get(
    "/bookings",
    response_model=list[BookingResponse],
    summary="Bookings on your rides",
)
@limiter.limit(settings.rate_limit)
async def my_ride_bookings(
    request: Request,
    driver: CurrentUser = Depends(require_driver),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.bookings.get_bookings_for_driver(driver.id)


@router.get(
    "/summary",
    response_model=DriverSummaryResponse,
    summary="Dashboard figures",
)
@limiter.limit(settings.rate_limit)
async def my_summary(
    request: Request,
    driver: CurrentUser = Depends(require_driver),
    services: ServiceRegistry = Depends(get_services),
):
    return await services.bookings.get_driver_summary(driver.id)
