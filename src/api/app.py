"""
FastAPI application factory.

* Wires the ride inventory, booking ledger and credential store around
  one session factory and one per-ride lock manager.
* Registers routes for users, rides, bookings, driver dashboards and admin.
* Maps domain errors to JSON responses and applies rate limiting.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.errors import register_exception_handlers
from src.api.middleware import limiter
from src.api.routes import admin, bookings, drivers, rides, users
from src.api.schemas import ErrorResponse
from src.config import Settings, settings as default_settings
from src.infrastructure.locks import LockManager, build_lock_manager
from src.services.registry import build_services

logger = logging.getLogger(__name__)

# Documented shape of every domain error (see src.api.errors)
ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (401, 403, 404, 409, 422, 503)
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Carpool API started")
    yield
    if app.state.owns_engine:
        from src.infrastructure.database import engine

        await engine.dispose()
    logger.info("Carpool API stopped")


def create_app(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    lock_manager: Optional[LockManager] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level)

    owns_engine = session_factory is None
    if session_factory is None:
        from src.infrastructure.database import async_session_factory

        session_factory = async_session_factory

    app = FastAPI(
        title="Carpool Booking API",
        description=(
            "Drivers publish rides, passengers search and book seats.  "
            "Seat inventory, fares and booking state stay consistent under "
            "concurrent driver and passenger actions."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.owns_engine = owns_engine
    app.state.services = build_services(
        session_factory, lock_manager or build_lock_manager(settings), settings
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Routers
    for module in (users, rides, bookings, drivers, admin):
        app.include_router(
            module.router, prefix="/api/v1", responses=ERROR_RESPONSES
        )

    return app
