"""
FastAPI application factory.

* Registers routes for trips, requests, drivers, notifications and admin.
* Builds the engine (``Broker``) and its notification sink in the lifespan.
* Renders every ``BrokerError`` through one exception handler.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from tripbroker.api.middleware import limiter
from tripbroker.api.routes import admin, drivers, notifications, requests, trips
from tripbroker.config import settings
from tripbroker.domain.errors import BrokerError
from tripbroker.infrastructure.database import async_session_factory
from tripbroker.infrastructure.notifications import (
    NotificationDispatcher,
    RedisNotificationSink,
    build_notification_sink,
)
from tripbroker.services.broker import Broker

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the engine on startup; close the Redis connection on shutdown."""
    sink = build_notification_sink(
        settings.notification_backend, async_session_factory, settings.redis_url
    )
    app.state.broker = Broker(async_session_factory, NotificationDispatcher(sink))
    logger.info("Notifications go to the %s sink", settings.notification_backend)
    yield
    if isinstance(sink, RedisNotificationSink):
        await sink.redis.aclose()


async def broker_error_handler(request: Request, exc: BrokerError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, **exc.extra},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Trip Broker API",
        description=(
            "Matches transport trips posted by companies with independent "
            "drivers.  Handles two-way negotiation requests, conflict-free "
            "assignment and the trip lifecycle."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Engine errors -> HTTP
    app.add_exception_handler(BrokerError, broker_error_handler)

    # Routers
    app.include_router(trips.router, prefix="/api/v1")
    app.include_router(requests.router, prefix="/api/v1")
    app.include_router(drivers.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
