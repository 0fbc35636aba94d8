"""
FastAPI application factory.

* Registers routes for pricing and admin.
* Starts / stops the snapshot refresher via lifespan events.
* Maps pricing errors to HTTP status codes.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from pricing_engine.api.middleware import limiter
from pricing_engine.api.routes import admin, pricing
from pricing_engine.config import settings
from pricing_engine.domain.errors import (
    InvalidConfigurationError,
    InvalidDurationError,
    PlanInactiveError,
    PlanNotFoundError,
)
from pricing_engine.workers import snapshot_refresher as _refresher

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the snapshot refresher on startup; stop on shutdown."""
    await _refresher.start_refresh_loop()
    yield
    await _refresher.stop_refresh_loop()


async def _plan_not_found(request: Request, exc: PlanNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _plan_inactive(request: Request, exc: PlanInactiveError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def _invalid_duration(request: Request, exc: InvalidDurationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _invalid_configuration(request: Request, exc: InvalidConfigurationError):
    logger.error("Invalid pricing configuration: %s", exc)
    detail = "Pricing configuration error" if settings.is_production else str(exc)
    return JSONResponse(status_code=500, content={"detail": detail})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Pricing Resolution Engine",
        description=(
            "Computes the price a rider is charged from a pricing plan, a "
            "ride interval and the active promotions.  Reconciles base tier "
            "rates, overtime overrides, dynamic multipliers and usage-limited "
            "promotions into one deterministic price."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Pricing errors
    app.add_exception_handler(PlanNotFoundError, _plan_not_found)
    app.add_exception_handler(PlanInactiveError, _plan_inactive)
    app.add_exception_handler(InvalidDurationError, _invalid_duration)
    app.add_exception_handler(InvalidConfigurationError, _invalid_configuration)

    # Routers
    app.include_router(pricing.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
