"""
Pricing endpoints
=================

POST /api/v1/pricing/quote   -- price a ride interval, no side effects
POST /api/v1/pricing/charge  -- price a closing ride and claim its promotion
GET  /api/v1/pricing/plans   -- active plans as priced at a given moment
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from pricing_engine.api.dependencies import get_pricing_engine
from pricing_engine.api.middleware import limiter
from pricing_engine.api.schemas import (
    ChargeRequest,
    ErrorResponse,
    PriceResponse,
    PublicPlanResponse,
    QuoteRequest,
)
from pricing_engine.config import settings
from pricing_engine.domain.pricing import PricingEngine

router = APIRouter(prefix="/pricing", tags=["pricing"])

_ERRORS = {
    404: {"model": ErrorResponse, "description": "Unknown plan"},
    409: {"model": ErrorResponse, "description": "Plan is inactive"},
    422: {"model": ErrorResponse, "description": "Invalid ride interval"},
}


@router.post(
    "/quote",
    response_model=PriceResponse,
    summary="Quote a price for a plan and time interval",
    responses=_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def quote(
    request: Request,
    body: QuoteRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
):
    result = engine.quote(body.plan_id, body.start_time, body.end_time)
    return PriceResponse.from_result(result, settings.currency)


@router.post(
    "/charge",
    response_model=PriceResponse,
    summary="Price a closing ride",
    description=(
        "Same calculation as the quote, but the selected promotion is "
        "claimed atomically. If its last use is taken concurrently, the next "
        "best promotion is tried, then no promotion at all."
    ),
    responses=_ERRORS,
)
@limiter.limit(settings.rate_limit)
async def charge(
    request: Request,
    body: ChargeRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
):
    result = await engine.charge(
        body.plan_id, body.start_time, body.end_time, body.ride_id
    )
    return PriceResponse.from_result(result, settings.currency)


@router.get(
    "/plans",
    response_model=list[PublicPlanResponse],
    summary="Active plans with the dynamic rule and promotions applied",
)
@limiter.limit(settings.rate_limit)
async def public_plans(
    request: Request,
    at: Optional[datetime] = Query(None, description="Defaults to now"),
    engine: PricingEngine = Depends(get_pricing_engine),
):
    moment = at or datetime.now(timezone.utc)
    return [PublicPlanResponse.from_pricing(p) for p in engine.public_pricing(moment)]
