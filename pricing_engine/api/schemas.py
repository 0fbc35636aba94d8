"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from pricing_engine.domain.entities import PriceResult, Promotion
from pricing_engine.domain.pricing import PlanPricing


# ── Requests ──────────────────────────────────────────────────────────


class QuoteRequest(BaseModel):
    plan_id: str = Field(..., max_length=36)
    start_time: datetime
    end_time: datetime


class ChargeRequest(QuoteRequest):
    ride_id: str = Field(
        ...,
        max_length=64,
        description="Ride being closed; recorded against the consumed promotion.",
    )


# ── Responses ─────────────────────────────────────────────────────────


class PriceResponse(BaseModel):
    plan_id: str
    tier: str
    units: int
    billable_hours: int
    tier_rate: float
    base: int
    override_applied: bool
    rule_multiplier: float
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    unlock_fee: float
    subtotal: int
    plan_discount: int
    promotion_id: Optional[str] = None
    promotion_discount: int
    discount: int
    total: int
    currency: str

    @classmethod
    def from_result(cls, result: PriceResult, currency: str) -> "PriceResponse":
        return cls(
            plan_id=result.plan_id,
            tier=result.tier.value,
            units=result.units,
            billable_hours=result.billable_hours,
            tier_rate=float(result.tier_rate),
            base=int(result.base),
            override_applied=result.override_applied,
            rule_multiplier=float(result.rule_multiplier),
            rule_id=result.rule_id,
            rule_name=result.rule_name,
            unlock_fee=float(result.unlock_fee),
            subtotal=int(result.subtotal),
            plan_discount=int(result.plan_discount),
            promotion_id=result.promotion_id,
            promotion_discount=int(result.promotion_discount),
            discount=int(result.discount),
            total=int(result.total),
            currency=currency,
        )


class PromotionSummary(BaseModel):
    id: str
    name: str
    description: str = ""
    discount_type: str
    discount_value: float
    end_date: datetime

    @classmethod
    def from_entity(cls, promotion: Promotion) -> "PromotionSummary":
        return cls(
            id=promotion.id,
            name=promotion.name,
            description=promotion.description,
            discount_type=promotion.discount_type.value,
            discount_value=float(promotion.discount_value),
            end_date=promotion.end_date,
        )


class PublicPlanResponse(BaseModel):
    id: str
    name: str
    hourly_rate: float
    original_hourly_rate: float
    daily_rate: float
    weekly_rate: float
    monthly_rate: float
    minimum_hours: int
    discount: float
    conditions: list[str] = []
    multiplier: float
    applied_rule: Optional[str] = None
    applied_promotions: list[PromotionSummary] = []

    @classmethod
    def from_pricing(cls, pricing: PlanPricing) -> "PublicPlanResponse":
        plan = pricing.plan
        return cls(
            id=plan.id,
            name=plan.name,
            hourly_rate=float(pricing.hourly_rate),
            original_hourly_rate=float(pricing.original_hourly_rate),
            daily_rate=float(plan.daily_rate),
            weekly_rate=float(plan.weekly_rate),
            monthly_rate=float(plan.monthly_rate),
            minimum_hours=plan.minimum_hours,
            discount=float(plan.discount),
            conditions=list(plan.conditions),
            multiplier=float(pricing.multiplier),
            applied_rule=pricing.applied_rule,
            applied_promotions=[
                PromotionSummary.from_entity(p) for p in pricing.promotions
            ],
        )


class SnapshotResponse(BaseModel):
    version: int
    loaded_at: datetime
    plans: int
    rules: int
    promotions: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
