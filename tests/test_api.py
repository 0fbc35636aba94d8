"""
Integration tests for the REST API endpoints.

The pricing engine and catalog dependencies are overridden with an
in-memory snapshot, and the snapshot refresher is patched out so no
database or Redis is needed.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pricing_engine.api.dependencies import get_catalog, get_pricing_engine
from pricing_engine.config import settings
from pricing_engine.domain.catalog import PlanCatalog, PricingSnapshot
from pricing_engine.domain.enums import DiscountType
from pricing_engine.domain.errors import InvalidConfigurationError
from pricing_engine.domain.pricing import PriceCalculator, PricingEngine
from pricing_engine.domain.promotions import InMemoryUsageCounter, PromotionEngine
from tests.conftest import UTC, at, make_override, make_plan, make_promotion, make_rule


def _iso(moment) -> str:
    return moment.isoformat()


@pytest.fixture
def catalog() -> PlanCatalog:
    catalog = PlanCatalog()
    catalog.replace(
        PricingSnapshot.build(
            plans=[
                make_plan(id="plan-std", hourly=1000, override=make_override(plan_id="plan-std")),
                make_plan(id="plan-old", is_active=False, name="Ancien"),
            ],
            rules=[
                make_rule(id="rule-fri", day_of_week=5, start_hour=18, end_hour=23,
                          multiplier=1.5, priority=10, name="Vendredi soir"),
            ],
            promotions=[
                make_promotion(id="promo-flat", discount_type=DiscountType.FIXED_AMOUNT,
                               value=300, usage_limit=1),
                make_promotion(id="promo-pct", value=20),
            ],
        )
    )
    return catalog


@pytest_asyncio.fixture
async def client(catalog):
    from main import app

    engine = PricingEngine(
        catalog,
        PriceCalculator(tz=UTC, promotion_engine=PromotionEngine(InMemoryUsageCounter())),
    )
    app.dependency_overrides[get_pricing_engine] = lambda: engine
    app.dependency_overrides[get_catalog] = lambda: catalog

    with (
        patch(
            "pricing_engine.workers.snapshot_refresher.start_refresh_loop",
            new_callable=AsyncMock,
        ),
        patch(
            "pricing_engine.workers.snapshot_refresher.stop_refresh_loop",
            new_callable=AsyncMock,
        ),
    ):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac

    app.dependency_overrides.clear()


class TestQuote:
    @pytest.mark.asyncio
    async def test_quote_breakdown(self, client):
        resp = await client.post(
            "/api/v1/pricing/quote",
            json={"plan_id": "plan-std", "start_time": _iso(at(16, 19)), "end_time": _iso(at(16, 20))},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["tier"] == "HOURLY"
        assert data["base"] == 1000
        assert data["rule_multiplier"] == 1.5
        assert data["rule_name"] == "Vendredi soir"
        assert data["subtotal"] == 1500
        # 1500 - 300 and 1500 * 0.8 tie at 1200; the smaller id wins
        assert data["promotion_id"] == "promo-flat"
        assert data["total"] == 1200
        assert data["currency"] == settings.currency

    @pytest.mark.asyncio
    async def test_quote_does_not_consume(self, client):
        body = {"plan_id": "plan-std", "start_time": _iso(at(14, 10)), "end_time": _iso(at(14, 11))}
        first = await client.post("/api/v1/pricing/quote", json=body)
        second = await client.post("/api/v1/pricing/quote", json=body)
        assert first.json() == second.json()
        assert first.json()["promotion_id"] == "promo-flat"

    @pytest.mark.asyncio
    async def test_overtime_override(self, client):
        resp = await client.post(
            "/api/v1/pricing/quote",
            json={"plan_id": "plan-std", "start_time": _iso(at(14, 22)), "end_time": _iso(at(14, 23))},
        )
        data = resp.json()
        assert data["override_applied"] is True
        assert data["base"] == 2000

    @pytest.mark.asyncio
    async def test_unknown_plan_is_404(self, client):
        resp = await client.post(
            "/api/v1/pricing/quote",
            json={"plan_id": "nope", "start_time": _iso(at(14, 10)), "end_time": _iso(at(14, 11))},
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_inactive_plan_is_409(self, client):
        resp = await client.post(
            "/api/v1/pricing/quote",
            json={"plan_id": "plan-old", "start_time": _iso(at(14, 10)), "end_time": _iso(at(14, 11))},
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_reversed_interval_is_422(self, client):
        resp = await client.post(
            "/api/v1/pricing/quote",
            json={"plan_id": "plan-std", "start_time": _iso(at(14, 11)), "end_time": _iso(at(14, 10))},
        )
        assert resp.status_code == 422
        assert "not after" in resp.json()["detail"]


class TestCharge:
    @pytest.mark.asyncio
    async def test_second_charge_falls_back_after_limit(self, client):
        body = {
            "plan_id": "plan-std",
            "start_time": _iso(at(14, 10)),
            "end_time": _iso(at(14, 11)),
        }
        first = await client.post("/api/v1/pricing/charge", json={**body, "ride_id": "ride-1"})
        second = await client.post("/api/v1/pricing/charge", json={**body, "ride_id": "ride-2"})

        assert first.status_code == second.status_code == 200
        assert first.json()["promotion_id"] == "promo-flat"
        assert first.json()["total"] == 700
        assert second.json()["promotion_id"] == "promo-pct"
        assert second.json()["total"] == 800

    @pytest.mark.asyncio
    async def test_charge_requires_ride_id(self, client):
        resp = await client.post(
            "/api/v1/pricing/charge",
            json={"plan_id": "plan-std", "start_time": _iso(at(14, 10)), "end_time": _iso(at(14, 11))},
        )
        assert resp.status_code == 422


class TestPublicPlans:
    @pytest.mark.asyncio
    async def test_lists_active_plans_with_current_rule(self, client):
        resp = await client.get("/api/v1/pricing/plans", params={"at": _iso(at(16, 19))})
        assert resp.status_code == 200
        data = resp.json()
        assert [p["id"] for p in data] == ["plan-std"]
        assert data[0]["original_hourly_rate"] == 1000
        assert data[0]["hourly_rate"] == 1500
        assert data[0]["applied_rule"] == "Vendredi soir"
        assert {p["id"] for p in data[0]["applied_promotions"]} == {"promo-flat", "promo-pct"}


class TestAdmin:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/v1/admin/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_snapshot_summary(self, client):
        resp = await client.get("/api/v1/admin/snapshot")
        data = resp.json()
        assert data["version"] == 1
        assert (data["plans"], data["rules"], data["promotions"]) == (2, 1, 2)

    @pytest.mark.asyncio
    async def test_reload_uses_refresher(self, client, catalog):
        reloaded = catalog.replace(PricingSnapshot.build([make_plan()]))
        with patch(
            "pricing_engine.workers.snapshot_refresher.refresh_snapshot",
            new=AsyncMock(return_value=reloaded),
        ) as refresh:
            resp = await client.post("/api/v1/admin/snapshot/reload")
        assert resp.status_code == 200
        assert resp.json()["version"] == reloaded.version
        refresh.assert_awaited_once_with(catalog)


class TestConfigurationErrors:
    @pytest_asyncio.fixture
    async def broken_client(self):
        from main import app

        engine = MagicMock()
        engine.quote.side_effect = InvalidConfigurationError("rule r1 multiplier is -1")
        app.dependency_overrides[get_pricing_engine] = lambda: engine
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
        app.dependency_overrides.clear()

    @pytest.mark.asyncio
    async def test_development_shows_detail(self, broken_client, monkeypatch):
        monkeypatch.setattr(settings, "environment", "development")
        resp = await broken_client.post(
            "/api/v1/pricing/quote",
            json={"plan_id": "plan-std", "start_time": _iso(at(14, 10)), "end_time": _iso(at(14, 11))},
        )
        assert resp.status_code == 500
        assert "multiplier" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_production_hides_detail(self, broken_client, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")
        resp = await broken_client.post(
            "/api/v1/pricing/quote",
            json={"plan_id": "plan-std", "start_time": _iso(at(14, 10)), "end_time": _iso(at(14, 11))},
        )
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Pricing configuration error"}
