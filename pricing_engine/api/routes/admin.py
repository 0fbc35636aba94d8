"""
Admin / observability endpoints
===============================

GET  /api/v1/admin/snapshot         -- current configuration snapshot summary
POST /api/v1/admin/snapshot/reload  -- reload plans, rules and promotions now
GET  /api/v1/admin/health           -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from pricing_engine.api.dependencies import get_catalog
from pricing_engine.api.middleware import limiter
from pricing_engine.api.schemas import HealthResponse, SnapshotResponse
from pricing_engine.domain.catalog import PlanCatalog, PricingSnapshot
from pricing_engine.workers import snapshot_refresher

router = APIRouter(prefix="/admin", tags=["admin"])


def _summary(snapshot: PricingSnapshot) -> SnapshotResponse:
    return SnapshotResponse(
        version=snapshot.version,
        loaded_at=snapshot.loaded_at,
        plans=len(snapshot.plans),
        rules=len(snapshot.rules),
        promotions=len(snapshot.promotions),
    )


@router.get("/snapshot", response_model=SnapshotResponse, summary="Snapshot summary")
async def get_snapshot(catalog: PlanCatalog = Depends(get_catalog)):
    return _summary(catalog.snapshot)


@router.post(
    "/snapshot/reload",
    response_model=SnapshotResponse,
    summary="Reload the pricing configuration",
)
@limiter.limit("10/minute")
async def reload_snapshot(
    request: Request,
    catalog: PlanCatalog = Depends(get_catalog),
):
    snapshot = await snapshot_refresher.refresh_snapshot(catalog)
    return _summary(snapshot)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
