"""
Background Snapshot Refresher
=============================

Runs every ``SNAPSHOT_REFRESH_SECONDS`` (default 60 s) and on explicit
invalidation from the admin API.

Each cycle reads plans, rules and promotions in one session and installs
them in the catalog as a new immutable snapshot.  A failed cycle leaves
the previous snapshot in place.
"""

from __future__ import annotations

import asyncio
import logging

from pricing_engine.config import settings
from pricing_engine.domain.catalog import PlanCatalog, PricingSnapshot
from pricing_engine.infrastructure.database import async_session_factory
from pricing_engine.infrastructure.repositories import load_snapshot
from pricing_engine import state

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_refresh_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Snapshot refresher started (interval=%ds)", settings.snapshot_refresh_seconds
    )


async def stop_refresh_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Snapshot refresher stopped")


async def refresh_snapshot(
    catalog: PlanCatalog | None = None, session_factory=None
) -> PricingSnapshot:
    """Load the configuration store and install it as the next snapshot."""
    catalog = catalog or state.catalog
    session_factory = session_factory or async_session_factory
    async with session_factory() as session:
        snapshot = await load_snapshot(session)
    installed = catalog.replace(snapshot)
    logger.info(
        "Pricing snapshot v%d loaded: %d plans, %d rules, %d promotions",
        installed.version,
        len(installed.plans),
        len(installed.rules),
        len(installed.promotions),
    )
    return installed


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: reload the snapshot then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await refresh_snapshot()
        except Exception:
            logger.exception("Snapshot reload failed; keeping previous snapshot")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.snapshot_refresh_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle
