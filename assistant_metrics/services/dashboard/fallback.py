"""
Dashboard Fallback Controller — always produce a DashboardMetrics payload.

Strategies are tried in order and the first one that succeeds wins:

  1. RemoteAggregate — connectivity probe + server-side aggregate function
  2. ManualAggregate — Row Fetcher → Aggregator → Assembler in-process
  3. placeholder     — static sample payload (cannot fail)

Any exception inside a strategy moves on to the next tier, so callers of
``compute_dashboard_metrics`` never see an error.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from assistant_metrics.config import settings
from assistant_metrics.models.dashboard import DashboardMetrics
from assistant_metrics.services.dashboard.aggregator import aggregate
from assistant_metrics.services.dashboard.assembler import assemble
from assistant_metrics.services.dashboard.fetcher import (
    WindowBounds,
    fetch_window_rows,
    window_bounds,
)
from assistant_metrics.services.placeholder import (
    placeholder_dashboard_metrics,
    placeholder_trends,
)
from assistant_metrics.services.supabase import get_supabase_client

logger = logging.getLogger(__name__)

PROBE_TABLE = "workflow_executions"


class DashboardSource(str, Enum):
    """Which tier produced the payload."""

    REMOTE = "remote"
    MANUAL = "manual"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class DashboardRequest:
    """Inputs shared by every tier of one aggregation pass."""

    start_date: str
    end_date: str
    bounds: WindowBounds


@dataclass(frozen=True)
class DashboardOutcome:
    metrics: DashboardMetrics
    source: DashboardSource


class DashboardStrategy(Protocol):
    source: DashboardSource

    async def run(self, request: DashboardRequest) -> DashboardMetrics: ...


# =============================================================================
# STRATEGIES
# =============================================================================


class RemoteAggregate:
    """Ask the datastore's aggregate function for the whole payload."""

    source = DashboardSource.REMOTE

    def __init__(self, function_name: str | None = None) -> None:
        self.function_name = function_name or settings.dashboard_rpc_name

    async def run(self, request: DashboardRequest) -> DashboardMetrics:
        sb = await get_supabase_client()

        # Connectivity probe; raises when the store is unreachable
        await sb.table(PROBE_TABLE).select("id").limit(1).execute()

        result = await sb.rpc(
            self.function_name,
            {"start_date": request.start_date, "end_date": request.end_date},
        ).execute()
        return self._decode(result.data, request)

    @staticmethod
    def _decode(data: Any, request: DashboardRequest) -> DashboardMetrics:
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict) or not data:
            raise ValueError("Aggregate function returned no payload")

        # Trend series are not produced server-side; fill them in
        payload: dict[str, Any] = placeholder_trends(request.bounds.end).model_dump()
        payload.update({k: v for k, v in data.items() if v is not None})
        return DashboardMetrics.model_validate(payload)


class ManualAggregate:
    """Fetch raw rows and aggregate them in-process."""

    source = DashboardSource.MANUAL

    async def run(self, request: DashboardRequest) -> DashboardMetrics:
        sb = await get_supabase_client()
        rows = await fetch_window_rows(sb, request.bounds)
        windows = {
            collection: {w: aggregate(r, w) for w, r in per_window.items()}
            for collection, per_window in rows.items()
        }
        return assemble(windows, placeholder_trends(request.bounds.end))


DEFAULT_STRATEGIES: tuple[DashboardStrategy, ...] = (
    RemoteAggregate(),
    ManualAggregate(),
)


# =============================================================================
# CONTROLLER
# =============================================================================


async def compute_dashboard_metrics(
    start_date: str | None = None,
    end_date: str | None = None,
    now: datetime | None = None,
    strategies: Sequence[DashboardStrategy] = DEFAULT_STRATEGIES,
) -> DashboardOutcome:
    """Run the fallback chain. Never raises.

    start_date / end_date default to the month window; only the remote tier
    receives them, the manual tier always uses the today/week/month windows.
    """
    bounds = window_bounds(now)
    request = DashboardRequest(
        start_date=start_date or bounds.month.isoformat(),
        end_date=end_date or bounds.end.isoformat(),
        bounds=bounds,
    )
    logger.info(
        "Computing dashboard metrics from %s to %s",
        request.start_date,
        request.end_date,
    )

    for strategy in strategies:
        try:
            metrics = await strategy.run(request)
        except Exception as e:
            logger.warning(
                "Dashboard tier %s failed, falling back: %s", strategy.source.value, e
            )
            continue
        return DashboardOutcome(metrics=metrics, source=strategy.source)

    logger.warning("All dashboard tiers failed; serving placeholder metrics")
    return DashboardOutcome(
        metrics=placeholder_dashboard_metrics(bounds.end),
        source=DashboardSource.PLACEHOLDER,
    )
