"""
Dashboard Row Fetcher — time-windowed reads for the aggregation pass.

Three collections × three windows = nine queries, issued concurrently.
A failed query degrades to an empty row set and never aborts the others.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ValidationError

from assistant_metrics.models.dashboard import (
    AggregationRow,
    AppointmentRow,
    Collection,
    ExecutionRow,
    InteractionRow,
    Window,
)
from assistant_metrics.services.supabase import fetch_rows

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMN = "timestamp"

# Projected columns and row schema per collection
COLLECTION_COLUMNS: dict[Collection, tuple[str, type[BaseModel]]] = {
    Collection.WORKFLOW_EXECUTIONS: ("status, duration_ms", ExecutionRow),
    Collection.USER_INTERACTIONS: (
        "user_id, response_time_ms, confidence_score, appointment_requested, "
        "appointment_confirmed, appointment_completed",
        InteractionRow,
    ),
    Collection.APPOINTMENTS: ("status, user_id", AppointmentRow),
}

WindowRows = dict[Collection, dict[Window, list[AggregationRow]]]


@dataclass(frozen=True)
class WindowBounds:
    """Start of each window plus the common end instant."""

    today: datetime
    week: datetime
    month: datetime
    end: datetime

    def start(self, window: Window) -> datetime:
        return {
            Window.TODAY: self.today,
            Window.WEEK: self.week,
            Window.MONTH: self.month,
        }[window]


def window_bounds(now: datetime | None = None) -> WindowBounds:
    """Today starts at 00:00 UTC; week and month are rolling 7 / 30 days."""
    now = now if now is not None else datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return WindowBounds(
        today=now.replace(hour=0, minute=0, second=0, microsecond=0),
        week=now - timedelta(days=7),
        month=now - timedelta(days=30),
        end=now,
    )


def decode_rows(
    collection: Collection, raw: list[dict[str, Any]]
) -> list[AggregationRow]:
    """Validate raw rows into the collection's row schema, skipping bad rows."""
    _, schema = COLLECTION_COLUMNS[collection]
    rows: list[AggregationRow] = []
    for item in raw:
        try:
            rows.append(schema.model_validate(item))  # type: ignore[arg-type]
        except ValidationError as e:
            logger.warning("Skipping malformed %s row: %s", collection.value, e)
    return rows


async def _fetch_one(
    sb: Any, collection: Collection, window: Window, since: datetime
) -> list[AggregationRow]:
    columns, _ = COLLECTION_COLUMNS[collection]
    try:
        raw = await fetch_rows(
            sb.table(collection.value)
            .select(columns)
            .gte(TIMESTAMP_COLUMN, since.isoformat())
        )
    except Exception as e:
        logger.warning(
            "Dashboard fetch failed (%s/%s), using empty set: %s",
            collection.value,
            window.value,
            e,
        )
        return []
    return decode_rows(collection, raw)


async def fetch_window_rows(sb: Any, bounds: WindowBounds) -> WindowRows:
    """Fetch every collection for every window concurrently."""
    keys = [(c, w) for c in Collection for w in Window]
    results = await asyncio.gather(
        *(_fetch_one(sb, c, w, bounds.start(w)) for c, w in keys)
    )

    rows: WindowRows = {c: {} for c in Collection}
    for (collection, window), result in zip(keys, results):
        rows[collection][window] = result
    return rows
