"""
Metrics Router — ingestion and query endpoints.

Endpoints:
  POST /api/metrics  — Store a metric row (insert or upsert by type)
  GET  /api/metrics  — Query rows by type, or the aggregated dashboard
  PUT  /api/metrics  — Report a failed workflow execution
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import ValidationError

from assistant_metrics.config import settings
from assistant_metrics.models.metrics import (
    GENERIC_TABLE,
    READ_TABLES,
    WRITE_COLLECTIONS,
    FailedWorkflowReport,
    MetricPayload,
    MetricResponse,
)
from assistant_metrics.services.dashboard.fallback import compute_dashboard_metrics
from assistant_metrics.services.placeholder import (
    placeholder_dashboard_metrics,
    placeholder_rows,
)
from assistant_metrics.services.supabase import fetch_rows, get_supabase_client

logger = logging.getLogger(__name__)

router = APIRouter()

_GENERIC_ERROR = "Internal server error"

# Per-type equality filters: query param name -> column
_QUERY_FILTERS: dict[str, tuple[str, ...]] = {
    "workflow_execution": ("workflow_id", "status"),
    "user_interaction": ("user_id",),
    "appointment": ("user_id", "status"),
    "user": ("user_id",),
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _describe_validation_error(e: ValidationError) -> str:
    fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
    return ", ".join(fields)


# =============================================================================
# INGESTION
# =============================================================================


@router.post("/metrics", status_code=201, response_model_exclude_none=True)
async def create_metric(body: MetricPayload) -> MetricResponse:
    """Store one metric row in the collection selected by ``type``."""
    if not body.type or body.data is None:
        raise HTTPException(
            status_code=400, detail="Missing required fields: type, data"
        )

    timestamp = body.timestamp or _now_iso()
    collection = WRITE_COLLECTIONS.get(body.type)

    if collection is None:
        table = GENERIC_TABLE
        row: dict[str, Any] = {
            "type": body.type,
            "data": body.data,
            "timestamp": timestamp,
            "created_at": timestamp,
        }
    else:
        table = collection.table
        try:
            record = collection.schema.model_validate(body.data)
        except ValidationError as e:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid {body.type} data: {_describe_validation_error(e)}",
            )
        # Only provided columns, so upserts don't reset existing counters
        row = record.model_dump(mode="json", exclude_unset=True)
        for column in collection.stamp_columns:
            row[column] = timestamp

    try:
        sb = await get_supabase_client()
        if collection is not None and collection.upsert_on:
            query = sb.table(table).upsert([row], on_conflict=collection.upsert_on)
        else:
            query = sb.table(table).insert([row])
        stored = await fetch_rows(query)
    except Exception:
        logger.exception("Failed to write metric %s into %s", body.type, table)
        raise HTTPException(status_code=500, detail=_GENERIC_ERROR)

    logger.info("Stored %s metric in %s", body.type, table)
    return MetricResponse(
        success=True,
        message=f"Metric {body.type} saved to {table}",
        data=stored,
        count=len(stored),
    )


# =============================================================================
# QUERY
# =============================================================================


@router.get("/metrics", response_model_exclude_none=True)
async def query_metrics(
    type: str | None = Query(default=None),
    limit: int | None = Query(default=None),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    user_id: str | None = Query(default=None, alias="userId"),
    workflow_id: str | None = Query(default=None, alias="workflowId"),
    status: str | None = Query(default=None),
    mock: str | None = Query(default=None),
) -> MetricResponse:
    """Query metric rows, or the dashboard aggregate when type=dashboard."""
    if limit is None:
        limit = settings.default_query_limit
    limit = max(1, min(limit, settings.max_query_limit))

    if mock == "true":
        if type == "dashboard":
            return MetricResponse(
                success=True, data=placeholder_dashboard_metrics().model_dump()
            )
        rows = placeholder_rows(type or "", limit)
        return MetricResponse(success=True, data=rows, count=len(rows))

    if type == "dashboard":
        outcome = await compute_dashboard_metrics(start_date, end_date)
        return MetricResponse(
            success=True,
            data=outcome.metrics.model_dump(),
            message=f"Dashboard metrics ({outcome.source.value})",
        )

    table = READ_TABLES.get(type or "", GENERIC_TABLE)
    params = {"workflow_id": workflow_id, "user_id": user_id, "status": status}

    try:
        sb = await get_supabase_client()
        query = sb.table(table).select("*")

        for column in _QUERY_FILTERS.get(type or "", ()):
            if params[column]:
                query = query.eq(column, params[column])
        if table == GENERIC_TABLE and type:
            query = query.eq("type", type)
        if table == "frequent_questions":
            query = query.order("count", desc=True)

        if start_date:
            query = query.gte("timestamp", start_date)
        if end_date:
            query = query.lte("timestamp", end_date)

        query = query.order("timestamp", desc=True).limit(limit)
        rows = await fetch_rows(query)
    except Exception:
        logger.exception("Failed to query metrics from %s", table)
        raise HTTPException(status_code=500, detail=_GENERIC_ERROR)

    return MetricResponse(success=True, data=rows, count=len(rows))


# =============================================================================
# FAILED WORKFLOW REPORT
# =============================================================================


@router.put("/metrics", status_code=201, response_model_exclude_none=True)
async def report_failed_workflow(body: FailedWorkflowReport) -> MetricResponse:
    """Record a failed workflow run; status is always ``failed``."""
    missing = [
        name
        for name in ("workflow_id", "execution_id", "error_message")
        if not getattr(body, name)
    ]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required fields: {', '.join(missing)}",
        )

    now = _now_iso()
    row: dict[str, Any] = {
        "workflow_id": body.workflow_id,
        "execution_id": body.execution_id,
        "status": "failed",
        "error_message": body.error_message,
        "duration_ms": body.duration_ms or 0,
        "node_count": body.node_count or 0,
        "end_time": now,
        "timestamp": now,
        "created_at": now,
    }
    if body.workflow_name:
        row["workflow_name"] = body.workflow_name

    try:
        sb = await get_supabase_client()
        stored = await fetch_rows(sb.table("workflow_executions").insert([row]))
    except Exception:
        logger.exception("Failed to record failed workflow %s", body.execution_id)
        raise HTTPException(status_code=500, detail=_GENERIC_ERROR)

    logger.warning(
        "Workflow %s execution %s reported failed: %s",
        body.workflow_id,
        body.execution_id,
        body.error_message,
    )
    return MetricResponse(
        success=True,
        message=f"Failed execution {body.execution_id} recorded",
        data=stored,
        count=len(stored),
    )
