"""
Metrics Models — record schemas and request bodies for the metrics API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# RECORD SCHEMAS (one per collection)
# =============================================================================


class MetricRecord(BaseModel):
    """Base for collection rows. Unknown columns pass through to the store."""

    model_config = ConfigDict(extra="allow")

    id: int | str | None = None
    timestamp: str | None = None
    created_at: str | None = None


class WorkflowExecution(MetricRecord):
    """Row in workflow_executions. Written once when a run is reported."""

    workflow_id: str
    workflow_name: str | None = None
    execution_id: str
    status: Literal["success", "failed", "canceled", "running"]
    duration_ms: int | None = Field(None, ge=0)
    start_time: str | None = None
    end_time: str | None = None
    node_count: int | None = Field(None, ge=0)
    error_message: str | None = None


class UserInteraction(MetricRecord):
    """Row in user_interactions. One per user message."""

    user_id: str
    phone_number: str | None = None
    question: str | None = None
    response: str | None = None
    response_time_ms: int | None = Field(None, ge=0)
    confidence_score: float | None = Field(None, ge=0.0, le=1.0)
    intent_detected: str | None = None
    session_id: str | None = None
    interaction_type: Literal["question", "appointment_request", "followup"] | None = (
        None
    )
    appointment_requested: bool = False
    appointment_confirmed: bool = False
    appointment_completed: bool = False


class Appointment(MetricRecord):
    """Row in appointments."""

    appointment_id: str | None = None
    user_id: str
    phone_number: str | None = None
    requested_date: str | None = None
    confirmed_date: str | None = None
    appointment_type: str | None = None
    status: Literal["requested", "confirmed", "completed", "canceled", "no_show"] = (
        "requested"
    )
    notes: str | None = None
    source_interaction_id: str | None = None


class User(MetricRecord):
    """Row in users. Counters are derived and upserted by user_id."""

    user_id: str
    phone_number: str | None = None
    first_interaction: str | None = None
    last_interaction: str | None = None
    total_interactions: int = Field(0, ge=0)
    appointments_requested: int = Field(0, ge=0)
    appointments_confirmed: int = Field(0, ge=0)
    appointments_completed: int = Field(0, ge=0)
    conversion_status: Literal["new", "engaged", "converted", "churned"] = "new"


class FrequentQuestion(MetricRecord):
    """Row in frequent_questions, upserted by question_pattern."""

    question_pattern: str
    question_category: str | None = None
    count: int = Field(0, ge=0)
    last_asked: str | None = None
    sample_questions: list[str] = Field(default_factory=list)
    updated_at: str | None = None


# =============================================================================
# COLLECTION ROUTING
# =============================================================================


@dataclass(frozen=True)
class CollectionSpec:
    """How a metric type maps onto the datastore."""

    table: str
    schema: type[MetricRecord]
    upsert_on: str | None = None
    stamp_columns: tuple[str, ...] = ("timestamp", "created_at")


GENERIC_TABLE = "metrics"

# Write-side routing for POST /metrics
WRITE_COLLECTIONS: dict[str, CollectionSpec] = {
    "workflow_execution": CollectionSpec(
        table="workflow_executions", schema=WorkflowExecution
    ),
    "user_interaction": CollectionSpec(
        table="user_interactions", schema=UserInteraction
    ),
    "appointment": CollectionSpec(table="appointments", schema=Appointment),
    "user_update": CollectionSpec(table="users", schema=User, upsert_on="user_id"),
    "frequent_question": CollectionSpec(
        table="frequent_questions",
        schema=FrequentQuestion,
        upsert_on="question_pattern",
        stamp_columns=("updated_at",),
    ),
}

# Read-side routing for GET /metrics
READ_TABLES: dict[str, str] = {
    "workflow_execution": "workflow_executions",
    "user_interaction": "user_interactions",
    "appointment": "appointments",
    "user": "users",
    "frequent_question": "frequent_questions",
}


# =============================================================================
# REQUEST MODELS
# =============================================================================


class MetricPayload(BaseModel):
    """Ingestion body. Presence of type/data is checked by the handler."""

    type: str | None = None
    data: dict[str, Any] | None = None
    timestamp: str | None = None


class FailedWorkflowReport(BaseModel):
    """Failed-run report. Required fields are checked by the handler."""

    workflow_id: str | None = None
    workflow_name: str | None = None
    execution_id: str | None = None
    error_message: str | None = None
    duration_ms: int | None = Field(None, ge=0)
    node_count: int | None = Field(None, ge=0)


# =============================================================================
# RESPONSE MODEL
# =============================================================================


class MetricResponse(BaseModel):
    """Envelope shared by every metrics endpoint."""

    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None
    count: int | None = None
