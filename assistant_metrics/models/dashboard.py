"""
Dashboard Models — aggregation rows, window KPIs and the dashboard payload.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

# =============================================================================
# WINDOWS / COLLECTIONS
# =============================================================================


class Window(str, Enum):
    """Time range used to bucket rows."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class Collection(str, Enum):
    """Datastore tables read by the dashboard aggregation."""

    WORKFLOW_EXECUTIONS = "workflow_executions"
    USER_INTERACTIONS = "user_interactions"
    APPOINTMENTS = "appointments"


# =============================================================================
# AGGREGATION ROWS (projected columns only)
# =============================================================================


class _Row(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ExecutionRow(_Row):
    status: str | None = None
    duration_ms: float | None = None


class InteractionRow(_Row):
    user_id: str | None = None
    response_time_ms: float | None = None
    confidence_score: float | None = None
    appointment_requested: bool = False
    appointment_confirmed: bool = False
    appointment_completed: bool = False


class AppointmentRow(_Row):
    status: str | None = None
    user_id: str | None = None


AggregationRow = ExecutionRow | InteractionRow | AppointmentRow


# =============================================================================
# WINDOW KPIS
# =============================================================================


class WindowMetrics(BaseModel):
    """KPIs for one collection over one window. Rates are percentages."""

    window: Window
    count: int = 0
    success_count: int = 0
    failed_count: int = 0
    completed_count: int = 0
    success_rate: float = 0.0
    average_duration: int = 0
    average_response_time: int = 0
    unique_users: int = 0
    high_confidence_rate: float = 0.0
    status_completion_rate: float = 0.0
    # Month window only
    appointment_completion_rate: float = 0.0
    user_conversion_rate: float = 0.0


# =============================================================================
# DASHBOARD PAYLOAD
# =============================================================================


class QuestionsTrendPoint(BaseModel):
    date: str  # YYYY-MM-DD
    count: int


class ExecutionsTrendPoint(BaseModel):
    date: str  # YYYY-MM-DD
    count: int
    success_rate: float


class AppointmentsTrendPoint(BaseModel):
    date: str  # YYYY-MM-DD
    requested: int
    completed: int


class DashboardTrends(BaseModel):
    """Last-30-day series for the dashboard charts."""

    questions_trend: list[QuestionsTrendPoint]
    executions_trend: list[ExecutionsTrendPoint]
    appointments_trend: list[AppointmentsTrendPoint]


class DashboardMetrics(DashboardTrends):
    """Flat KPI payload consumed by the dashboard cards and charts."""

    # Usage
    workflow_executions_today: int
    workflow_executions_week: int
    workflow_executions_month: int
    average_execution_duration: int
    failed_executions_today: int
    success_rate: float

    # Interaction
    total_questions_today: int
    total_questions_week: int
    total_questions_month: int
    appointments_scheduled_today: int
    appointments_scheduled_week: int
    appointments_scheduled_month: int
    unique_users_today: int
    unique_users_week: int
    unique_users_month: int
    average_response_time: int

    # Conversion
    appointment_conversion_rate: float
    high_confidence_responses: float
    user_to_appointment_rate: float
    appointment_completion_rate: float
