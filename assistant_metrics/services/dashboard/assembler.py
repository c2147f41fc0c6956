"""
Dashboard Assembler — merge window KPIs into the flat dashboard payload.
"""

from __future__ import annotations

from assistant_metrics.models.dashboard import (
    Collection,
    DashboardMetrics,
    DashboardTrends,
    Window,
    WindowMetrics,
)

WindowKPIs = dict[Collection, dict[Window, WindowMetrics]]


def assemble(windows: WindowKPIs, trends: DashboardTrends) -> DashboardMetrics:
    """Build DashboardMetrics from the nine window aggregates.

    Trend series are taken from ``trends`` as-is; they are not derived from
    the aggregated rows.
    """
    runs = windows[Collection.WORKFLOW_EXECUTIONS]
    asks = windows[Collection.USER_INTERACTIONS]
    appts = windows[Collection.APPOINTMENTS]

    return DashboardMetrics(
        # Usage
        workflow_executions_today=runs[Window.TODAY].count,
        workflow_executions_week=runs[Window.WEEK].count,
        workflow_executions_month=runs[Window.MONTH].count,
        average_execution_duration=runs[Window.TODAY].average_duration,
        failed_executions_today=runs[Window.TODAY].failed_count,
        success_rate=runs[Window.TODAY].success_rate,
        # Interaction
        total_questions_today=asks[Window.TODAY].count,
        total_questions_week=asks[Window.WEEK].count,
        total_questions_month=asks[Window.MONTH].count,
        appointments_scheduled_today=appts[Window.TODAY].count,
        appointments_scheduled_week=appts[Window.WEEK].count,
        appointments_scheduled_month=appts[Window.MONTH].count,
        unique_users_today=asks[Window.TODAY].unique_users,
        unique_users_week=asks[Window.WEEK].unique_users,
        unique_users_month=asks[Window.MONTH].unique_users,
        average_response_time=asks[Window.TODAY].average_response_time,
        # Conversion
        appointment_conversion_rate=appts[Window.MONTH].status_completion_rate,
        high_confidence_responses=asks[Window.MONTH].high_confidence_rate,
        user_to_appointment_rate=asks[Window.MONTH].user_conversion_rate,
        appointment_completion_rate=asks[Window.MONTH].appointment_completion_rate,
        # Trends
        questions_trend=trends.questions_trend,
        executions_trend=trends.executions_trend,
        appointments_trend=trends.appointments_trend,
    )
