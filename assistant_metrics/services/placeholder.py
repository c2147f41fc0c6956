"""
Placeholder Data — static sample metrics for development and degraded mode.

Every factory builds a fresh object per call from a fixed seed, so callers
can mutate what they get back and two calls with the same ``now`` agree.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any

from assistant_metrics.models.dashboard import DashboardMetrics, DashboardTrends

_SEED = 20240501
_TREND_DAYS = 30

_QUESTIONS = [
    "What are your opening hours?",
    "How can I book an appointment?",
    "Which services do you offer?",
    "What is the address?",
    "Do you have availability tomorrow?",
    "How much does a consultation cost?",
    "Do I need to bring any documents?",
    "Do you accept health insurance?",
    "I want to cancel my appointment",
    "Is there parking available?",
]

_APPOINTMENT_STATUSES = ["requested", "confirmed", "completed", "canceled", "no_show"]
_APPOINTMENT_WEIGHTS = [0.1, 0.3, 0.45, 0.1, 0.05]
_APPOINTMENT_TYPES = ["general_consultation", "checkup", "specialist", "urgent"]


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def _days_back(rng: random.Random, now: datetime, max_days: int) -> datetime:
    return now - timedelta(days=rng.randrange(max_days), minutes=rng.randrange(1440))


def _short_id(rng: random.Random) -> str:
    return "%09x" % rng.getrandbits(36)


def _phone(rng: random.Random) -> str:
    return f"+1{rng.randint(1_000_000_000, 9_999_999_999)}"


# =============================================================================
# DASHBOARD
# =============================================================================


def placeholder_trends(now: datetime | None = None) -> DashboardTrends:
    """Daily series for the last 30 days, oldest first."""
    now = _now(now)
    rng = random.Random(_SEED)
    dates = [
        (now - timedelta(days=_TREND_DAYS - 1 - i)).date().isoformat()
        for i in range(_TREND_DAYS)
    ]
    return DashboardTrends(
        questions_trend=[{"date": d, "count": rng.randint(5, 29)} for d in dates],
        executions_trend=[
            {
                "date": d,
                "count": rng.randint(10, 39),
                "success_rate": round(rng.uniform(85.0, 100.0), 1),
            }
            for d in dates
        ],
        appointments_trend=[
            {
                "date": d,
                "requested": rng.randint(2, 9),
                "completed": rng.randint(1, 6),
            }
            for d in dates
        ],
    )


def placeholder_dashboard_metrics(now: datetime | None = None) -> DashboardMetrics:
    """Complete dashboard payload used by mock mode and the last fallback tier."""
    trends = placeholder_trends(now)
    return DashboardMetrics(
        workflow_executions_today=24,
        workflow_executions_week=165,
        workflow_executions_month=650,
        average_execution_duration=1800,
        failed_executions_today=2,
        success_rate=91.3,
        total_questions_today=18,
        total_questions_week=125,
        total_questions_month=485,
        appointments_scheduled_today=5,
        appointments_scheduled_week=32,
        appointments_scheduled_month=125,
        unique_users_today=12,
        unique_users_week=78,
        unique_users_month=195,
        average_response_time=1250,
        appointment_conversion_rate=73.2,
        high_confidence_responses=89.5,
        user_to_appointment_rate=42.8,
        appointment_completion_rate=87.3,
        **trends.model_dump(),
    )


# =============================================================================
# ROWS PER METRIC TYPE
# =============================================================================


def _workflow_executions(rng: random.Random, now: datetime) -> list[dict[str, Any]]:
    rows = []
    for _ in range(150):
        ok = rng.random() > 0.15
        start = _days_back(rng, now, 7)
        duration = rng.randint(500, 5499)
        rows.append(
            {
                "workflow_id": "workflow_assistant_main",
                "workflow_name": "Main n8n Assistant",
                "execution_id": f"exec_{_short_id(rng)}",
                "status": "success" if ok else "failed",
                "duration_ms": duration,
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(milliseconds=duration)).isoformat(),
                "timestamp": start.isoformat(),
                "node_count": rng.randint(5, 19),
                "error_message": None if ok else "External API connection error",
                "created_at": start.isoformat(),
            }
        )
    return rows


def _user_interactions(rng: random.Random, now: datetime) -> list[dict[str, Any]]:
    rows = []
    for _ in range(300):
        question = rng.choice(_QUESTIONS)
        confidence = round(rng.random(), 3)
        requested = confidence > 0.7
        completed = requested and rng.random() > 0.4
        at = _days_back(rng, now, 30).isoformat()
        rows.append(
            {
                "user_id": f"user_{rng.randint(1, 50)}",
                "phone_number": _phone(rng),
                "question": question,
                "response": f"Automatic answer for: {question}",
                "response_time_ms": rng.randint(200, 3199),
                "confidence_score": confidence,
                "intent_detected": (
                    "appointment_booking" if confidence > 0.8 else "general_inquiry"
                ),
                "session_id": f"session_{_short_id(rng)}",
                "interaction_type": "appointment_request" if requested else "question",
                "appointment_requested": requested,
                "appointment_confirmed": completed,
                "appointment_completed": completed,
                "timestamp": at,
                "created_at": at,
            }
        )
    return rows


def _appointments(rng: random.Random, now: datetime) -> list[dict[str, Any]]:
    rows = []
    for _ in range(85):
        status = rng.choices(_APPOINTMENT_STATUSES, weights=_APPOINTMENT_WEIGHTS)[0]
        requested = _days_back(rng, now, 60).isoformat()
        rows.append(
            {
                "appointment_id": f"apt_{_short_id(rng)}",
                "user_id": f"user_{rng.randint(1, 50)}",
                "phone_number": _phone(rng),
                "requested_date": requested,
                "confirmed_date": (
                    _days_back(rng, now, 45).isoformat()
                    if status != "requested"
                    else None
                ),
                "appointment_type": rng.choice(_APPOINTMENT_TYPES),
                "status": status,
                "notes": "Patient reported specific symptoms"
                if rng.random() > 0.7
                else None,
                "timestamp": requested,
                "created_at": requested,
            }
        )
    return rows


def _users(rng: random.Random, now: datetime) -> list[dict[str, Any]]:
    rows = []
    for i in range(50):
        first = _days_back(rng, now, 90).isoformat()
        total = rng.randint(1, 15)
        requested = rng.randint(0, 2)
        completed = int(requested * rng.random())

        status = "new"
        if completed > 0:
            status = "converted"
        elif requested > 0 or total > 5:
            status = "engaged"

        rows.append(
            {
                "user_id": f"user_{i + 1}",
                "phone_number": _phone(rng),
                "first_interaction": first,
                "last_interaction": _days_back(rng, now, 7).isoformat(),
                "total_interactions": total,
                "appointments_requested": requested,
                "appointments_confirmed": completed,
                "appointments_completed": completed,
                "conversion_status": status,
                "timestamp": first,
                "created_at": first,
            }
        )
    return rows


def _frequent_questions(rng: random.Random, now: datetime) -> list[dict[str, Any]]:
    patterns = [
        ("opening_hours", "general_information", 45, 1, [
            "What are your hours?",
            "What time do you open?",
            "Until what time are you open?",
        ]),
        ("book_appointment", "appointments", 38, 1, [
            "How can I book an appointment?",
            "I want an appointment",
            "Is there availability?",
        ]),
        ("services", "general_information", 32, 2, [
            "Which services do you offer?",
            "Which specialties do you have?",
        ]),
        ("location", "general_information", 28, 1, [
            "Where are you located?",
            "How do I get there?",
        ]),
        ("prices", "costs", 25, 3, [
            "How much does it cost?",
            "What are your rates?",
        ]),
    ]
    rows = []
    for i, (pattern, category, count, max_days, samples) in enumerate(patterns, 1):
        asked = _days_back(rng, now, max_days).isoformat()
        rows.append(
            {
                "id": i,
                "question_pattern": pattern,
                "question_category": category,
                "count": count,
                "last_asked": asked,
                "timestamp": asked,
                "sample_questions": samples,
            }
        )
    return rows


_ROW_FACTORIES = {
    "workflow_execution": _workflow_executions,
    "user_interaction": _user_interactions,
    "appointment": _appointments,
    "user": _users,
    "frequent_question": _frequent_questions,
}


def placeholder_rows(
    metric_type: str, limit: int = 100, now: datetime | None = None
) -> list[dict[str, Any]]:
    """Sample rows for a metric type, capped at ``limit``. Unknown type → []."""
    factory = _ROW_FACTORIES.get(metric_type)
    if factory is None:
        return []
    rows = factory(random.Random(_SEED), _now(now))
    return rows[: max(limit, 0)]
