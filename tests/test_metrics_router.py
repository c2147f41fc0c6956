"""
Tests for the metrics API endpoints.

Covers: POST insert/upsert/generic routing and validation, GET filtering,
mock mode and dashboard fallback, PUT failed-workflow reports, error
envelopes.
"""

from __future__ import annotations

import copy
from typing import Any, Callable
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from assistant_metrics.main import app
from assistant_metrics.models.dashboard import DashboardMetrics

# =============================================================================
# IN-MEMORY SUPABASE
# =============================================================================


class _FakeResult:
    def __init__(self, data: list[dict[str, Any]]) -> None:
        self.data = data


class _FakeQuery:
    """Subset of the PostgREST builder used by the app."""

    def __init__(self, db: "_FakeSupabase", table: str) -> None:
        self.db = db
        self.table = table
        self.op = "select"
        self.rows: list[dict[str, Any]] = []
        self.on_conflict: str | None = None
        self.filters: list[Callable[[dict[str, Any]], bool]] = []
        self.orders: list[tuple[str, bool]] = []
        self.max_rows: int | None = None

    def select(self, columns: str = "*", **kwargs: Any) -> "_FakeQuery":
        self.op = "select"
        return self

    def insert(self, rows: list[dict[str, Any]]) -> "_FakeQuery":
        self.op, self.rows = "insert", rows
        return self

    def upsert(self, rows: list[dict[str, Any]], on_conflict: str = "") -> "_FakeQuery":
        self.op, self.rows, self.on_conflict = "upsert", rows, on_conflict
        return self

    def eq(self, column: str, value: Any) -> "_FakeQuery":
        self.filters.append(lambda r: r.get(column) == value)
        return self

    def gte(self, column: str, value: Any) -> "_FakeQuery":
        self.filters.append(lambda r: r.get(column) is not None and r[column] >= value)
        return self

    def lte(self, column: str, value: Any) -> "_FakeQuery":
        self.filters.append(lambda r: r.get(column) is not None and r[column] <= value)
        return self

    def order(self, column: str, desc: bool = False) -> "_FakeQuery":
        self.orders.append((column, desc))
        return self

    def limit(self, n: int) -> "_FakeQuery":
        self.max_rows = n
        return self

    async def execute(self) -> _FakeResult:
        if self.db.down:
            raise RuntimeError("connection refused")
        self.db.executed.append(self)
        table = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            stored = [copy.deepcopy(r) for r in self.rows]
            table.extend(stored)
            return _FakeResult(stored)

        if self.op == "upsert":
            stored = []
            for row in self.rows:
                key = row[self.on_conflict]
                existing = next((r for r in table if r.get(self.on_conflict) == key), None)
                if existing is None:
                    existing = {}
                    table.append(existing)
                existing.update(copy.deepcopy(row))
                stored.append(existing)
            return _FakeResult(stored)

        rows = [r for r in table if all(f(r) for f in self.filters)]
        for column, desc in reversed(self.orders):
            rows.sort(key=lambda r: (r.get(column) is not None, r.get(column)), reverse=desc)
        if self.max_rows is not None:
            rows = rows[: self.max_rows]
        return _FakeResult(rows)


class _FakeRpc:
    async def execute(self) -> _FakeResult:
        raise RuntimeError("function get_dashboard_metrics does not exist")


class _FakeSupabase:
    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.executed: list[_FakeQuery] = []
        self.down = False

    def table(self, name: str) -> _FakeQuery:
        return _FakeQuery(self, name)

    def rpc(self, name: str, params: dict[str, Any]) -> _FakeRpc:
        return _FakeRpc()


@pytest.fixture
def db():
    fake = _FakeSupabase()
    with (
        patch(
            "assistant_metrics.routers.metrics.get_supabase_client",
            new_callable=AsyncMock,
            return_value=fake,
        ),
        patch(
            "assistant_metrics.services.dashboard.fallback.get_supabase_client",
            new_callable=AsyncMock,
            return_value=fake,
        ),
    ):
        yield fake


client = TestClient(app)


def _run(**overrides: Any) -> dict[str, Any]:
    row = {
        "workflow_id": "wf_main",
        "execution_id": "exec_1",
        "status": "success",
        "duration_ms": 1500,
        "node_count": 8,
    }
    row.update(overrides)
    return row


# ===========================================================================
# POST /api/metrics
# ===========================================================================


class TestCreateMetric:
    def test_missing_type_is_400(self, db: _FakeSupabase) -> None:
        resp = client.post("/api/metrics", json={"data": {"a": 1}})

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert "type" in body["error"]
        assert db.executed == []

    def test_missing_data_is_400(self, db: _FakeSupabase) -> None:
        resp = client.post("/api/metrics", json={"type": "workflow_execution"})
        assert resp.status_code == 400

    def test_malformed_json_is_400(self, db: _FakeSupabase) -> None:
        resp = client.post(
            "/api/metrics",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_workflow_execution_inserted(self, db: _FakeSupabase) -> None:
        resp = client.post(
            "/api/metrics", json={"type": "workflow_execution", "data": _run()}
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["count"] == 1
        stored = db.tables["workflow_executions"]
        assert len(stored) == 1
        assert stored[0]["execution_id"] == "exec_1"
        assert stored[0]["timestamp"] == stored[0]["created_at"]

    def test_explicit_timestamp_used(self, db: _FakeSupabase) -> None:
        client.post(
            "/api/metrics",
            json={
                "type": "user_interaction",
                "data": {"user_id": "u1", "question": "Hours?"},
                "timestamp": "2026-01-02T03:04:05+00:00",
            },
        )

        row = db.tables["user_interactions"][0]
        assert row["timestamp"] == "2026-01-02T03:04:05+00:00"
        assert row["question"] == "Hours?"

    def test_invalid_record_is_400(self, db: _FakeSupabase) -> None:
        resp = client.post(
            "/api/metrics",
            json={"type": "workflow_execution", "data": _run(status="exploded")},
        )

        assert resp.status_code == 400
        assert "status" in resp.json()["error"]
        assert "workflow_executions" not in db.tables

    def test_extra_columns_pass_through(self, db: _FakeSupabase) -> None:
        client.post(
            "/api/metrics",
            json={"type": "appointment", "data": {"user_id": "u1", "clinic": "north"}},
        )
        assert db.tables["appointments"][0]["clinic"] == "north"

    def test_user_update_upserts_by_user_id(self, db: _FakeSupabase) -> None:
        first = {"type": "user_update", "data": {"user_id": "u1", "total_interactions": 3}}
        second = {
            "type": "user_update",
            "data": {"user_id": "u1", "conversion_status": "engaged"},
        }

        assert client.post("/api/metrics", json=first).status_code == 201
        assert client.post("/api/metrics", json=second).status_code == 201

        users = db.tables["users"]
        assert len(users) == 1
        assert users[0]["conversion_status"] == "engaged"
        # Counters not sent on the second update are left alone
        assert users[0]["total_interactions"] == 3
        assert all(q.on_conflict == "user_id" for q in db.executed)

    def test_frequent_question_upserts_by_pattern(self, db: _FakeSupabase) -> None:
        payload = {
            "type": "frequent_question",
            "data": {"question_pattern": "opening_hours", "count": 4},
        }
        client.post("/api/metrics", json=payload)
        payload["data"]["count"] = 5
        client.post("/api/metrics", json=payload)

        rows = db.tables["frequent_questions"]
        assert len(rows) == 1
        assert rows[0]["count"] == 5
        assert "updated_at" in rows[0]
        assert "created_at" not in rows[0]

    def test_unknown_type_goes_to_generic_table(self, db: _FakeSupabase) -> None:
        resp = client.post(
            "/api/metrics", json={"type": "custom_event", "data": {"clicks": 2}}
        )

        assert resp.status_code == 201
        row = db.tables["metrics"][0]
        assert row["type"] == "custom_event"
        assert row["data"] == {"clicks": 2}

    def test_store_error_is_generic_500(self, db: _FakeSupabase) -> None:
        db.down = True

        resp = client.post(
            "/api/metrics", json={"type": "workflow_execution", "data": _run()}
        )

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Internal server error"}


# ===========================================================================
# GET /api/metrics
# ===========================================================================


class TestQueryMetrics:
    def _seed_runs(self, db: _FakeSupabase) -> None:
        db.tables["workflow_executions"] = [
            _run(execution_id="a", status="success", timestamp="2026-03-01T00:00:00+00:00"),
            _run(execution_id="b", status="failed", timestamp="2026-03-02T00:00:00+00:00"),
            _run(execution_id="c", status="failed", timestamp="2026-03-03T00:00:00+00:00"),
            _run(
                execution_id="d",
                workflow_id="wf_other",
                status="failed",
                timestamp="2026-03-04T00:00:00+00:00",
            ),
        ]

    def test_filters_and_orders_descending(self, db: _FakeSupabase) -> None:
        self._seed_runs(db)

        resp = client.get(
            "/api/metrics",
            params={"type": "workflow_execution", "status": "failed", "workflowId": "wf_main"},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert [r["execution_id"] for r in body["data"]] == ["c", "b"]
        assert body["count"] == 2

    def test_date_range_and_limit(self, db: _FakeSupabase) -> None:
        self._seed_runs(db)

        resp = client.get(
            "/api/metrics",
            params={
                "type": "workflow_execution",
                "startDate": "2026-03-02T00:00:00+00:00",
                "endDate": "2026-03-04T00:00:00+00:00",
                "limit": 2,
            },
        )

        assert [r["execution_id"] for r in resp.json()["data"]] == ["d", "c"]

    def test_user_filter_on_interactions(self, db: _FakeSupabase) -> None:
        db.tables["user_interactions"] = [
            {"user_id": "u1", "timestamp": "2026-03-01"},
            {"user_id": "u2", "timestamp": "2026-03-02"},
        ]

        resp = client.get("/api/metrics", params={"type": "user_interaction", "userId": "u2"})

        assert [r["user_id"] for r in resp.json()["data"]] == ["u2"]

    def test_unknown_type_reads_generic_table(self, db: _FakeSupabase) -> None:
        db.tables["metrics"] = [
            {"type": "custom_event", "data": {}, "timestamp": "2026-03-01"},
            {"type": "other", "data": {}, "timestamp": "2026-03-02"},
        ]

        resp = client.get("/api/metrics", params={"type": "custom_event"})

        assert [r["type"] for r in resp.json()["data"]] == ["custom_event"]

    def test_invalid_limit_is_400(self, db: _FakeSupabase) -> None:
        resp = client.get("/api/metrics", params={"type": "user", "limit": "many"})
        assert resp.status_code == 400

    def test_store_error_is_500(self, db: _FakeSupabase) -> None:
        db.down = True

        resp = client.get("/api/metrics", params={"type": "appointment"})

        assert resp.status_code == 500
        assert resp.json()["error"] == "Internal server error"


class TestMockMode:
    def test_mock_dashboard(self, db: _FakeSupabase) -> None:
        resp = client.get("/api/metrics", params={"type": "dashboard", "mock": "true"})

        assert resp.status_code == 200
        assert set(resp.json()["data"]) == set(DashboardMetrics.model_fields)
        assert db.executed == []

    def test_mock_rows_respect_limit(self, db: _FakeSupabase) -> None:
        resp = client.get(
            "/api/metrics",
            params={"type": "workflow_execution", "mock": "true", "limit": 5},
        )

        body = resp.json()
        assert body["count"] == 5
        assert len(body["data"]) == 5
        assert db.executed == []

    def test_mock_unknown_type_is_empty(self, db: _FakeSupabase) -> None:
        resp = client.get("/api/metrics", params={"type": "nope", "mock": "true"})
        assert resp.json()["data"] == []

    @pytest.mark.parametrize("value", ["1", "yes", "on", "TRUE", "banana", ""])
    def test_only_literal_true_enables_mock(self, db: _FakeSupabase, value: str) -> None:
        db.tables["workflow_executions"] = [_run(timestamp="2026-03-01T00:00:00+00:00")]

        resp = client.get(
            "/api/metrics", params={"type": "workflow_execution", "mock": value}
        )

        assert resp.status_code == 200
        assert resp.json()["count"] == 1
        assert len(db.executed) == 1


class TestDashboard:
    def test_store_down_still_returns_full_payload(self, db: _FakeSupabase) -> None:
        db.down = True

        resp = client.get("/api/metrics", params={"type": "dashboard"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert set(body["data"]) == set(DashboardMetrics.model_fields)

    def test_manual_aggregation_over_ingested_rows(self, db: _FakeSupabase) -> None:
        for i in range(10):
            status = "success" if i < 8 else "failed"
            client.post(
                "/api/metrics",
                json={
                    "type": "workflow_execution",
                    "data": _run(execution_id=f"e{i}", status=status, duration_ms=1000),
                },
            )

        resp = client.get("/api/metrics", params={"type": "dashboard"})

        data = resp.json()["data"]
        assert data["workflow_executions_today"] == 10
        assert data["failed_executions_today"] == 2
        assert data["success_rate"] == 80.0
        assert data["average_execution_duration"] == 1000
        assert data["unique_users_today"] == 0
        assert data["average_response_time"] == 0


# ===========================================================================
# PUT /api/metrics
# ===========================================================================


class TestReportFailedWorkflow:
    def test_missing_error_message_is_400(self, db: _FakeSupabase) -> None:
        resp = client.put(
            "/api/metrics", json={"workflow_id": "wf_main", "execution_id": "exec_9"}
        )

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert "error_message" in body["error"]
        assert db.executed == []

    def test_records_failed_status(self, db: _FakeSupabase) -> None:
        resp = client.put(
            "/api/metrics",
            json={
                "workflow_id": "wf_main",
                "workflow_name": "Main",
                "execution_id": "exec_9",
                "error_message": "Timeout calling calendar API",
                "duration_ms": 3000,
            },
        )

        assert resp.status_code == 201
        row = db.tables["workflow_executions"][0]
        assert row["status"] == "failed"
        assert row["error_message"] == "Timeout calling calendar API"
        assert row["duration_ms"] == 3000
        assert row["node_count"] == 0
        assert row["workflow_name"] == "Main"

    def test_store_error_is_500(self, db: _FakeSupabase) -> None:
        db.down = True

        resp = client.put(
            "/api/metrics",
            json={"workflow_id": "w", "execution_id": "e", "error_message": "x"},
        )

        assert resp.status_code == 500
