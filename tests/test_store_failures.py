"""
Tests for store failures.

These tests prove:
- A failed primary mutation returns a 500 with a generic message and writes no audit entry
- A failed audit write does not change the outcome of a committed mutation
- Store errors never reach the client verbatim
"""
from contextlib import asynccontextmanager

import pytest

from tasklog.api.routes import RequestHandler
from tasklog.models.audit import AuditLog
from tasklog.models.domain import Task
from tasklog.services.errors import StoreError, StoreFailure
from tasklog.services.store import SqlAlchemyStore
from tasklog.services.task_service import TaskService
from conftest import make_request


class FlakyStore:
    """Wraps a real store and raises StoreError for chosen (operation, table) pairs."""

    def __init__(self, inner, failures):
        self.inner = inner
        self.failures = failures
        self.calls = []

    async def _call(self, operation, table, *args, **kwargs):
        self.calls.append((operation, table))
        if (operation, table) in self.failures:
            raise StoreError(f"{operation} on {table.__tablename__} exploded")
        return await getattr(self.inner, operation)(table, *args, **kwargs)

    async def query(self, table, **kwargs):
        return await self._call("query", table, **kwargs)

    async def get(self, table, record_id):
        return await self._call("get", table, record_id)

    async def insert(self, table, record):
        return await self._call("insert", table, record)

    async def update(self, table, record_id, changes):
        return await self._call("update", table, record_id, changes)

    async def delete(self, table, record_id):
        return await self._call("delete", table, record_id)


@pytest.fixture
def flaky_handler(verifier, session_factory):
    """Handler whose store fails on whatever pairs the test puts in ``failures``."""
    failures = set()

    @asynccontextmanager
    async def open_store():
        async with session_factory() as session:
            yield FlakyStore(SqlAlchemyStore(session), failures)

    handler = RequestHandler(verifier, open_store, cors_allowed_origins=["*"])
    return handler, failures


async def count_logs(store):
    _, total = await store.query(AuditLog, order_by="timestamp", offset=0, limit=1)
    return total


class TestPrimaryMutationFailures:
    """Store failures on the task itself abort before the audit write."""

    async def test_insert_failure(self, store):
        service = TaskService(FlakyStore(store, {("insert", Task)}))

        with pytest.raises(StoreFailure) as exc_info:
            await service.create_task({"title": "t", "description": "d"})

        assert exc_info.value.message == "Failed to create task"
        assert await count_logs(store) == 0

    async def test_update_failure(self, service, store, sample_task):
        flaky = FlakyStore(store, {("update", Task)})

        with pytest.raises(StoreFailure) as exc_info:
            await TaskService(flaky).update_task(sample_task.id, {"title": "Changed"})

        assert exc_info.value.message == "Failed to update task"
        assert await count_logs(store) == 1

    async def test_delete_failure(self, store, sample_task):
        flaky = FlakyStore(store, {("delete", Task)})

        with pytest.raises(StoreFailure) as exc_info:
            await TaskService(flaky).delete_task(sample_task.id)

        assert exc_info.value.message == "Failed to delete task"
        assert await count_logs(store) == 1

    async def test_lookup_failure_before_update(self, store, sample_task):
        flaky = FlakyStore(store, {("get", Task)})

        with pytest.raises(StoreFailure) as exc_info:
            await TaskService(flaky).update_task(sample_task.id, {"title": "Changed"})

        assert exc_info.value.message == "Failed to fetch task"
        assert ("update", Task) not in flaky.calls

    async def test_no_op_update_never_writes(self, store, sample_task):
        flaky = FlakyStore(store, set())

        await TaskService(flaky).update_task(sample_task.id, {"title": sample_task.title})

        assert [operation for operation, _ in flaky.calls] == ["get"]


class TestAuditWriteFailures:
    """Audit writes are best-effort once the mutation has committed."""

    async def test_create_succeeds_when_audit_write_fails(self, store):
        service = TaskService(FlakyStore(store, {("insert", AuditLog)}))

        task = await service.create_task({"title": "Kept", "description": "Anyway"})

        assert task.id > 0
        rows, total = await store.query(Task, order_by="created_at", offset=0, limit=10)
        assert total == 1
        assert await count_logs(store) == 0

    async def test_delete_succeeds_when_audit_write_fails(self, store, sample_task):
        service = TaskService(FlakyStore(store, {("insert", AuditLog)}))

        await service.delete_task(sample_task.id)

        assert await store.get(Task, sample_task.id) is None


class TestErrorResponses:
    """Store failures surface as generic 500 responses."""

    @pytest.mark.parametrize("failure, method, path, message", [
        (("query", Task), "GET", "/tasks", "Failed to fetch tasks"),
        (("insert", Task), "POST", "/tasks", "Failed to create task"),
        (("delete", Task), "DELETE", "/tasks/1", "Failed to delete task"),
        (("query", AuditLog), "GET", "/logs", "Failed to fetch logs"),
    ])
    async def test_store_failure_response(self, flaky_handler, failure, method, path, message):
        handler, failures = flaky_handler
        failures.add(failure)

        response = await handler(make_request(method, path, {"title": "t", "description": "d"}))

        assert response.status_code == 500
        assert response.body == {"error": message}
        assert "exploded" not in str(response.body)

    async def test_update_failure_response(self, flaky_handler):
        handler, failures = flaky_handler
        created = await handler(make_request("POST", "/tasks", {"title": "t", "description": "d"}))
        failures.add(("update", Task))

        response = await handler(make_request("PUT", f"/tasks/{created.body['id']}", {"title": "x"}))

        assert response.status_code == 500
        assert response.body == {"error": "Failed to update task"}

        failures.clear()
        logs = await handler(make_request("GET", "/logs"))
        assert [entry["action"] for entry in logs.body["logs"]] == ["Create Task"]
