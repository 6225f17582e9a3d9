"""Pytest configuration and shared fixtures."""
import base64
import json
import os

# Test config must be in place before tasklog modules are imported
os.environ.setdefault("TASKLOG_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TASKLOG_ADMIN_PASSWORD", "test-password")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tasklog.api.http import ApiRequest
from tasklog.api.routes import RequestHandler
from tasklog.database import Base
from tasklog.models.audit import AuditLog  # noqa: F401
from tasklog.models.domain import Task  # noqa: F401
from tasklog.services.auth import BasicAuthVerifier
from tasklog.services.store import SqlAlchemyStore, sqlalchemy_store_factory
from tasklog.services.task_service import TaskService

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "password123"


def basic_auth(username: str = ADMIN_USERNAME, password: str = ADMIN_PASSWORD) -> dict:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def make_request(method, path, body=None, query=None, headers=None, auth=True) -> ApiRequest:
    """Build an ApiRequest; dict bodies are JSON-encoded."""
    all_headers = dict(basic_auth()) if auth else {}
    all_headers.update(headers or {})
    if body is None:
        raw = b""
    elif isinstance(body, bytes):
        raw = body
    else:
        raw = json.dumps(body).encode()
    return ApiRequest(method=method, path=path, query=query or {}, headers=all_headers, body=raw)


@pytest.fixture
async def session_factory():
    """Fresh in-memory database for each test."""
    # StaticPool keeps every session on the one in-memory connection
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def store(session_factory):
    async with session_factory() as session:
        yield SqlAlchemyStore(session)


@pytest.fixture
def service(store):
    return TaskService(store)


@pytest.fixture
def verifier():
    return BasicAuthVerifier(ADMIN_USERNAME, ADMIN_PASSWORD)


@pytest.fixture
def handler(verifier, session_factory):
    return RequestHandler(
        verifier,
        sqlalchemy_store_factory(session_factory),
        default_page_limit=5,
        max_page_limit=100,
        cors_allowed_origins=["*"],
    )


@pytest.fixture
async def sample_task(service):
    """Create a basic task."""
    return await service.create_task({
        "title": "Write report",
        "description": "Quarterly numbers for the board",
    })
