"""集成测试共享 fixture"""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from dispatchboard.core.models import Role
from dispatchboard.core.store import create_store_group
from dispatchboard.gateway.services.sse_hub import SSEHub
from httpx import ASGITransport, AsyncClient


class ScenarioClock:
    """场景时钟，从 T0 开始手动推进"""

    def __init__(self) -> None:
        self.t0 = datetime(2026, 5, 11, 7, 30, tzinfo=UTC)
        self.now = self.t0

    def __call__(self) -> datetime:
        return self.now

    def at(self, **offset) -> datetime:
        self.now = self.t0 + timedelta(**offset)
        return self.now


@pytest.fixture
def scenario_clock() -> ScenarioClock:
    return ScenarioClock()


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, scenario_clock: ScenarioClock):
    """集成测试用 FastAPI app"""
    os.environ["DISPATCHBOARD_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from dispatchboard.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(str(tmp_path / "test.db"))
    app.state.store_group = store_group
    app.state.sse_hub = SSEHub()
    app.state.clock = scenario_clock

    yield app

    await store_group.conn.close()
    os.environ.pop("DISPATCHBOARD_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def headers():
    def _headers(role: Role, actor_id: str | None = None) -> dict[str, str]:
        return {"X-Actor-Id": actor_id or f"{role.value}-1", "X-Actor-Role": role.value}

    return _headers
