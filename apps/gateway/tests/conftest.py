"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient + 可控时钟"""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from dispatchboard.core.models import Role
from dispatchboard.core.store import StoreGroup, create_store_group
from dispatchboard.gateway.services.sse_hub import SSEHub
from httpx import ASGITransport, AsyncClient

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    yield group
    await group.conn.close()


@pytest.fixture
def sse_hub() -> SSEHub:
    return SSEHub(queue_maxsize=10)


@pytest_asyncio.fixture
async def app(store_group: StoreGroup, sse_hub: SSEHub, clock: FakeClock, tmp_path: Path):
    """创建测试用 FastAPI app 实例（绕过 lifespan，手动注入依赖）"""
    os.environ["DISPATCHBOARD_DB_PATH"] = str(tmp_path / "sqlite" / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from dispatchboard.gateway.main import create_app

    application = create_app()
    application.state.store_group = store_group
    application.state.sse_hub = sse_hub
    application.state.clock = clock
    yield application

    for key in ["DISPATCHBOARD_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def as_actor() -> Callable[..., dict[str, str]]:
    """构造身份请求头"""

    def _headers(role: Role = Role.OFFICE, actor_id: str | None = None) -> dict[str, str]:
        return {
            "X-Actor-Id": actor_id or f"{role.value}-1",
            "X-Actor-Role": role.value,
        }

    return _headers


@pytest.fixture
def new_task_body() -> Callable[..., dict]:
    def _body(**overrides) -> dict:
        body = {
            "signature": "jd",
            "description": "2 pallets of 500ml",
            "urgency": "15min",
            "category": "pallets",
        }
        body.update(overrides)
        return body

    return _body
