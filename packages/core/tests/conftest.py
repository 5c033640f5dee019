"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from dispatchboard.core.models import Category, Task, TaskState, Urgency
from dispatchboard.core.rules import compute_deadline
from dispatchboard.core.store import StoreGroup, create_store_group
from ulid import ULID

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def core_db(core_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """核心层已初始化数据库连接"""
    from dispatchboard.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(core_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def store_group(core_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """共享连接与写锁的 Store 实例组"""
    group = await create_store_group(str(core_db_path))
    yield group
    await group.conn.close()


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """构造 Task，默认 requested / now / product，创建于 T0"""

    def _make(
        state: TaskState = TaskState.REQUESTED,
        urgency: Urgency = Urgency.NOW,
        created_at: datetime = T0,
        **overrides,
    ) -> Task:
        fields = {
            "task_id": str(ULID()),
            "created_by": "office-1",
            "signature": "J.D",
            "category": Category.PRODUCT,
            "description": "2 pallets of 500ml",
            "urgency": urgency,
            "state": state,
            "state_changed_at": created_at,
            "created_at": created_at,
            "deadline": compute_deadline(created_at, urgency),
        }
        fields.update(overrides)
        return Task(**fields)

    return _make
