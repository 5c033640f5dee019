"""写事务封装

同一 aiosqlite 连接上的写事务通过连接级锁串行化：共享连接时，
一个协程的 rollback 不得回滚另一个协程尚未提交的写入。
这只是共享连接的性质，任务级的并发控制仍由条件更新保证。

事务体内抛出的任何异常都会回滚；SQLite 错误转换为 TransientStoreError。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite
import structlog

from ..exceptions import TransientStoreError

log = structlog.get_logger()


@asynccontextmanager
async def write_transaction(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
) -> AsyncIterator[aiosqlite.Connection]:
    """在连接级锁内执行一个写事务，正常退出时提交

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        lock: 该连接的写锁

    Raises:
        TransientStoreError: 写入或提交时 SQLite 报错（事务已回滚）
    """
    async with lock:
        try:
            yield conn
            await conn.commit()
        except aiosqlite.Error as e:
            await conn.rollback()
            log.warning("store_transaction_failed", error_type=type(e).__name__)
            raise TransientStoreError(f"storage failure: {type(e).__name__}") from e
        except BaseException:
            await conn.rollback()
            raise
