"""SQLite 数据库初始化

PRAGMA 配置 + 两张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# tasks 表 DDL -- 活跃任务
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id           TEXT PRIMARY KEY,
    created_by        TEXT NOT NULL,
    signature         TEXT NOT NULL,
    category          TEXT NOT NULL,
    description       TEXT NOT NULL,
    urgency           TEXT NOT NULL,
    assigned_to       TEXT,
    state             TEXT NOT NULL DEFAULT 'requested',
    state_changed_at  TEXT NOT NULL,
    created_at        TEXT NOT NULL,
    deadline          TEXT NOT NULL,
    rejection_reason  TEXT,
    rejection_expires TEXT,

    CHECK ((state = 'rejected') = (rejection_reason IS NOT NULL)),
    CHECK ((state = 'rejected') = (rejection_expires IS NOT NULL))
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_state ON tasks(state);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_deadline ON tasks(deadline);",
    # 定时清理按驳回过期时间扫描
    (
        "CREATE INDEX IF NOT EXISTS idx_tasks_rejection_expires "
        "ON tasks(rejection_expires) WHERE rejection_expires IS NOT NULL;"
    ),
]

# task_history 表 DDL -- 追加写入的归档快照
_HISTORY_DDL = """
CREATE TABLE IF NOT EXISTS task_history (
    record_id         TEXT PRIMARY KEY,
    original_task_id  TEXT NOT NULL,
    task_snapshot     TEXT NOT NULL,
    completed_at      TEXT NOT NULL,
    delete_after      TEXT NOT NULL
);
"""

_HISTORY_INDEXES = [
    # 同一任务只能归档一次（快照写入按原任务 ID 幂等）
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_history_original_task_id "
        "ON task_history(original_task_id);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_history_delete_after ON task_history(delete_after);",
    "CREATE INDEX IF NOT EXISTS idx_history_completed_at ON task_history(completed_at DESC);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_TASKS_DDL)
    await conn.execute(_HISTORY_DDL)

    # 创建索引
    for idx_sql in _TASKS_INDEXES + _HISTORY_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
