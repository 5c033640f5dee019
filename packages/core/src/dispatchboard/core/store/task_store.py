"""TaskStore SQLite 实现

tasks 表是活跃任务的唯一事实来源。状态字段的写入只通过条件更新
（compare-and-update）完成，由 TransitionAuthority 调用。
注意：此处方法均不自动提交事务，需由调用方管理事务。
"""

from datetime import datetime
from enum import Enum
from typing import Any

import aiosqlite

from ..clock import from_db_ts, to_db_ts
from ..models.enums import TaskState
from ..models.task import Task

_COLUMNS = (
    "task_id, created_by, signature, category, description, urgency, assigned_to, "
    "state, state_changed_at, created_at, deadline, rejection_reason, rejection_expires"
)

# 允许通过条件更新写入的字段
_UPDATABLE_FIELDS = frozenset(
    {
        "assigned_to",
        "state",
        "state_changed_at",
        "rejection_reason",
        "rejection_expires",
    }
)


def _to_db_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_db_ts(value)
    if isinstance(value, Enum):
        return value.value
    return value


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        await self._conn.execute(
            f"""
            INSERT INTO tasks ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.task_id,
                task.created_by,
                task.signature,
                task.category.value,
                task.description,
                task.urgency.value,
                task.assigned_to,
                task.state.value,
                to_db_ts(task.state_changed_at),
                to_db_ts(task.created_at),
                to_db_ts(task.deadline),
                task.rejection_reason,
                to_db_ts(task.rejection_expires) if task.rejection_expires else None,
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(self) -> list[Task]:
        """查询全部行（含已软过期的驳回任务），按 created_at 正序"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks ORDER BY created_at ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_active_tasks(self, now: datetime) -> list[Task]:
        """查询活跃任务：排除 completed 与 rejection_expires 已过的驳回任务

        排序由调用方通过 projection.sort_tasks 统一完成。
        """
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM tasks
            WHERE state != ?
              AND NOT (state = ? AND rejection_expires < ?)
            """,
            (TaskState.COMPLETED.value, TaskState.REJECTED.value, to_db_ts(now)),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def update_task_if_state(
        self,
        task_id: str,
        expected_state: TaskState | None,
        fields: dict[str, Any],
        claim_for: str | None = None,
    ) -> bool:
        """条件更新：仅当存储中的 state 仍等于 expected_state 时写入

        Args:
            task_id: 任务 ID
            expected_state: 调用方观察到的状态；None 表示无条件更新
            fields: 要写入的字段
            claim_for: 若 assigned_to 为空则设置为该值

        Returns:
            True 如果恰好更新了一行
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"fields not updatable: {sorted(unknown)}")

        assignments = [f"{name} = ?" for name in fields]
        params: list[Any] = [_to_db_value(v) for v in fields.values()]
        if claim_for is not None:
            assignments.append("assigned_to = COALESCE(assigned_to, ?)")
            params.append(claim_for)

        sql = f"UPDATE tasks SET {', '.join(assignments)} WHERE task_id = ?"
        params.append(task_id)
        if expected_state is not None:
            sql += " AND state = ?"
            params.append(expected_state.value)

        cursor = await self._conn.execute(sql, params)
        return cursor.rowcount == 1

    async def delete_task_if_state(self, task_id: str, expected_state: TaskState) -> bool:
        """条件删除：仅当 state 仍等于 expected_state 时删除"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ? AND state = ?",
            (task_id, expected_state.value),
        )
        return cursor.rowcount == 1

    async def delete_expired_rejections(self, now: datetime) -> list[str]:
        """硬过期：删除 rejection_expires 已过的驳回任务，返回被删除的 task_id"""
        params = (TaskState.REJECTED.value, to_db_ts(now))
        cursor = await self._conn.execute(
            "SELECT task_id FROM tasks WHERE state = ? AND rejection_expires < ?",
            params,
        )
        task_ids = [row[0] for row in await cursor.fetchall()]
        if task_ids:
            await self._conn.execute(
                "DELETE FROM tasks WHERE state = ? AND rejection_expires < ?",
                params,
            )
        return task_ids

    async def delete_archived_leftovers(self) -> list[str]:
        """删除已有归档快照但仍残留的活跃行，返回被删除的 task_id"""
        cursor = await self._conn.execute(
            """
            SELECT task_id FROM tasks
            WHERE task_id IN (SELECT original_task_id FROM task_history)
            """
        )
        task_ids = [row[0] for row in await cursor.fetchall()]
        if task_ids:
            await self._conn.execute(
                """
                DELETE FROM tasks
                WHERE task_id IN (SELECT original_task_id FROM task_history)
                """
            )
        return task_ids

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            task_id=row[0],
            created_by=row[1],
            signature=row[2],
            category=row[3],
            description=row[4],
            urgency=row[5],
            assigned_to=row[6],
            state=row[7],
            state_changed_at=from_db_ts(row[8]),
            created_at=from_db_ts(row[9]),
            deadline=from_db_ts(row[10]),
            rejection_reason=row[11],
            rejection_expires=from_db_ts(row[12]) if row[12] else None,
        )
