"""HistoryStore SQLite 实现

task_history 表 append-only：快照写入后不再更新，只会被定时清理按 delete_after 删除。
快照写入以 original_task_id 幂等，重试不会产生重复记录。
"""

from datetime import datetime

import aiosqlite

from ..clock import from_db_ts, to_db_ts
from ..models.task import Task, TaskHistoryRecord


class SqliteHistoryStore:
    """HistoryStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_snapshot(self, record: TaskHistoryRecord) -> bool:
        """按 original_task_id 幂等写入快照

        注意：此方法不自动提交事务，需由调用方管理事务。

        Returns:
            True 如果新写入，False 如果该任务已有快照（保留已有快照）
        """
        cursor = await self._conn.execute(
            """
            INSERT INTO task_history (record_id, original_task_id, task_snapshot,
                                      completed_at, delete_after)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(original_task_id) DO NOTHING
            """,
            (
                record.record_id,
                record.original_task_id,
                record.task_snapshot.model_dump_json(),
                to_db_ts(record.completed_at),
                to_db_ts(record.delete_after),
            ),
        )
        return cursor.rowcount == 1

    async def get_by_task_id(self, original_task_id: str) -> TaskHistoryRecord | None:
        """根据原任务 ID 查询快照"""
        cursor = await self._conn.execute(
            "SELECT * FROM task_history WHERE original_task_id = ?",
            (original_task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    async def list_history(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[TaskHistoryRecord]:
        """查询归档，可按 completed_at 的半开区间 [start, end) 筛选，按完成时间倒序"""
        clauses = []
        params: list[str] = []
        if start is not None:
            clauses.append("completed_at >= ?")
            params.append(to_db_ts(start))
        if end is not None:
            clauses.append("completed_at < ?")
            params.append(to_db_ts(end))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT * FROM task_history {where} ORDER BY completed_at DESC",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(row) for row in rows]

    async def delete_expired(self, now: datetime) -> int:
        """删除 delete_after 已过的归档，返回删除数量"""
        cursor = await self._conn.execute(
            "DELETE FROM task_history WHERE delete_after < ?",
            (to_db_ts(now),),
        )
        return cursor.rowcount

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> TaskHistoryRecord:
        """将数据库行转换为 TaskHistoryRecord 模型"""
        return TaskHistoryRecord(
            record_id=row[0],
            original_task_id=row[1],
            task_snapshot=Task.model_validate_json(row[2]),
            completed_at=from_db_ts(row[3]),
            delete_after=from_db_ts(row[4]),
        )
