"""ArchivalEngine -- 完成归档与定时清理

完成：在同一事务内重新读取活跃行，按原任务 ID 幂等写入其快照，再条件删除活跃行（state 仍为 in_progress）。
删除未命中时整个事务回滚并返回 Conflict，因此任务 ID 始终只存在于
tasks 或 task_history 其中之一。提交后发布一条 deleted 事件。

清理：见 dispatchboard.core.sweep；被移出 tasks 表的任务各发布一条 deleted 事件。
"""

import asyncio
from datetime import datetime

import structlog
from dispatchboard.core.clock import Clock, utc_now
from dispatchboard.core.exceptions import (
    DispatchError,
    TaskNotFoundError,
    TaskStateConflictError,
)
from dispatchboard.core.models import EventAction, SweepReport, TaskHistoryRecord, TaskState
from dispatchboard.core.rules import history_delete_after
from dispatchboard.core.store import StoreGroup
from dispatchboard.core.store.protocols import MessagePurger
from dispatchboard.core.sweep import sweep_expired
from ulid import ULID

from .sse_hub import SSEHub, build_event

log = structlog.get_logger()


class ArchivalEngine:
    """完成归档与保留期回收"""

    def __init__(
        self,
        store_group: StoreGroup,
        sse_hub: SSEHub | None = None,
        purger: MessagePurger | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._stores = store_group
        self._sse_hub = sse_hub
        self._purger = purger
        self._clock = clock

    async def archive_completed(self, task_id: str, completed_at: datetime) -> TaskHistoryRecord:
        """归档一个 in_progress 任务

        快照取自写锁内重新读取的活跃行，并发提交的指派等修改都会包含在内。

        Args:
            task_id: 任务 ID
            completed_at: 完成时间

        Returns:
            写入（或已存在）的归档记录

        Raises:
            TaskNotFoundError: 活跃行已不存在
            TaskStateConflictError: 活跃行已不在 in_progress（事务已回滚）
        """
        async with self._stores.transaction():
            task = await self._stores.task_store.get_task(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            if task.state != TaskState.IN_PROGRESS:
                raise TaskStateConflictError(
                    task_id, TaskState.IN_PROGRESS.value, task.state.value
                )

            record = TaskHistoryRecord(
                record_id=str(ULID()),
                original_task_id=task_id,
                task_snapshot=task,
                completed_at=completed_at,
                delete_after=history_delete_after(completed_at),
            )
            inserted = await self._stores.history_store.upsert_snapshot(record)
            if not inserted:
                # 重试：保留最早的快照
                record = await self._stores.history_store.get_by_task_id(task_id)
            removed = await self._stores.task_store.delete_task_if_state(
                task_id, TaskState.IN_PROGRESS
            )
            if not removed:
                raise TaskStateConflictError(task_id, TaskState.IN_PROGRESS.value)
        self._publish_deleted(task_id, completed_at)

        log.info(
            "task_archived",
            task_id=task_id,
            record_id=record.record_id,
            snapshot_reused=not inserted,
        )
        return record

    async def sweep(self, now: datetime | None = None) -> SweepReport:
        """执行一次清理并通知在线客户端"""
        now = now or self._clock()
        outcome = await sweep_expired(self._stores, now, self._purger)
        for task_id in outcome.removed_task_ids:
            self._publish_deleted(task_id, now)
        return outcome.report

    def _publish_deleted(self, task_id: str, ts: datetime) -> None:
        if self._sse_hub is not None:
            self._sse_hub.publish(build_event(EventAction.DELETED, task_id, None, ts))


async def run_periodic_sweep(engine: ArchivalEngine, interval_s: float) -> None:
    """进程内定时清理循环，由 lifespan 启动并在关闭时取消

    单次清理失败只记录日志，下一轮继续；清理本身幂等。
    """
    log.info("sweep_loop_started", interval_s=interval_s)
    while True:
        await asyncio.sleep(interval_s)
        try:
            await engine.sweep()
        except DispatchError as e:
            log.warning("sweep_failed", error_code=e.code, error=e.message)
