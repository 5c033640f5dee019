"""TaskService -- 路由层使用的任务服务门面

组合 TransitionAuthority / AssignmentResolver / RejectionManager / ArchivalEngine，
并提供读路径：
1. 活跃任务列表（软过期过滤 + 统一排序）
2. 车队看板分区
3. 按月份/年份查询归档
"""

from datetime import UTC, datetime

from dispatchboard.core.capabilities import Operation, ensure_allowed
from dispatchboard.core.clock import Clock, utc_now
from dispatchboard.core.exceptions import TaskNotFoundError, TaskValidationError
from dispatchboard.core.models import (
    Actor,
    SweepReport,
    Task,
    TaskDraft,
    TaskHistoryRecord,
    TaskState,
)
from dispatchboard.core.projection import FleetBoard, partition_by_fleet, visible_tasks
from dispatchboard.core.rules import is_soft_expired
from dispatchboard.core.store import StoreGroup
from dispatchboard.core.store.protocols import MessagePurger

from .archival import ArchivalEngine
from .assignment import AssignmentResolver
from .rejection import RejectionManager
from .sse_hub import SSEHub
from .transition import TransitionAuthority


def history_range(
    month: int | None, year: int | None
) -> tuple[datetime | None, datetime | None]:
    """将 month/year 转换为 completed_at 的 UTC 半开区间

    month+year 为该月；只有 year 为全年；没有 year 时不筛选（单独的 month 被忽略）。

    Raises:
        TaskValidationError: month 超出 1..12
    """
    if year is None:
        return None, None
    if month is None:
        return datetime(year, 1, 1, tzinfo=UTC), datetime(year + 1, 1, 1, tzinfo=UTC)
    if not 1 <= month <= 12:
        raise TaskValidationError("month", "month must be between 1 and 12")
    start = datetime(year, month, 1, tzinfo=UTC)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=UTC)
    else:
        end = datetime(year, month + 1, 1, tzinfo=UTC)
    return start, end


class TaskService:
    """任务业务服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        sse_hub: SSEHub | None = None,
        clock: Clock = utc_now,
        purger: MessagePurger | None = None,
    ) -> None:
        self._stores = store_group
        self._clock = clock
        self.archival = ArchivalEngine(store_group, sse_hub, purger=purger, clock=clock)
        self.authority = TransitionAuthority(
            store_group, sse_hub, clock=clock, archival=self.archival
        )
        self.assignment = AssignmentResolver(self.authority)
        self.rejection = RejectionManager(self.authority)

    async def create_task(self, draft: TaskDraft, actor: Actor) -> Task:
        return await self.authority.create_task(draft, actor)

    async def list_tasks(self, actor: Actor) -> list[Task]:
        """活跃任务列表：in_progress, paused, requested, rejected（未过期），同状态按 deadline"""
        ensure_allowed(actor.role, Operation.TASK_LIST)
        now = self._clock()
        tasks = await self._stores.task_store.list_active_tasks(now)
        return visible_tasks(tasks, now)

    async def get_board(self, actor: Actor) -> FleetBoard:
        """按车队分区，每次读取重新计算"""
        return partition_by_fleet(await self.list_tasks(actor))

    async def get_task(self, task_id: str, actor: Actor) -> Task:
        """查询单个活跃任务，已软过期的驳回任务视为不存在"""
        ensure_allowed(actor.role, Operation.TASK_LIST)
        task = await self._stores.task_store.get_task(task_id)
        if task is None or is_soft_expired(task, self._clock()):
            raise TaskNotFoundError(task_id)
        return task

    async def set_state(
        self,
        task_id: str,
        state: TaskState,
        actor: Actor,
        expected_state: TaskState | None = None,
        reason: str | None = None,
    ) -> Task:
        return await self.authority.transition(
            task_id, state, actor, reason=reason, expected_state=expected_state
        )

    async def assign(self, task_id: str, fleet_id: str, actor: Actor) -> Task:
        return await self.assignment.assign(task_id, fleet_id, actor)

    async def reject(self, task_id: str, reason: str, actor: Actor) -> Task:
        return await self.rejection.reject(task_id, reason, actor)

    async def list_history(
        self,
        actor: Actor,
        month: int | None = None,
        year: int | None = None,
    ) -> list[TaskHistoryRecord]:
        """查询归档，最新完成的在前"""
        ensure_allowed(actor.role, Operation.HISTORY_LIST)
        start, end = history_range(month, year)
        return await self._stores.history_store.list_history(start, end)

    async def sweep(self) -> SweepReport:
        return await self.archival.sweep()
