"""Store Protocol 接口定义

定义 TaskStore、HistoryStore 以及外部聊天存储清理钩子的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from datetime import datetime
from typing import Any, Protocol

from ..models.enums import TaskState
from ..models.task import Task, TaskHistoryRecord


class TaskStore(Protocol):
    """活跃任务存储接口"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_active_tasks(self, now: datetime) -> list[Task]:
        """查询活跃任务（已排除软过期的驳回任务）"""
        ...

    async def update_task_if_state(
        self,
        task_id: str,
        expected_state: TaskState | None,
        fields: dict[str, Any],
        claim_for: str | None = None,
    ) -> bool:
        """条件更新（compare-and-update）"""
        ...

    async def delete_task_if_state(self, task_id: str, expected_state: TaskState) -> bool:
        """条件删除"""
        ...

    async def delete_expired_rejections(self, now: datetime) -> list[str]:
        """删除已硬过期的驳回任务"""
        ...

    async def delete_archived_leftovers(self) -> list[str]:
        """删除已归档但残留的活跃行"""
        ...


class HistoryStore(Protocol):
    """归档存储接口

    append-only：快照只插入，不更新；只能按 delete_after 清理。
    """

    async def upsert_snapshot(self, record: TaskHistoryRecord) -> bool:
        """按原任务 ID 幂等写入快照"""
        ...

    async def get_by_task_id(self, original_task_id: str) -> TaskHistoryRecord | None:
        """根据原任务 ID 查询快照"""
        ...

    async def list_history(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[TaskHistoryRecord]:
        """按完成时间区间查询快照"""
        ...

    async def delete_expired(self, now: datetime) -> int:
        """删除过期快照"""
        ...


class MessagePurger(Protocol):
    """外部聊天存储的保留期清理钩子"""

    async def purge_messages_before(self, cutoff: datetime) -> int:
        """删除 cutoff 之前的消息，返回删除数量"""
        ...
