"""RejectionManager -- 驳回子状态

驳回只能从 requested 发起，写入理由与 rejection_expires = now + 1h。
过期后的任务在所有列表查询中隐藏（软过期），由定时清理删除（硬过期）。
"""

from dispatchboard.core.models import Actor, Task, TaskState

from .transition import TransitionAuthority


class RejectionManager:
    """驳回管理"""

    def __init__(self, authority: TransitionAuthority) -> None:
        self._authority = authority

    async def reject(self, task_id: str, reason: str, actor: Actor) -> Task:
        """驳回一个 requested 任务

        Raises:
            ForbiddenError: 非分诊角色
            TaskValidationError: 理由为空或超过 150 字符
            InvalidTransitionError: 任务不在 requested
            TaskStateConflictError: 任务已被其他请求驳回
        """
        return await self._authority.transition(
            task_id,
            TaskState.REJECTED,
            actor,
            reason=reason,
        )
