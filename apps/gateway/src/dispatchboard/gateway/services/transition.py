"""TransitionAuthority -- 任务状态的唯一写入者

所有改变任务 state（以及 assigned_to）的写入都经过这里：
1. 查询权限表
2. 读取当前任务，校验调用方观察到的状态与合法流转表
3. 条件更新 UPDATE ... WHERE task_id=? AND state=?，未命中则 Conflict
4. 提交后立即发布一条事件

in_progress -> completed 交给 ArchivalEngine：快照写入与活跃行删除在同一事务内完成。
"""

from datetime import datetime
from typing import Any

import structlog
from dispatchboard.core.capabilities import Operation, ensure_allowed
from dispatchboard.core.clock import Clock, utc_now
from dispatchboard.core.exceptions import (
    InvalidTransitionError,
    TaskNotFoundError,
    TaskStateConflictError,
)
from dispatchboard.core.models import (
    VALID_TRANSITIONS,
    Actor,
    EventAction,
    Task,
    TaskDraft,
    TaskState,
    validate_transition,
)
from dispatchboard.core.rules import (
    compute_deadline,
    format_signature,
    normalize_description,
    normalize_rejection_reason,
    parse_category,
    parse_urgency,
    rejection_expiry,
)
from dispatchboard.core.store import StoreGroup
from ulid import ULID

from .archival import ArchivalEngine
from .sse_hub import SSEHub, build_event

log = structlog.get_logger()


class TransitionAuthority:
    """任务状态流转权威"""

    def __init__(
        self,
        store_group: StoreGroup,
        sse_hub: SSEHub | None = None,
        clock: Clock = utc_now,
        archival: ArchivalEngine | None = None,
    ) -> None:
        self._stores = store_group
        self._sse_hub = sse_hub
        self._clock = clock
        self._archival = archival or ArchivalEngine(store_group, sse_hub, clock=clock)

    async def create_task(self, draft: TaskDraft, actor: Actor) -> Task:
        """校验输入并创建任务，deadline 在此一次性计算

        Raises:
            TaskValidationError: 签名/描述/紧急程度/类别不合法（未写入任何数据）
        """
        ensure_allowed(actor.role, Operation.TASK_CREATE)

        signature = format_signature(draft.signature)
        description = normalize_description(draft.description)
        urgency = parse_urgency(draft.urgency)
        category = parse_category(draft.category)

        now = self._clock()
        task = Task(
            task_id=str(ULID()),
            created_by=actor.actor_id,
            signature=signature,
            category=category,
            description=description,
            urgency=urgency,
            assigned_to=draft.assigned_to or None,
            state=TaskState.REQUESTED,
            state_changed_at=now,
            created_at=now,
            deadline=compute_deadline(now, urgency),
        )

        async with self._stores.transaction():
            await self._stores.task_store.create_task(task)
        self._publish(EventAction.CREATED, task.task_id, task, now)

        log.info(
            "task_created",
            task_id=task.task_id,
            actor_id=actor.actor_id,
            urgency=urgency.value,
            category=category.value,
        )
        return task

    async def transition(
        self,
        task_id: str,
        target: TaskState,
        actor: Actor,
        reason: str | None = None,
        expected_state: TaskState | None = None,
    ) -> Task:
        """执行一次状态流转

        Args:
            task_id: 任务 ID
            target: 目标状态
            actor: 已认证的操作者
            reason: 驳回理由（仅 target=rejected 时使用）
            expected_state: 调用方观察到的当前状态，不一致时直接 Conflict

        Returns:
            流转后的任务；完成时返回标记为 completed 的任务（活跃行已删除）

        Raises:
            ForbiddenError: 角色无权执行
            TaskNotFoundError: 任务不存在
            TaskStateConflictError: 状态已被其他请求改变
            InvalidTransitionError: 流转不合法
            TaskValidationError: 驳回理由不合法
        """
        if target == TaskState.REJECTED:
            ensure_allowed(actor.role, Operation.TASK_REJECT)
        else:
            ensure_allowed(actor.role, Operation.TASK_TRANSITION)

        current = await self._stores.task_store.get_task(task_id)
        if current is None:
            raise TaskNotFoundError(task_id)

        if expected_state is not None and current.state != expected_state:
            raise TaskStateConflictError(task_id, expected_state.value, current.state.value)

        if not validate_transition(current.state, target):
            if current.state == target:
                # 相同请求已经先一步提交
                raise TaskStateConflictError(
                    task_id, _source_states(target), current.state.value
                )
            raise InvalidTransitionError(task_id, current.state.value, target.value)

        if target == TaskState.COMPLETED:
            return await self._complete(current, actor)

        now = self._clock()
        fields: dict[str, Any] = {"state": target, "state_changed_at": now}
        claim_for = None
        if target == TaskState.REJECTED:
            fields["rejection_reason"] = normalize_rejection_reason(reason)
            fields["rejection_expires"] = rejection_expiry(now)
        elif target == TaskState.IN_PROGRESS and current.state == TaskState.REQUESTED:
            claim_for = actor.actor_id

        async with self._stores.transaction():
            updated = await self._stores.task_store.update_task_if_state(
                task_id, current.state, fields, claim_for=claim_for
            )
            if not updated:
                raise TaskStateConflictError(task_id, current.state.value)
            task = await self._stores.task_store.get_task(task_id)
        self._publish(EventAction.UPDATED, task_id, task, now)

        log.info(
            "task_transitioned",
            task_id=task_id,
            actor_id=actor.actor_id,
            from_state=current.state.value,
            to_state=target.value,
        )
        return task

    async def apply_assignment(self, task_id: str, assigned_to: str, actor: Actor) -> Task:
        """无条件写入 assigned_to 并刷新 state_changed_at，不改变 state

        权限与车队校验由 AssignmentResolver 负责。
        """
        now = self._clock()
        async with self._stores.transaction():
            updated = await self._stores.task_store.update_task_if_state(
                task_id,
                None,
                {"assigned_to": assigned_to, "state_changed_at": now},
            )
            if not updated:
                raise TaskNotFoundError(task_id)
            task = await self._stores.task_store.get_task(task_id)
        self._publish(EventAction.UPDATED, task_id, task, now)

        log.info(
            "task_assigned",
            task_id=task_id,
            actor_id=actor.actor_id,
            assigned_to=assigned_to,
        )
        return task

    async def _complete(self, current: Task, actor: Actor) -> Task:
        now = self._clock()
        record = await self._archival.archive_completed(current.task_id, now)
        log.info(
            "task_transitioned",
            task_id=current.task_id,
            actor_id=actor.actor_id,
            from_state=current.state.value,
            to_state=TaskState.COMPLETED.value,
        )
        return record.task_snapshot.model_copy(
            update={"state": TaskState.COMPLETED, "state_changed_at": now}
        )

    def _publish(self, action: EventAction, task_id: str, task: Task | None, ts: datetime) -> None:
        if self._sse_hub is not None:
            self._sse_hub.publish(build_event(action, task_id, task, ts))


def _source_states(target: TaskState) -> str:
    """可以流转到 target 的状态，用于冲突提示"""
    sources = sorted(s.value for s, targets in VALID_TRANSITIONS.items() if target in targets)
    return "/".join(sources)
