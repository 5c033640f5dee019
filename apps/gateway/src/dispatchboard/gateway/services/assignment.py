"""AssignmentResolver -- 分诊角色把任务指派给车队

指派是无条件覆盖（允许从 A 直接换到 B），只写 assigned_to 与 state_changed_at，
从不改变 state。写入委托给 TransitionAuthority。
"""

from dispatchboard.core.capabilities import Operation, ensure_allowed
from dispatchboard.core.exceptions import TaskValidationError
from dispatchboard.core.models import Actor, Fleet, Task

from .transition import TransitionAuthority


def parse_fleet(raw: str) -> Fleet:
    try:
        return Fleet((raw or "").strip().upper())
    except ValueError:
        raise TaskValidationError("fleet_id", f"unknown fleet {raw!r}") from None


class AssignmentResolver:
    """车队指派"""

    def __init__(self, authority: TransitionAuthority) -> None:
        self._authority = authority

    async def assign(self, task_id: str, fleet_id: str, actor: Actor) -> Task:
        """指派任务到车队

        Raises:
            ForbiddenError: 非分诊角色
            TaskValidationError: 车队标识不存在
            TaskNotFoundError: 任务不存在
        """
        ensure_allowed(actor.role, Operation.TASK_ASSIGN)
        fleet = parse_fleet(fleet_id)
        return await self._authority.apply_assignment(task_id, fleet.value, actor)
