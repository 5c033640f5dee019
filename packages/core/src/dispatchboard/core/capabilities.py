"""静态权限表 -- 角色 -> 允许的操作

整个服务只通过 authorize() 查询权限，不在各处散落角色判断。
核心只对 task.assign / task.reject 做角色限制，其余任务操作对所有已认证角色开放，
更粗粒度的曝光控制由边界层负责。
"""

from dataclasses import dataclass
from enum import StrEnum

from .exceptions import ForbiddenError
from .models.enums import Fleet, Role
from .models.event import AUDIENCE_ALL, fleet_audience


class Operation(StrEnum):
    """受控操作"""

    TASK_LIST = "task.list"
    TASK_CREATE = "task.create"
    TASK_TRANSITION = "task.transition"
    TASK_ASSIGN = "task.assign"
    TASK_REJECT = "task.reject"
    HISTORY_LIST = "history.list"
    STREAM_SUBSCRIBE = "stream.subscribe"


# 分诊角色：可以指派与驳回
TRIAGE_ROLE: Role = Role.STORE_OFFICE

_EVERYONE: frozenset[Operation] = frozenset(
    {
        Operation.TASK_LIST,
        Operation.TASK_CREATE,
        Operation.TASK_TRANSITION,
        Operation.HISTORY_LIST,
        Operation.STREAM_SUBSCRIBE,
    }
)

CAPABILITIES: dict[Role, frozenset[Operation]] = {
    Role.OFFICE: _EVERYONE,
    Role.FACTORY_OFFICE: _EVERYONE,
    Role.STORE_OFFICE: _EVERYONE | {Operation.TASK_ASSIGN, Operation.TASK_REJECT},
    Role.FACTORY: _EVERYONE,
    Role.DRIVER_CROWN: _EVERYONE,
    Role.DRIVER_ELECTRIC: _EVERYONE,
}

# 司机角色所属车队
ROLE_FLEETS: dict[Role, Fleet] = {
    Role.DRIVER_CROWN: Fleet.A,
    Role.DRIVER_ELECTRIC: Fleet.B,
}


@dataclass(frozen=True)
class Decision:
    """授权结果"""

    allowed: bool
    role: Role
    operation: Operation
    reason: str = ""


def authorize(role: Role, operation: Operation) -> Decision:
    """查询权限表，返回显式的 allow/deny"""
    allowed = operation in CAPABILITIES.get(role, frozenset())
    reason = "" if allowed else f"{role.value} lacks {operation.value}"
    return Decision(allowed=allowed, role=role, operation=operation, reason=reason)


def audiences_for(role: Role) -> frozenset[str]:
    """订阅时计算受众成员资格

    所有角色都属于 all；司机属于自己车队；分诊角色负责调度，属于全部车队。
    """
    audiences = {AUDIENCE_ALL}
    if role == TRIAGE_ROLE:
        audiences.update(fleet_audience(f.value) for f in Fleet)
    elif role in ROLE_FLEETS:
        audiences.add(fleet_audience(ROLE_FLEETS[role].value))
    return frozenset(audiences)


def ensure_allowed(role: Role, operation: Operation) -> Decision:
    """authorize 的强制版本

    Raises:
        ForbiddenError: 权限表拒绝该操作
    """
    decision = authorize(role, operation)
    if not decision.allowed:
        raise ForbiddenError(role.value, operation.value)
    return decision
