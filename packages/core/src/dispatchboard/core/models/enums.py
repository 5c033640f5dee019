"""枚举定义 -- 任务状态机、紧急程度、类别、角色与广播事件

包含 TaskState 状态机、VALID_TRANSITIONS 合法流转映射、
列表排序使用的 STATE_PRIORITY，以及紧急程度到时长的映射。
"""

from datetime import timedelta
from enum import StrEnum


class TaskState(StrEnum):
    """任务生命周期状态"""

    REQUESTED = "requested"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    REJECTED = "rejected"


# 合法状态流转（角色约束见 capabilities）
VALID_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    TaskState.REQUESTED: {TaskState.IN_PROGRESS, TaskState.REJECTED},
    TaskState.IN_PROGRESS: {TaskState.PAUSED, TaskState.COMPLETED},
    TaskState.PAUSED: {TaskState.IN_PROGRESS},
    # 终态不可再流转
    TaskState.COMPLETED: set(),
    TaskState.REJECTED: set(),
}

TERMINAL_STATES: set[TaskState] = {
    TaskState.COMPLETED,
    TaskState.REJECTED,
}

# 列表排序优先级（越小越靠前），completed 永不出现在活跃列表
STATE_PRIORITY: dict[TaskState, int] = {
    TaskState.IN_PROGRESS: 1,
    TaskState.PAUSED: 2,
    TaskState.REQUESTED: 3,
    TaskState.COMPLETED: 4,
    TaskState.REJECTED: 5,
}


class Urgency(StrEnum):
    """紧急程度 -- 决定 deadline"""

    NOW = "now"
    FIFTEEN_MIN = "15min"
    ONE_HOUR = "1hour"
    TODAY = "today"


URGENCY_DURATIONS: dict[Urgency, timedelta] = {
    Urgency.NOW: timedelta(0),
    Urgency.FIFTEEN_MIN: timedelta(minutes=15),
    Urgency.ONE_HOUR: timedelta(hours=1),
    Urgency.TODAY: timedelta(hours=24),
}


class Category(StrEnum):
    """任务类别"""

    PRODUCT = "product"
    PALLETS = "pallets"
    CARTON = "carton"
    MATERIAL = "material"
    LABEL = "label"
    TASK = "task"


class Role(StrEnum):
    """操作者角色"""

    OFFICE = "office"
    FACTORY_OFFICE = "factory_office"
    STORE_OFFICE = "store_office"
    FACTORY = "factory"
    DRIVER_CROWN = "driver_crown"
    DRIVER_ELECTRIC = "driver_electric"


class Fleet(StrEnum):
    """配送车队 -- 固定集合"""

    A = "A"
    B = "B"


class EventAction(StrEnum):
    """广播事件动作"""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


def validate_transition(from_state: TaskState, to_state: TaskState) -> bool:
    """验证状态流转是否合法

    Args:
        from_state: 当前状态
        to_state: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_state, set())
    return to_state in allowed
