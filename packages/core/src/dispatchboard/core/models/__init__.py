"""dispatchboard Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .actor import Actor
from .enums import (
    STATE_PRIORITY,
    TERMINAL_STATES,
    URGENCY_DURATIONS,
    VALID_TRANSITIONS,
    Category,
    EventAction,
    Fleet,
    Role,
    TaskState,
    Urgency,
    validate_transition,
)
from .event import AUDIENCE_ALL, TaskEvent, fleet_audience
from .payloads import SweepReport, TaskDraft
from .task import Task, TaskHistoryRecord

__all__ = [
    # 枚举
    "TaskState",
    "Urgency",
    "Category",
    "Role",
    "Fleet",
    "EventAction",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "STATE_PRIORITY",
    "URGENCY_DURATIONS",
    "validate_transition",
    # Task
    "Task",
    "TaskHistoryRecord",
    "Actor",
    # Event
    "TaskEvent",
    "AUDIENCE_ALL",
    "fleet_audience",
    # Payloads
    "TaskDraft",
    "SweepReport",
]
