"""列表视图投影 -- 所有活跃任务列表共享的排序、过滤与车队分区

排序规则集中在此处，REST 列表、SSE 快照和看板分区都调用同一实现。
分区在每次读取时重新计算，不单独缓存。
"""

from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, Field

from .models.enums import STATE_PRIORITY, TERMINAL_STATES, Fleet, TaskState
from .models.task import Task
from .rules import is_soft_expired


def sort_key(task: Task) -> tuple[int, datetime]:
    """(statePriority, deadline) 升序"""
    return STATE_PRIORITY[task.state], task.deadline


def sort_tasks(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=sort_key)


def visible_tasks(tasks: Iterable[Task], now: datetime) -> list[Task]:
    """活跃列表：排除 completed 与已软过期的驳回任务，并按规范顺序排序"""
    return sort_tasks(
        t for t in tasks
        if t.state != TaskState.COMPLETED and not is_soft_expired(t, now)
    )


class FleetBoard(BaseModel):
    """按 assigned_to 划分的看板视图（仅非终态任务）"""

    unassigned: list[Task] = Field(default_factory=list)
    fleet_a: list[Task] = Field(default_factory=list)
    fleet_b: list[Task] = Field(default_factory=list)
    # 指派给具体司机（非车队标识）的任务
    other: list[Task] = Field(default_factory=list)


def partition_by_fleet(tasks: Iterable[Task]) -> FleetBoard:
    """按当前 assigned_to 分区，输入顺序在各分区内保持不变"""
    board = FleetBoard()
    for task in tasks:
        if task.state in TERMINAL_STATES:
            continue
        if task.assigned_to is None:
            board.unassigned.append(task)
        elif task.assigned_to == Fleet.A.value:
            board.fleet_a.append(task)
        elif task.assigned_to == Fleet.B.value:
            board.fleet_b.append(task)
        else:
            board.other.append(task)
    return board
