"""广播事件模型

每次成功的创建、流转、指派、驳回或归档删除都产生一条 TaskEvent。
没有序号：客户端在断线后必须重新拉取快照。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import EventAction
from .task import Task

# 所有已认证客户端
AUDIENCE_ALL = "all"


def fleet_audience(fleet_id: str) -> str:
    """车队范围的受众标签"""
    return f"fleet:{fleet_id}"


class TaskEvent(BaseModel):
    """任务广播事件

    created/updated 携带完整任务，deleted 仅携带 task_id。
    """

    event_id: str = Field(description="唯一标识，ULID 格式")
    action: EventAction = Field(description="事件动作")
    task_id: str = Field(description="关联的 Task ID")
    task: Task | None = Field(default=None, description="变更后的任务（deleted 时为空）")
    audience: str = Field(default=AUDIENCE_ALL, description="受众标签")
    ts: datetime = Field(description="事件时间戳")
