"""Task Domain Model

tasks 表保存所有活跃任务，是任务当前状态的唯一事实来源。
完成的任务以快照形式转入 task_history。
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from .enums import Category, TaskState, Urgency


class Task(BaseModel):
    """Task 数据模型

    rejection_reason 与 rejection_expires 当且仅当 state=rejected 时非空。
    deadline 只在创建时计算一次。
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    created_by: str = Field(description="创建者 ID")
    signature: str = Field(description="两字母签名，格式 X.Y")
    category: Category = Field(description="任务类别")
    description: str = Field(description="任务描述")
    urgency: Urgency = Field(description="紧急程度")
    assigned_to: str | None = Field(default=None, description="指派的车队或司机")
    state: TaskState = Field(default=TaskState.REQUESTED, description="当前状态")
    state_changed_at: datetime = Field(description="最近一次状态/指派变更时间")
    created_at: datetime = Field(description="创建时间")
    deadline: datetime = Field(description="截止时间 = created_at + duration(urgency)")
    rejection_reason: str | None = Field(default=None, description="驳回理由")
    rejection_expires: datetime | None = Field(default=None, description="驳回可见截止时间")

    @model_validator(mode="after")
    def _check_rejection_fields(self) -> "Task":
        rejected = self.state == TaskState.REJECTED
        has_fields = self.rejection_reason is not None and self.rejection_expires is not None
        has_any = self.rejection_reason is not None or self.rejection_expires is not None
        if rejected and not has_fields:
            raise ValueError("rejected task requires rejection_reason and rejection_expires")
        if not rejected and has_any:
            raise ValueError("rejection fields are only allowed on rejected tasks")
        return self


class TaskHistoryRecord(BaseModel):
    """已完成任务的归档快照 -- 写入后不可变"""

    record_id: str = Field(description="记录 ID，ULID 格式")
    original_task_id: str = Field(description="原任务 ID")
    task_snapshot: Task = Field(description="完成前的任务快照")
    completed_at: datetime = Field(description="完成时间")
    delete_after: datetime = Field(description="删除期限 = completed_at + 180 天")
