"""服务层输入/输出 payload

TaskDraft 是创建任务的原始输入（校验前），
SweepReport 是一次定时清理的结果汇总。
"""

from pydantic import BaseModel, Field


class TaskDraft(BaseModel):
    """创建任务的原始输入，字段在 TaskService 中校验"""

    signature: str
    description: str
    urgency: str
    category: str
    assigned_to: str | None = Field(default=None)


class SweepReport(BaseModel):
    """定时清理结果"""

    history_purged: int = Field(default=0, description="删除的过期归档数")
    rejections_purged: int = Field(default=0, description="删除的过期驳回任务数")
    messages_purged: int = Field(default=0, description="清除的过期聊天消息数")
    leftovers_reconciled: int = Field(
        default=0,
        description="已归档但仍残留在 tasks 表中的行数",
    )
