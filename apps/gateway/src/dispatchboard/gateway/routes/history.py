"""归档查询路由

GET /api/tasks/history?month=&year=: 已完成任务快照，最新完成的在前。
month 与 year 为 UTC 日历月；只给 year 查询全年；只给 month 时不筛选。
必须在 /api/tasks/{task_id} 之前注册。
"""

from datetime import datetime

from dispatchboard.core.models import Actor, Task
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..deps import get_actor, get_task_service
from ..services.task_service import TaskService

router = APIRouter()


class HistoryItem(BaseModel):
    """归档列表项"""

    record_id: str
    original_task_id: str
    completed_at: datetime
    delete_after: datetime
    task: Task


class HistoryListResponse(BaseModel):
    records: list[HistoryItem]


@router.get("/api/tasks/history", response_model=HistoryListResponse)
async def list_history(
    month: int | None = Query(default=None, description="月份 1-12，仅在同时提供 year 时生效"),
    year: int | None = Query(default=None, description="年份"),
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    records = await service.list_history(actor, month=month, year=year)
    return HistoryListResponse(
        records=[
            HistoryItem(
                record_id=r.record_id,
                original_task_id=r.original_task_id,
                completed_at=r.completed_at,
                delete_after=r.delete_after,
                task=r.task_snapshot,
            )
            for r in records
        ]
    )
