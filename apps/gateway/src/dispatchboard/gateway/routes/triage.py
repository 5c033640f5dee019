"""分诊路由 -- 仅 store_office 角色可用

PATCH /api/tasks/{task_id}/assign: 指派到车队（可直接从 A 换到 B）
POST  /api/tasks/{task_id}/reject: 驳回 requested 任务，1 小时后从列表消失
"""

from dispatchboard.core.models import Actor
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_actor, get_task_service
from ..services.task_service import TaskService
from .tasks import TaskResponse

router = APIRouter()


class AssignRequest(BaseModel):
    fleet_id: str = Field(default="", description="车队标识：A / B")


class RejectRequest(BaseModel):
    reason: str = Field(default="", description="驳回理由，不超过 150 字符")


@router.patch("/api/tasks/{task_id}/assign", response_model=TaskResponse)
async def assign_task(
    task_id: str,
    body: AssignRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """指派任务，不改变 state

    - 403: 非分诊角色
    - 422: 车队标识不存在
    """
    task = await service.assign(task_id, body.fleet_id, actor)
    return TaskResponse(task=task)


@router.post("/api/tasks/{task_id}/reject", response_model=TaskResponse)
async def reject_task(
    task_id: str,
    body: RejectRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """驳回任务

    - 403: 非分诊角色
    - 409: 任务不在 requested
    - 422: 理由为空或过长
    """
    task = await service.reject(task_id, body.reason, actor)
    return TaskResponse(task=task)
