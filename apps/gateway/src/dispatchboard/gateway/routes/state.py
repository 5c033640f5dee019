"""任务状态流转路由

PATCH /api/tasks/{task_id}/state: 开始、暂停、继续或完成任务。
- 200: 流转成功；完成时任务已转入归档，返回 state=completed 的任务
- 404: 任务不存在
- 409: 状态已被其他请求改变（TASK_STATE_CONFLICT）或流转不合法（INVALID_TRANSITION）
"""

from dispatchboard.core.models import Actor, TaskState
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_actor, get_task_service
from ..services.task_service import TaskService
from .tasks import TaskResponse

router = APIRouter()


class StateChangeRequest(BaseModel):
    """状态流转请求体"""

    state: TaskState = Field(description="目标状态")
    expected_state: TaskState | None = Field(
        default=None,
        description="调用方看到的当前状态，不一致时返回 409",
    )
    reason: str | None = Field(default=None, description="驳回理由（state=rejected 时必填）")


@router.patch("/api/tasks/{task_id}/state", response_model=TaskResponse)
async def set_state(
    task_id: str,
    body: StateChangeRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    task = await service.set_state(
        task_id,
        body.state,
        actor,
        expected_state=body.expected_state,
        reason=body.reason,
    )
    return TaskResponse(task=task)
