"""任务路由

GET  /api/tasks:            活跃任务列表（统一排序，已软过期的驳回任务不出现）
GET  /api/tasks/board:      按车队分区的看板
POST /api/tasks:            创建任务
GET  /api/tasks/{task_id}:  单个活跃任务
"""

from dispatchboard.core.models import Actor, Task, TaskDraft
from dispatchboard.core.projection import FleetBoard
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_actor, get_task_service
from ..services.task_service import TaskService

router = APIRouter()


class CreateTaskRequest(BaseModel):
    """创建任务请求体，字段校验在服务层统一完成"""

    signature: str = Field(default="", description="两字母签名，如 jd / J.D")
    description: str = Field(default="", description="任务描述")
    urgency: str = Field(default="", description="now / 15min / 1hour / today")
    category: str = Field(default="", description="任务类别")
    assigned_to: str | None = Field(default=None, description="初始指派")


class TaskResponse(BaseModel):
    task: Task


class TaskListResponse(BaseModel):
    """任务列表响应"""

    tasks: list[Task]


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """活跃任务：in_progress, paused, requested, rejected，同状态按 deadline 升序"""
    return TaskListResponse(tasks=await service.list_tasks(actor))


@router.get("/api/tasks/board", response_model=FleetBoard)
async def get_board(
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return await service.get_board(actor)


@router.post("/api/tasks", status_code=201, response_model=TaskResponse)
async def create_task(
    body: CreateTaskRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """创建任务

    - 201: 创建成功，返回完整任务（含 deadline）
    - 422: 签名/描述/紧急程度/类别不合法
    """
    draft = TaskDraft(**body.model_dump())
    task = await service.create_task(draft, actor)
    return TaskResponse(task=task)


@router.get("/api/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse(task=await service.get_task(task_id, actor))
