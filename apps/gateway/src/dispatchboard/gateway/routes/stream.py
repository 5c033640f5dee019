"""SSE 任务事件流路由

GET /api/stream/tasks: 所有已认证客户端共享的任务事件流。

协议：
1. 先订阅，再推送一条 snapshot（完整活跃任务列表）
2. 之后推送 created / updated / deleted 事件
3. 订阅者队列溢出时重新推送 snapshot，客户端以其替换本地列表
4. 15 秒心跳保活

事件没有序号也不支持 Last-Event-ID：断线重连即重新获取 snapshot。
先订阅后读取快照，快照期间发布的事件会在快照之后再次送达，客户端按 task_id 覆盖即可。
"""

import asyncio
from collections.abc import AsyncIterator

from dispatchboard.core.capabilities import Operation, ensure_allowed
from dispatchboard.core.config import SSE_HEARTBEAT_INTERVAL
from dispatchboard.core.models import Actor, TaskEvent
from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from ..deps import get_actor, get_sse_hub, get_task_service
from ..services.sse_hub import RESYNC, SSEHub
from ..services.task_service import TaskService
from .tasks import TaskListResponse

router = APIRouter()

SNAPSHOT_EVENT = "snapshot"


def _event_to_sse(event: TaskEvent) -> dict:
    """将 TaskEvent 转换为 SSE 消息"""
    return {
        "id": event.event_id,
        "event": event.action.value,
        "data": event.model_dump_json(),
    }


async def _snapshot_to_sse(service: TaskService, actor: Actor) -> dict:
    tasks = await service.list_tasks(actor)
    return {
        "event": SNAPSHOT_EVENT,
        "data": TaskListResponse(tasks=tasks).model_dump_json(),
    }


async def task_event_stream(
    service: TaskService,
    sse_hub: SSEHub,
    actor: Actor,
    heartbeat_interval: float = SSE_HEARTBEAT_INTERVAL,
) -> AsyncIterator[dict]:
    """snapshot-then-stream 生成器，客户端断开时由 EventSourceResponse 取消"""
    sub = await sse_hub.subscribe(actor)
    try:
        yield await _snapshot_to_sse(service, actor)
        while True:
            try:
                item = await asyncio.wait_for(sub.queue.get(), timeout=heartbeat_interval)
            except TimeoutError:
                yield {"comment": "heartbeat"}
                continue
            if item is RESYNC:
                yield await _snapshot_to_sse(service, actor)
                continue
            yield _event_to_sse(item)
    finally:
        await sse_hub.unsubscribe(sub)


@router.get("/api/stream/tasks")
async def stream_task_events(
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
    sse_hub: SSEHub = Depends(get_sse_hub),
):
    ensure_allowed(actor.role, Operation.STREAM_SUBSCRIBE)
    return EventSourceResponse(task_event_stream(service, sse_hub, actor))
