"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store、SSEHub 与请求者身份

Store 实例通过 app.state 管理，在 lifespan 中初始化/清理。
请求者身份由可信边界（登录网关）写入 X-Actor-Id / X-Actor-Role 请求头。
"""

from dispatchboard.core.clock import utc_now
from dispatchboard.core.exceptions import UnauthenticatedError
from dispatchboard.core.models import Actor, Role
from dispatchboard.core.store import StoreGroup
from fastapi import Depends, Header, Request

from .services.sse_hub import SSEHub
from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_sse_hub(request: Request) -> SSEHub:
    """从 app.state 获取 SSEHub 实例"""
    return request.app.state.sse_hub


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    """从请求头解析已验证的身份

    Raises:
        UnauthenticatedError: 缺少身份或角色不可识别
    """
    actor_id = (x_actor_id or "").strip()
    if not actor_id or not x_actor_role:
        raise UnauthenticatedError("missing actor identity")
    try:
        role = Role(x_actor_role.strip())
    except ValueError:
        raise UnauthenticatedError(f"unknown role {x_actor_role!r}") from None
    return Actor(actor_id=actor_id, role=role)


def get_task_service(
    request: Request,
    store_group: StoreGroup = Depends(get_store_group),
    sse_hub: SSEHub = Depends(get_sse_hub),
) -> TaskService:
    """每个请求构建一个 TaskService，时钟与聊天清理钩子可通过 app.state 覆盖"""
    return TaskService(
        store_group,
        sse_hub,
        clock=getattr(request.app.state, "clock", utc_now),
        purger=getattr(request.app.state, "message_purger", None),
    )
