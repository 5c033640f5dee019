"""TraceMiddleware -- 任务级追踪

路径中带任务 ID（/api/tasks/{task_id}/...）时绑定 trace_id，
同一任务的创建、流转、归档日志可以按 trace_id 串起来。
"""

import re

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# /api/tasks/<26 位 ULID>，排除 /api/tasks/board、/api/tasks/history
_TASK_PATH = re.compile(r"/api/tasks/([0-9A-HJKMNP-TV-Z]{26})(?:/|$)")


def trace_id_for(task_id: str) -> str:
    return f"trace-{task_id}"


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件 -- 为任务操作绑定 trace_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        match = _TASK_PATH.search(request.url.path)
        if match:
            structlog.contextvars.bind_contextvars(
                task_id=match.group(1),
                trace_id=trace_id_for(match.group(1)),
            )

        return await call_next(request)
