"""LoggingMiddleware -- 请求级日志上下文

为每个 HTTP 请求生成 request_id，连同请求者身份绑定到 structlog contextvars。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件 -- 为每个请求生成 request_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        actor_id = request.headers.get("x-actor-id")
        if actor_id:
            structlog.contextvars.bind_contextvars(
                actor_id=actor_id,
                actor_role=request.headers.get("x-actor-role"),
            )

        log = structlog.get_logger()
        await log.ainfo("request_started")
        started = time.perf_counter()

        response = await call_next(request)

        await log.ainfo(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
