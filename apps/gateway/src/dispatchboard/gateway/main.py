"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭、SSEHub、可选的进程内定时清理 + 路由注册。
"""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from dispatchboard.core.config import get_db_path, get_sweep_interval_s
from dispatchboard.core.store import create_store_group
from fastapi import FastAPI

from .errors import register_exception_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import health, history, state, stream, tasks, triage
from .services.archival import ArchivalEngine, run_periodic_sweep
from .services.sse_hub import SSEHub

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 与广播器，关闭时停止清理循环并关闭连接"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.store_group = store_group
    app.state.sse_hub = SSEHub()

    sweep_task: asyncio.Task | None = None
    interval_s = get_sweep_interval_s()
    if interval_s > 0:
        engine = ArchivalEngine(
            store_group,
            app.state.sse_hub,
            purger=getattr(app.state, "message_purger", None),
        )
        sweep_task = asyncio.create_task(run_periodic_sweep(engine, interval_s))
    log.info("gateway_started", db_path=db_path, sweep_interval_s=interval_s)

    yield

    if sweep_task is not None:
        sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweep_task

    if getattr(app.state, "store_group", None):
        await app.state.store_group.conn.close()
    log.info("gateway_stopped")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Dispatchboard Gateway",
        version="0.1.0",
        description="调度看板任务生命周期与实时广播 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    register_exception_handlers(app)

    # history 必须先于 /api/tasks/{task_id} 注册
    app.include_router(history.router, tags=["history"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(state.router, tags=["tasks"])
    app.include_router(triage.router, tags=["triage"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
