"""structlog 配置模块

dev 模式：pretty print 可读输出
json 模式：结构化 JSON 输出
Logfire APM：LOGFIRE_SEND_TO_LOGFIRE 环境变量控制，false 时只输出本地日志。
"""

import logging
import os

import structlog
from fastapi import FastAPI

# 只在首次调用时替换 root handler，重复 create_app 不叠加输出
_configured = False


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(force: bool = False) -> None:
    """初始化 structlog 配置

    DISPATCHBOARD_LOG_FORMAT:
    - "json": 结构化 JSON 输出（生产环境）
    - "dev" (默认): pretty print 可读输出

    DISPATCHBOARD_LOG_LEVEL: 默认 INFO
    """
    global _configured
    if _configured and not force:
        return

    log_format = os.environ.get("DISPATCHBOARD_LOG_FORMAT", "dev")
    log_level = os.environ.get("DISPATCHBOARD_LOG_LEVEL", "INFO")
    shared_processors = _shared_processors()

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # uvicorn / aiosqlite 等标准库日志也走同一个 renderer
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    # aiosqlite 在 DEBUG 级别会打印每条语句
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    _configured = True


def setup_logfire(app: FastAPI) -> None:
    """Logfire 可选初始化

    LOGFIRE_SEND_TO_LOGFIRE:
    - "true": 启用 Logfire APM（需要 LOGFIRE_TOKEN）
    - "false" (默认): 只输出本地日志
    """
    send_to_logfire = os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower()
    if send_to_logfire != "true":
        return
    try:
        import logfire

        logfire.configure(service_name="dispatchboard-gateway")
        logfire.instrument_fastapi(app)
    except Exception as e:
        # Logfire 不可用时服务照常运行
        structlog.get_logger().warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
        )
