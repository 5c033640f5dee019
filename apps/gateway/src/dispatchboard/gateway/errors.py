"""异常到 HTTP 响应的映射

DispatchError 子类自带 status_code 与错误体；FastAPI 的请求体/查询参数校验失败
转换为同样结构的 VALIDATION_FAILED 错误体。
"""

import structlog
from dispatchboard.core.exceptions import DispatchError, ErrorCategory, TaskValidationError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

log = structlog.get_logger()


async def handle_dispatch_error(request: Request, exc: DispatchError) -> JSONResponse:
    if exc.category == ErrorCategory.TRANSIENT:
        log.warning("request_failed", error_code=exc.code, error=exc.message)
    else:
        log.info("request_rejected", error_code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
        error = TaskValidationError(field, first.get("msg", "invalid value"))
    else:
        error = TaskValidationError("request", "invalid request")
    return await handle_dispatch_error(request, error)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DispatchError, handle_dispatch_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
