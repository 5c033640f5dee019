"""任务核心异常体系

每个异常携带稳定的 code、错误分类和是否可自动重试。
只有 transient 类错误可以自动重试；conflict 需要调用方重新读取后再决定。
"""

from enum import StrEnum


class ErrorCategory(StrEnum):
    """错误分类"""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSIENT = "transient"


class DispatchError(Exception):
    """核心基础异常"""

    code: str = "DISPATCH_ERROR"
    category: ErrorCategory = ErrorCategory.TRANSIENT
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    def to_dict(self) -> dict:
        """序列化为 API 错误体"""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "retryable": self.retryable,
            }
        }


class TaskValidationError(DispatchError):
    """输入校验失败，任何写入之前抛出"""

    code = "VALIDATION_FAILED"
    category = ErrorCategory.VALIDATION
    status_code = 422

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class UnauthenticatedError(DispatchError):
    """请求未携带可识别的身份"""

    code = "UNAUTHENTICATED"
    category = ErrorCategory.AUTHORIZATION
    status_code = 401


class ForbiddenError(DispatchError):
    """角色无权执行该操作"""

    code = "FORBIDDEN"
    category = ErrorCategory.AUTHORIZATION
    status_code = 403

    def __init__(self, role: str, operation: str) -> None:
        super().__init__(f"Role {role} is not permitted to perform {operation}")
        self.role = role
        self.operation = operation


class TaskNotFoundError(DispatchError):
    """任务不存在"""

    code = "TASK_NOT_FOUND"
    category = ErrorCategory.NOT_FOUND
    status_code = 404

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} does not exist")
        self.task_id = task_id


class TaskStateConflictError(DispatchError):
    """条件更新失败：任务状态已不是调用方观察到的状态"""

    code = "TASK_STATE_CONFLICT"
    category = ErrorCategory.CONFLICT
    status_code = 409

    def __init__(self, task_id: str, expected_state: str, actual_state: str | None = None) -> None:
        detail = f", now {actual_state}" if actual_state else ""
        super().__init__(
            f"Task {task_id} is no longer in state {expected_state}{detail}"
        )
        self.task_id = task_id
        self.expected_state = expected_state
        self.actual_state = actual_state


class InvalidTransitionError(DispatchError):
    """流转不在合法流转表中"""

    code = "INVALID_TRANSITION"
    category = ErrorCategory.CONFLICT
    status_code = 409

    def __init__(self, task_id: str, from_state: str, to_state: str) -> None:
        super().__init__(f"Task {task_id} cannot transition from {from_state} to {to_state}")
        self.task_id = task_id
        self.from_state = from_state
        self.to_state = to_state


class TransientStoreError(DispatchError):
    """存储层暂时失败，变更未提交"""

    code = "STORE_UNAVAILABLE"
    category = ErrorCategory.TRANSIENT
    status_code = 503
