"""任务字段规则 -- 签名、截止时间、驳回理由、保留期限

纯函数，不访问存储。校验失败抛出 TaskValidationError。
"""

import re
from datetime import datetime

from .config import HISTORY_RETENTION, REJECTION_REASON_MAX_LENGTH, REJECTION_TTL
from .exceptions import TaskValidationError
from .models.enums import URGENCY_DURATIONS, Category, TaskState, Urgency
from .models.task import Task

_SIGNATURE_STRIP = re.compile(r"[.\s]")
_SIGNATURE_LETTERS = re.compile(r"^[A-Za-z]{2}$")


def format_signature(raw: str) -> str:
    """格式化两字母签名：jd / J.D / "j d" -> J.D

    Raises:
        TaskValidationError: 去掉点和空白后不是恰好两个字母
    """
    clean = _SIGNATURE_STRIP.sub("", raw or "")
    if not _SIGNATURE_LETTERS.match(clean):
        raise TaskValidationError("signature", "must be exactly 2 letters")
    clean = clean.upper()
    return f"{clean[0]}.{clean[1]}"


def parse_urgency(raw: str) -> Urgency:
    try:
        return Urgency(raw)
    except ValueError:
        raise TaskValidationError("urgency", f"invalid urgency value {raw!r}") from None


def parse_category(raw: str) -> Category:
    try:
        return Category(raw)
    except ValueError:
        raise TaskValidationError("category", f"invalid or missing category {raw!r}") from None


def normalize_description(raw: str) -> str:
    description = (raw or "").strip()
    if not description:
        raise TaskValidationError("description", "description required")
    return description


def compute_deadline(created_at: datetime, urgency: Urgency) -> datetime:
    """deadline = created_at + duration(urgency)，只在创建时调用"""
    return created_at + URGENCY_DURATIONS[urgency]


def normalize_rejection_reason(raw: str | None) -> str:
    """驳回理由：去除首尾空白后非空且不超过 150 字符"""
    reason = (raw or "").strip()
    if not reason:
        raise TaskValidationError("reason", "rejection reason required")
    if len(reason) > REJECTION_REASON_MAX_LENGTH:
        raise TaskValidationError(
            "reason",
            f"reason must be {REJECTION_REASON_MAX_LENGTH} characters or less",
        )
    return reason


def rejection_expiry(rejected_at: datetime) -> datetime:
    return rejected_at + REJECTION_TTL


def is_soft_expired(task: Task, now: datetime) -> bool:
    """被驳回且已过可见期的任务（行可能仍在 tasks 表中）"""
    return (
        task.state == TaskState.REJECTED
        and task.rejection_expires is not None
        and task.rejection_expires < now
    )


def history_delete_after(completed_at: datetime) -> datetime:
    return completed_at + HISTORY_RETENTION
