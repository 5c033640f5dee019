"""时间工具

所有时间戳统一为 UTC aware datetime；落盘时使用固定精度的 ISO 字符串，
保证 SQLite 中按字符串比较与按时间比较一致。
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """当前 UTC 时间"""
    return datetime.now(UTC)


def to_db_ts(value: datetime) -> str:
    """转换为落盘格式（UTC，微秒精度）"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_ts(value: str) -> datetime:
    """从落盘格式还原"""
    return datetime.fromisoformat(value)
