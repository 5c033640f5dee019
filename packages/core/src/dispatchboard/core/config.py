"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、SSE 心跳、定时清理间隔等可配置常量，
以及任务生命周期中固定的保留窗口。
"""

import os
from datetime import timedelta
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("DISPATCHBOARD_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "DISPATCHBOARD_DB_PATH",
        str(_get_base_dir() / "sqlite" / "dispatchboard.db"),
    )


def get_sweep_interval_s() -> int:
    """获取进程内定时清理间隔（秒），0 表示不启动"""
    return int(os.environ.get("DISPATCHBOARD_SWEEP_INTERVAL_S", "3600"))


# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("DISPATCHBOARD_SSE_HEARTBEAT_INTERVAL", "15")
)

# 每个订阅者的事件队列上限，溢出后触发快照重同步
SSE_QUEUE_MAXSIZE: int = int(
    os.environ.get("DISPATCHBOARD_SSE_QUEUE_MAXSIZE", "100")
)

# 被驳回任务的可见时长
REJECTION_TTL: timedelta = timedelta(hours=1)

# 驳回理由最大长度
REJECTION_REASON_MAX_LENGTH: int = 150

# 已完成任务快照保留时长（约 6 个月）
HISTORY_RETENTION: timedelta = timedelta(days=180)

# 聊天消息保留时长
MESSAGE_RETENTION: timedelta = timedelta(days=14)
