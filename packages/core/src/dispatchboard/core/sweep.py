"""定时清理 -- 硬过期与保留期回收

一次清理包含：
1. 删除已有归档快照却仍残留在 tasks 表中的行（重试中断的完成操作）
2. 删除 rejection_expires 已过的驳回任务
3. 删除 delete_after 已过的归档快照
4. 调用外部聊天存储清除 14 天前的消息

残留行必须先于过期快照处理。

清理是幂等的，重复执行或并发执行都只会删除同一批数据。
本模块不负责广播，返回被删除的 task_id 由调用方决定是否通知客户端。
"""

from dataclasses import dataclass, field
from datetime import datetime

import structlog

from .config import MESSAGE_RETENTION
from .models.payloads import SweepReport
from .store import StoreGroup
from .store.protocols import MessagePurger

log = structlog.get_logger()


@dataclass
class SweepOutcome:
    """清理结果：汇总 + 被移出 tasks 表的任务 ID"""

    report: SweepReport
    removed_task_ids: list[str] = field(default_factory=list)


async def sweep_expired(
    store_group: StoreGroup,
    now: datetime,
    purger: MessagePurger | None = None,
) -> SweepOutcome:
    """执行一次清理

    Args:
        store_group: Store 实例组
        now: 清理时刻
        purger: 外部聊天存储清理钩子，None 表示跳过消息清理

    Returns:
        SweepOutcome
    """
    async with store_group.transaction():
        leftover_ids = await store_group.task_store.delete_archived_leftovers()
        rejected_ids = await store_group.task_store.delete_expired_rejections(now)
        history_purged = await store_group.history_store.delete_expired(now)

    # 聊天存储不在本库事务内，单独调用
    messages_purged = 0
    if purger is not None:
        messages_purged = await purger.purge_messages_before(now - MESSAGE_RETENTION)

    report = SweepReport(
        history_purged=history_purged,
        rejections_purged=len(rejected_ids),
        messages_purged=messages_purged,
        leftovers_reconciled=len(leftover_ids),
    )
    log.info("sweep_completed", **report.model_dump())
    return SweepOutcome(report=report, removed_task_ids=rejected_ids + leftover_ids)
