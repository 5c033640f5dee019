"""SSEHub -- 内存中任务事件广播器

所有已认证客户端共享同一个任务主题。每个订阅者持有一个有界 asyncio.Queue，
订阅时根据角色一次性计算受众成员资格，发布时只投递受众匹配的事件。

publish 是同步方法：调用方在事务提交后立即发布，中间没有 await，
因此同一任务的事件顺序与提交顺序一致。

队列溢出时不尝试补发丢失的事件：清空队列并放入一个重同步标记，
由 SSE 路由重新推送完整快照。
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

import structlog
from dispatchboard.core.capabilities import audiences_for
from dispatchboard.core.config import SSE_QUEUE_MAXSIZE
from dispatchboard.core.models import AUDIENCE_ALL, Actor, EventAction, Task, TaskEvent
from ulid import ULID

log = structlog.get_logger()

# 队列中的重同步标记
RESYNC = None


def build_event(
    action: EventAction,
    task_id: str,
    task: Task | None,
    ts: datetime,
    audience: str = AUDIENCE_ALL,
) -> TaskEvent:
    """构建任务广播事件，任务生命周期事件默认面向所有客户端"""
    return TaskEvent(
        event_id=str(ULID()),
        action=action,
        task_id=task_id,
        task=task,
        audience=audience,
        ts=ts,
    )


@dataclass(eq=False)
class Subscription:
    """单个订阅者"""

    actor: Actor
    audiences: frozenset[str]
    queue: asyncio.Queue
    subscription_id: str = field(default_factory=lambda: str(ULID()))
    resync_count: int = 0


class SSEHub:
    """SSE 事件广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = SSE_QUEUE_MAXSIZE) -> None:
        self._subscribers: set[Subscription] = set()
        self._queue_maxsize = queue_maxsize

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, actor: Actor) -> Subscription:
        """订阅任务主题

        Args:
            actor: 已认证的订阅者

        Returns:
            Subscription，新事件（或重同步标记）会被推送到其队列
        """
        sub = Subscription(
            actor=actor,
            audiences=audiences_for(actor.role),
            queue=asyncio.Queue(maxsize=self._queue_maxsize),
        )
        self._subscribers.add(sub)
        log.debug(
            "sse_subscribed",
            subscription_id=sub.subscription_id,
            actor_id=actor.actor_id,
            audiences=sorted(sub.audiences),
        )
        return sub

    async def unsubscribe(self, sub: Subscription) -> None:
        """取消订阅（重复调用无副作用）"""
        self._subscribers.discard(sub)

    def publish(self, event: TaskEvent) -> int:
        """向受众匹配的订阅者投递事件

        Args:
            event: 已提交变更对应的事件

        Returns:
            成功入队的订阅者数量
        """
        delivered = 0
        for sub in list(self._subscribers):
            if event.audience not in sub.audiences:
                continue
            try:
                sub.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                self._request_resync(sub)
        return delivered

    def _request_resync(self, sub: Subscription) -> None:
        """清空溢出的队列，只留下一个重同步标记"""
        while True:
            try:
                sub.queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        sub.queue.put_nowait(RESYNC)
        sub.resync_count += 1
        log.warning(
            "sse_subscriber_resync",
            subscription_id=sub.subscription_id,
            actor_id=sub.actor.actor_id,
            resync_count=sub.resync_count,
        )
