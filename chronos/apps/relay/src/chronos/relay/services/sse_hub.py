"""SSEHub -- 内存中审议消息广播器

每个订阅者持有一个 asyncio.Queue，支持 subscribe/unsubscribe/broadcast。
队列写满的订阅者视为掉线，直接移除。
"""

import asyncio
from collections import defaultdict

from chronos.core.models import DeliberationMessage


class SSEHub:
    """SSE 消息广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = 100) -> None:
        # task_id -> set of asyncio.Queue
        self._subscribers: dict[int, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    def subscriber_count(self, task_id: int) -> int:
        return len(self._subscribers.get(task_id, ()))

    async def subscribe(self, task_id: int) -> asyncio.Queue:
        """订阅指定任务的新消息

        Returns:
            asyncio.Queue 实例，新消息会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[task_id].add(queue)
        return queue

    async def unsubscribe(self, task_id: int, queue: asyncio.Queue) -> None:
        self._subscribers[task_id].discard(queue)
        if not self._subscribers[task_id]:
            del self._subscribers[task_id]

    async def broadcast(self, task_id: int, message: DeliberationMessage) -> None:
        """向指定任务的所有订阅者广播消息"""
        dead_queues = []
        for queue in self._subscribers.get(task_id, set()):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        # 清理已满的队列
        for q in dead_queues:
            self._subscribers[task_id].discard(q)
        if task_id in self._subscribers and not self._subscribers[task_id]:
            del self._subscribers[task_id]
