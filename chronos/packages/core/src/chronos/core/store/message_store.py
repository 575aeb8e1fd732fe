"""Deliberation Message Store -- 按任务分组的审议消息

- 每个任务最多保留 cap 条，先到先得，满后拒绝（不淘汰旧消息）
- 追加由 asyncio.Lock 串行化，任务列表整体替换为新列表
- 接受写入前必须先 load()；持久化失败只记日志，不影响内存状态
"""

import asyncio
from enum import StrEnum

import structlog

from ..config import MAX_MESSAGES_PER_TASK
from ..models.message import DeliberationMessage
from .protocols import MessagePersistence

log = structlog.get_logger()


class AppendOutcome(StrEnum):
    STORED = "stored"
    CAP_REACHED = "cap_reached"


class MessageStore:
    """审议消息存储"""

    def __init__(
        self,
        persistence: MessagePersistence | None = None,
        cap: int = MAX_MESSAGES_PER_TASK,
    ) -> None:
        self._persistence = persistence
        self._cap = cap
        self._messages: dict[int, list[DeliberationMessage]] = {}
        self._lock = asyncio.Lock()
        self._loaded = False

    @property
    def cap(self) -> int:
        return self._cap

    @property
    def backend(self) -> str:
        return self._persistence.name if self._persistence is not None else "memory"

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        """从持久化后端恢复；失败时记录日志并以空存储启动"""
        async with self._lock:
            if self._persistence is not None:
                result = await self._persistence.load()
                if result.ok:
                    self._messages = {
                        task_id: list(messages[: self._cap])
                        for task_id, messages in result.messages.items()
                    }
                    await log.ainfo(
                        "message_store_loaded",
                        backend=self.backend,
                        task_count=len(self._messages),
                        message_count=sum(len(m) for m in self._messages.values()),
                    )
                else:
                    await log.awarning(
                        "message_store_load_failed",
                        backend=self.backend,
                        error=result.error,
                    )
            self._loaded = True

    async def append(self, message: DeliberationMessage) -> AppendOutcome:
        """追加一条消息，持久化完成后返回"""
        if not self._loaded:
            await self.load()

        async with self._lock:
            current = self._messages.get(message.task_id, [])
            if len(current) >= self._cap:
                return AppendOutcome.CAP_REACHED

            self._messages[message.task_id] = [*current, message]

            if self._persistence is not None:
                result = await self._persistence.persist(message, self.snapshot())
                if not result.ok:
                    await log.aerror(
                        "message_store_persist_failed",
                        backend=self.backend,
                        task_id=message.task_id,
                        error=result.error,
                    )
            return AppendOutcome.STORED

    def count(self, task_id: int) -> int:
        return len(self._messages.get(task_id, []))

    def snapshot(self) -> dict[int, list[DeliberationMessage]]:
        return {task_id: list(messages) for task_id, messages in self._messages.items()}

    async def close(self) -> None:
        if self._persistence is not None:
            await self._persistence.close()

    # 必须最后定义，否则会遮蔽其他方法注解中的内置 list
    def list(self, task_id: int) -> list[DeliberationMessage]:
        """按插入顺序返回消息，任务不存在时为空列表"""
        return list(self._messages.get(task_id, []))
