"""Store Protocol 接口定义

审议消息持久化后端的抽象接口，使用 Protocol 实现结构化子类型。
后端不抛异常，失败通过 PersistResult 返回，由 MessageStore 记录日志后继续运行。
"""

from dataclasses import dataclass, field
from typing import Protocol

from ..models.message import DeliberationMessage


@dataclass(frozen=True)
class PersistResult:
    """持久化操作结果"""

    ok: bool
    error: str | None = None
    messages: dict[int, list[DeliberationMessage]] = field(default_factory=dict)

    @classmethod
    def success(
        cls, messages: dict[int, list[DeliberationMessage]] | None = None
    ) -> "PersistResult":
        return cls(ok=True, messages=messages or {})

    @classmethod
    def failure(cls, error: str) -> "PersistResult":
        return cls(ok=False, error=error)


class MessagePersistence(Protocol):
    """审议消息持久化接口"""

    name: str

    async def load(self) -> PersistResult:
        """读取全部消息，按任务分组、组内保持插入顺序"""
        ...

    async def persist(
        self,
        appended: DeliberationMessage,
        snapshot: dict[int, list[DeliberationMessage]],
    ) -> PersistResult:
        """持久化一次追加

        appended 为本次新增消息，snapshot 为追加后的完整映射；
        后端可选择增量写入或整体重写。
        """
        ...

    async def close(self) -> None:
        ...
