"""Chronos Core Store -- 任务快照与审议消息存储

提供工厂函数按配置创建消息存储。
"""

from pathlib import Path

from .message_store import AppendOutcome, MessageStore
from .persistence import JsonFilePersistence
from .protocols import MessagePersistence, PersistResult
from .sqlite_init import init_db
from .sqlite_persistence import SqlitePersistence
from .task_store import TaskSnapshotStore


def create_message_store(
    path: str | Path,
    backend: str = "json",
    cap: int | None = None,
) -> MessageStore:
    """创建审议消息存储

    Args:
        path: 持久化文件路径（json 文件或 sqlite 数据库）
        backend: "json" / "sqlite" / "memory"
        cap: 每个任务的消息上限，None 使用默认值

    Returns:
        未加载的 MessageStore，调用方需先 await load()
    """
    persistence: MessagePersistence | None
    if backend == "sqlite":
        persistence = SqlitePersistence(path)
    elif backend == "memory":
        persistence = None
    elif backend == "json":
        persistence = JsonFilePersistence(path)
    else:
        raise ValueError(f"unknown message store backend: {backend!r}")

    if cap is None:
        return MessageStore(persistence)
    return MessageStore(persistence, cap=cap)


__all__ = [
    "AppendOutcome",
    "JsonFilePersistence",
    "MessagePersistence",
    "MessageStore",
    "PersistResult",
    "SqlitePersistence",
    "TaskSnapshotStore",
    "create_message_store",
    "init_db",
]
