"""SQLite 持久化 -- 每次追加增量插入一行"""

from pathlib import Path

import aiosqlite

from ..models.message import DeliberationMessage
from .protocols import PersistResult
from .sqlite_init import init_db


class SqlitePersistence:
    """基于 aiosqlite 的审议消息持久化后端

    连接在首次 load() 时建立，close() 释放。
    """

    name = "sqlite"

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def _connect(self) -> aiosqlite.Connection:
        if self._conn is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(self._db_path)
            conn.row_factory = aiosqlite.Row
            await init_db(conn)
            self._conn = conn
        return self._conn

    async def load(self) -> PersistResult:
        try:
            conn = await self._connect()
            cursor = await conn.execute(
                "SELECT task_id, sender, content, timestamp, signature "
                "FROM messages ORDER BY seq"
            )
            rows = await cursor.fetchall()
        except (OSError, aiosqlite.Error) as exc:
            return PersistResult.failure(f"{type(exc).__name__}: {exc}")

        messages: dict[int, list[DeliberationMessage]] = {}
        for row in rows:
            message = DeliberationMessage(
                task_id=row["task_id"],
                sender=row["sender"],
                content=row["content"],
                timestamp=row["timestamp"],
                signature=row["signature"],
            )
            messages.setdefault(message.task_id, []).append(message)
        return PersistResult.success(messages)

    async def persist(
        self,
        appended: DeliberationMessage,
        snapshot: dict[int, list[DeliberationMessage]],
    ) -> PersistResult:
        try:
            conn = await self._connect()
            await conn.execute(
                "INSERT INTO messages (task_id, sender, content, timestamp, signature) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    appended.task_id,
                    appended.sender,
                    appended.content,
                    appended.timestamp,
                    appended.signature,
                ),
            )
            await conn.commit()
        except (OSError, aiosqlite.Error) as exc:
            return PersistResult.failure(f"{type(exc).__name__}: {exc}")
        return PersistResult.success()

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
