"""MessageStore 测试 -- 上限、顺序、持久化后端、重启恢复"""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import aiosqlite
import pytest
from chronos.core.store import (
    AppendOutcome,
    JsonFilePersistence,
    MessageStore,
    PersistResult,
    SqlitePersistence,
    create_message_store,
)
from chronos.core.store.sqlite_init import init_db, verify_wal_mode


class TestMemoryStore:
    async def test_append_preserves_order(self, memory_messages, make_message):
        for i in range(3):
            assert await memory_messages.append(make_message(content=f"m{i}")) == AppendOutcome.STORED
        assert [m.content for m in memory_messages.list(0)] == ["m0", "m1", "m2"]
        assert memory_messages.count(0) == 3
        assert memory_messages.backend == "memory"

    async def test_unknown_task_is_empty(self, memory_messages):
        assert memory_messages.list(12) == []
        assert memory_messages.count(12) == 0

    async def test_cap_is_first_come_first_kept(self, make_message):
        store = MessageStore(cap=2)
        await store.append(make_message(content="a"))
        await store.append(make_message(content="b"))
        assert await store.append(make_message(content="c")) == AppendOutcome.CAP_REACHED
        assert [m.content for m in store.list(0)] == ["a", "b"]

    async def test_cap_is_per_task(self, make_message):
        store = MessageStore(cap=1)
        assert await store.append(make_message(task_id=1)) == AppendOutcome.STORED
        assert await store.append(make_message(task_id=2)) == AppendOutcome.STORED

    async def test_list_returns_copy(self, memory_messages, make_message):
        await memory_messages.append(make_message())
        listed = memory_messages.list(0)
        listed.clear()
        assert memory_messages.count(0) == 1

    async def test_append_loads_first(self, make_message):
        store = MessageStore()
        assert not store.loaded
        await store.append(make_message())
        assert store.loaded


class TestJsonPersistence:
    async def test_survives_restart(self, tmp_store_path: Path, make_message):
        first = create_message_store(tmp_store_path, "json")
        await first.load()
        await first.append(make_message(task_id=0, content="一"))
        await first.append(make_message(task_id=1, content="two"))
        await first.append(make_message(task_id=0, content="three"))
        await first.close()

        raw = json.loads(tmp_store_path.read_text(encoding="utf-8"))
        assert set(raw) == {"0", "1"}
        assert raw["0"][0]["taskId"] == 0

        second = create_message_store(tmp_store_path, "json")
        await second.load()
        assert [m.content for m in second.list(0)] == ["一", "three"]
        assert [m.content for m in second.list(1)] == ["two"]

    async def test_missing_file_starts_empty(self, tmp_path: Path):
        store = MessageStore(JsonFilePersistence(tmp_path / "absent.json"))
        await store.load()
        assert store.loaded
        assert store.snapshot() == {}

    async def test_corrupt_file_starts_empty(self, tmp_store_path: Path, make_message):
        tmp_store_path.write_text("{not json", encoding="utf-8")
        store = MessageStore(JsonFilePersistence(tmp_store_path))
        await store.load()
        assert store.loaded
        assert store.snapshot() == {}

        # 仍可接受写入
        assert await store.append(make_message()) == AppendOutcome.STORED

    async def test_persist_failure_keeps_memory_state(self, tmp_path: Path, make_message):
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        store = MessageStore(JsonFilePersistence(blocker / "messages.json"))
        await store.load()
        assert await store.append(make_message()) == AppendOutcome.STORED
        assert store.count(0) == 1

    async def test_load_truncates_to_cap(self, tmp_store_path: Path, make_message):
        first = MessageStore(JsonFilePersistence(tmp_store_path))
        for i in range(4):
            await first.append(make_message(content=f"m{i}"))

        second = MessageStore(JsonFilePersistence(tmp_store_path), cap=2)
        await second.load()
        assert [m.content for m in second.list(0)] == ["m0", "m1"]


class TestSqlitePersistence:
    async def test_survives_restart(self, tmp_path: Path, make_message):
        db_path = tmp_path / "messages.db"
        first = create_message_store(db_path, "sqlite")
        await first.load()
        assert first.backend == "sqlite"
        await first.append(make_message(task_id=3, content="a"))
        await first.append(make_message(task_id=3, content="b"))
        await first.close()

        second = MessageStore(SqlitePersistence(db_path))
        await second.load()
        assert [m.content for m in second.list(3)] == ["a", "b"]
        await second.close()

    async def test_wal_mode(self, tmp_path: Path):
        conn = await aiosqlite.connect(str(tmp_path / "wal.db"))
        await init_db(conn)
        assert await verify_wal_mode(conn)
        await conn.close()


class TestFactory:
    def test_memory_backend(self, tmp_path: Path):
        store = create_message_store(tmp_path / "x", "memory", cap=3)
        assert store.backend == "memory"
        assert store.cap == 3

    def test_unknown_backend(self, tmp_path: Path):
        with pytest.raises(ValueError):
            create_message_store(tmp_path / "x", "redis")


class TestPersistenceFailures:
    async def test_load_failure_starts_empty(self, make_message):
        persistence = AsyncMock()
        persistence.name = "json"
        persistence.load.return_value = PersistResult.failure("disk on fire")
        persistence.persist.return_value = PersistResult.success()
        store = MessageStore(persistence)

        await store.load()

        assert store.loaded
        assert store.snapshot() == {}
        assert await store.append(make_message()) == AppendOutcome.STORED
        persistence.persist.assert_awaited_once()

    async def test_persist_failure_is_not_raised(self, make_message):
        persistence = AsyncMock()
        persistence.name = "sqlite"
        persistence.load.return_value = PersistResult.success()
        persistence.persist.return_value = PersistResult.failure("locked")
        store = MessageStore(persistence)

        assert await store.append(make_message(content="kept")) == AppendOutcome.STORED
        assert [m.content for m in store.list(0)] == ["kept"]

        await store.close()
        persistence.close.assert_awaited_once()
