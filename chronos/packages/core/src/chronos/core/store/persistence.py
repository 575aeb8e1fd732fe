"""JSON 文件持久化 -- {"<taskId>": [message, ...]}

整体读取、整体重写。写入先落到同目录临时文件再 os.replace，
进程在写入中途退出时不会留下半截文件。
"""

import asyncio
import json
import os
from pathlib import Path

from pydantic import ValidationError

from ..models.message import DeliberationMessage
from .protocols import PersistResult


class JsonFilePersistence:
    """单文件 JSON 持久化后端"""

    name = "json"

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> PersistResult:
        return await asyncio.to_thread(self._load_sync)

    async def persist(
        self,
        appended: DeliberationMessage,
        snapshot: dict[int, list[DeliberationMessage]],
    ) -> PersistResult:
        payload = {
            str(task_id): [m.to_wire() for m in messages]
            for task_id, messages in snapshot.items()
        }
        return await asyncio.to_thread(self._write_sync, payload)

    async def close(self) -> None:
        return None

    def _load_sync(self) -> PersistResult:
        if not self._path.exists():
            return PersistResult.success()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            return PersistResult.failure(f"{type(exc).__name__}: {exc}")
        if not isinstance(raw, dict):
            return PersistResult.failure("message file root must be an object")

        messages: dict[int, list[DeliberationMessage]] = {}
        try:
            for key, items in raw.items():
                task_id = int(key)
                messages[task_id] = [
                    DeliberationMessage.model_validate(item) for item in items
                ]
        except (ValueError, TypeError, ValidationError) as exc:
            return PersistResult.failure(f"{type(exc).__name__}: {exc}")
        return PersistResult.success(messages)

    def _write_sync(self, payload: dict) -> PersistResult:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp_path, self._path)
        except OSError as exc:
            return PersistResult.failure(f"{type(exc).__name__}: {exc}")
        return PersistResult.success()
