"""QueryService -- 只读查询接口

读取任务快照与审议消息，输出对外 JSON 结构。不做任何写入。
"""

from typing import Any

from chronos.core.phase_clock import Clock, SystemClock
from chronos.core.store import MessageStore, TaskSnapshotStore


class QueryService:
    """任务与消息查询服务"""

    def __init__(
        self,
        tasks: TaskSnapshotStore,
        messages: MessageStore,
        clock: Clock | None = None,
    ) -> None:
        self._tasks = tasks
        self._messages = messages
        self._clock = clock or SystemClock()

    def list_tasks(self) -> list[dict[str, Any]]:
        """全部任务，id 倒序，阶段按当前时间调整"""
        return [task.to_wire() for task in self._tasks.list_all()]

    def get_task_detail(self, task_id: int) -> dict[str, Any] | None:
        """任务详情（含消息列表），不存在时返回 None"""
        task = self._tasks.get(task_id)
        if task is None:
            return None
        return {**task.to_wire(), "messages": self.get_messages(task_id)}

    def get_messages(self, task_id: int) -> list[dict[str, Any]]:
        """任务消息，任务或消息不存在时为空列表"""
        return [message.to_wire() for message in self._messages.list(task_id)]

    def health(self) -> dict[str, Any]:
        return {"status": "ok", "timestamp": self._clock.now_ms()}
