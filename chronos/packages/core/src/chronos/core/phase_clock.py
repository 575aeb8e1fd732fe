"""Phase Clock -- 基于墙钟时间推导任务阶段

合约只在满员时记录开始时间，不会在截止时间到达时发出事件，
因此对外返回的阶段必须在读取时按当前时间重新计算。
"""

import time
from typing import NamedTuple, Protocol

from .config import COMMIT_WINDOW_S, REVEAL_WINDOW_S
from .models.enums import Phase
from .models.task import Task


class Clock(Protocol):
    """时间来源接口，测试中注入 FakeClock"""

    def now(self) -> int:
        """当前 Unix 时间（秒）"""
        ...

    def now_ms(self) -> int:
        """当前 Unix 时间（毫秒）"""
        ...


class SystemClock:
    """系统墙钟"""

    def now(self) -> int:
        return int(time.time())

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class PhaseDeadlines(NamedTuple):
    deliberation_end: int
    commit_end: int
    reveal_end: int


def phase_deadlines(task: Task) -> PhaseDeadlines | None:
    """计算三个阶段边界；尚未开始的任务返回 None"""
    if task.deliberation_start is None:
        return None
    deliberation_end = task.deliberation_start + task.deliberation_duration
    commit_end = deliberation_end + COMMIT_WINDOW_S
    reveal_end = commit_end + REVEAL_WINDOW_S
    return PhaseDeadlines(deliberation_end, commit_end, reveal_end)


def effective_phase(task: Task, now: int) -> Phase:
    """按当前时间推导阶段（纯函数）

    边界时刻属于后一个阶段：now == deliberation_end 即进入 Commit。
    """
    if task.cancelled or task.resolved:
        return Phase.RESOLVED

    deadlines = phase_deadlines(task)
    if deadlines is None:
        return Phase.OPEN

    if now >= deadlines.reveal_end:
        return Phase.RESOLVED
    if now >= deadlines.commit_end:
        return Phase.REVEAL
    if now >= deadlines.deliberation_end:
        return Phase.COMMIT
    return Phase.DELIBERATION


def with_effective_phase(task: Task, now: int) -> Task:
    """返回携带计算阶段的副本，阶段未变化时返回原实例"""
    phase = effective_phase(task, now)
    if phase == task.phase:
        return task
    return task.model_copy(update={"phase": phase})
