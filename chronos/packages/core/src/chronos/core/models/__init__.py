"""Chronos Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import LedgerEventKind, Phase
from .events import (
    AgentJoined,
    CommitSubmitted,
    LedgerEvent,
    PhaseAdvanced,
    RevealSubmitted,
    TaskCancelled,
    TaskCreated,
    TaskResolved,
    TaskStarted,
    ledger_event_adapter,
)
from .message import DeliberationMessage
from .task import MAX_OPTIONS, MIN_OPTIONS, RevealRecord, Task

__all__ = [
    # 枚举
    "Phase",
    "LedgerEventKind",
    # Task
    "Task",
    "RevealRecord",
    "MIN_OPTIONS",
    "MAX_OPTIONS",
    # Message
    "DeliberationMessage",
    # 账本事件
    "LedgerEvent",
    "ledger_event_adapter",
    "TaskCreated",
    "TaskStarted",
    "TaskCancelled",
    "AgentJoined",
    "PhaseAdvanced",
    "CommitSubmitted",
    "RevealSubmitted",
    "TaskResolved",
]
