"""枚举定义 -- 任务阶段与账本事件类型

Phase 的整数编码与合约、前端、Agent 脚本保持一致。
"""

from enum import IntEnum, StrEnum


class Phase(IntEnum):
    """任务生命周期阶段

    Open -> Deliberation -> Commit -> Reveal -> Resolved，
    取消或已结算的任务直接视为 Resolved。
    """

    OPEN = 0
    DELIBERATION = 1
    COMMIT = 2
    REVEAL = 3
    RESOLVED = 4


class LedgerEventKind(StrEnum):
    """ChronosCore 合约事件名称"""

    TASK_CREATED = "TaskCreated"
    TASK_STARTED = "TaskStarted"
    TASK_CANCELLED = "TaskCancelled"
    AGENT_JOINED = "AgentJoined"
    PHASE_ADVANCED = "PhaseAdvanced"
    COMMIT_SUBMITTED = "CommitSubmitted"
    REVEAL_SUBMITTED = "RevealSubmitted"
    TASK_RESOLVED = "TaskResolved"
