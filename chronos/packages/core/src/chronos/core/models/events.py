"""账本事件模型 -- 已解码的 ChronosCore 合约事件

LedgerEvent 是封闭的判别联合类型，由 kind 字段区分。
所有事件都带有来源区块号与日志序号，用于排序与去重。
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .enums import LedgerEventKind, Phase


class _LedgerEventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: int = Field(ge=0, description="任务 ID")
    block_number: int = Field(default=0, ge=0, description="来源区块号")
    log_index: int = Field(default=0, ge=0, description="区块内日志序号")

    @property
    def position(self) -> tuple[int, int]:
        """(block_number, log_index)，账本内唯一"""
        return (self.block_number, self.log_index)


class TaskCreated(_LedgerEventBase):
    kind: Literal[LedgerEventKind.TASK_CREATED] = LedgerEventKind.TASK_CREATED
    creator: str
    description: str = ""
    options: list[str]
    required_agents: int = Field(ge=1)
    deliberation_duration: int = Field(ge=0)
    bounty: str = "0"


class TaskStarted(_LedgerEventBase):
    kind: Literal[LedgerEventKind.TASK_STARTED] = LedgerEventKind.TASK_STARTED
    deliberation_start: int = Field(ge=0)


class TaskCancelled(_LedgerEventBase):
    kind: Literal[LedgerEventKind.TASK_CANCELLED] = LedgerEventKind.TASK_CANCELLED


class AgentJoined(_LedgerEventBase):
    """Agent 加入

    joined_at 为所在区块时间戳；加入恰好满员时可用它设置开始时间，
    不依赖 TaskStarted 日志。
    """

    kind: Literal[LedgerEventKind.AGENT_JOINED] = LedgerEventKind.AGENT_JOINED
    agent: str
    joined_at: int | None = None


class PhaseAdvanced(_LedgerEventBase):
    kind: Literal[LedgerEventKind.PHASE_ADVANCED] = LedgerEventKind.PHASE_ADVANCED
    new_phase: Phase


class CommitSubmitted(_LedgerEventBase):
    kind: Literal[LedgerEventKind.COMMIT_SUBMITTED] = LedgerEventKind.COMMIT_SUBMITTED
    agent: str


class RevealSubmitted(_LedgerEventBase):
    kind: Literal[LedgerEventKind.REVEAL_SUBMITTED] = LedgerEventKind.REVEAL_SUBMITTED
    agent: str
    option_index: int = Field(ge=0)


class TaskResolved(_LedgerEventBase):
    kind: Literal[LedgerEventKind.TASK_RESOLVED] = LedgerEventKind.TASK_RESOLVED
    winning_option: int = Field(ge=0)
    is_tie: bool = False


LedgerEvent = Annotated[
    TaskCreated
    | TaskStarted
    | TaskCancelled
    | AgentJoined
    | PhaseAdvanced
    | CommitSubmitted
    | RevealSubmitted
    | TaskResolved,
    Field(discriminator="kind"),
]

ledger_event_adapter: TypeAdapter[LedgerEvent] = TypeAdapter(LedgerEvent)
