"""Task Domain Model -- 链上任务快照

Task 是账本任务状态在内存中的镜像，由 Poller 独占写入。
实例不可变：每次事件应用都会生成新副本并整体替换，读方不会看到半更新的记录。
对外 JSON 使用 camelCase 字段名，与 Agent 脚本和前端保持兼容。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import Phase

MIN_OPTIONS = 2
MAX_OPTIONS = 5


class RevealRecord(BaseModel):
    """单个 Agent 的 reveal 记录"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    agent: str = Field(description="Agent 地址")
    option_index: int = Field(ge=0, description="揭示的选项下标")


class Task(BaseModel):
    """链上任务快照

    不变量：
    - 选项数在 [2,5]，option_votes 长度恒等于选项数
    - agents 无重复且不超过 required_agents
    - reveal_count == sum(option_votes)
    - deliberation_start 为 None 表示尚未满员开始（区别于时间戳 0）
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int = Field(ge=0, description="账本分配的任务 ID")
    creator: str = Field(description="创建者地址")
    description: str = Field(default="", description="任务描述")
    options: list[str] = Field(
        min_length=MIN_OPTIONS,
        max_length=MAX_OPTIONS,
        description="选项标签，创建后固定",
    )
    bounty: str = Field(default="0", description="赏金（链上精度整数，字符串表示）")
    required_agents: int = Field(ge=1, description="满员所需 Agent 数")
    deliberation_duration: int = Field(ge=0, description="审议时长（秒）")
    deliberation_start: int | None = Field(
        default=None,
        description="满员开始时间戳，None 表示未开始",
    )
    cancelled: bool = Field(default=False)
    resolved: bool = Field(default=False)
    winning_option: int = Field(default=0, ge=0)
    is_tie: bool = Field(default=False)
    phase: Phase = Field(default=Phase.OPEN, description="最近一次存储的阶段")
    agents: list[str] = Field(default_factory=list, description="按加入顺序排列的 Agent")
    committed_agents: list[str] = Field(default_factory=list, description="已 commit 的 Agent")
    option_votes: list[int] = Field(default_factory=list, description="各选项票数")
    reveal_count: int = Field(default=0, ge=0)
    reveals: list[RevealRecord] = Field(default_factory=list)

    @field_validator("bounty", mode="before")
    @classmethod
    def _bounty_as_decimal_string(cls, value: Any) -> str:
        if isinstance(value, bool):
            raise ValueError("bounty must be an integer amount")
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and value.isdigit():
            return value
        raise ValueError("bounty must be a non-negative integer amount")

    @model_validator(mode="before")
    @classmethod
    def _default_tallies(cls, data: Any) -> Any:
        # 未给出票数时按选项数补零
        if isinstance(data, dict):
            options = data.get("options")
            has_votes = "option_votes" in data or "optionVotes" in data
            if isinstance(options, list) and not has_votes:
                data = {**data, "option_votes": [0] * len(options)}
        return data

    @model_validator(mode="after")
    def _check_invariants(self) -> "Task":
        if len(self.option_votes) != len(self.options):
            raise ValueError("option_votes length must equal option count")
        if self.reveal_count != sum(self.option_votes):
            raise ValueError("reveal_count must equal sum(option_votes)")
        if len(self.agents) > self.required_agents:
            raise ValueError("agents exceed required_agents")
        if len({a.lower() for a in self.agents}) != len(self.agents):
            raise ValueError("duplicate agent")
        return self

    @property
    def has_started(self) -> bool:
        return self.deliberation_start is not None

    @property
    def is_full(self) -> bool:
        return len(self.agents) >= self.required_agents

    @property
    def is_closed(self) -> bool:
        """已取消或已结算，后续加入 / 投票事件一律忽略"""
        return self.cancelled or self.resolved

    def is_member(self, address: str) -> bool:
        """地址是否为已加入的 Agent（大小写不敏感）"""
        needle = address.lower()
        return any(agent.lower() == needle for agent in self.agents)

    def has_committed(self, address: str) -> bool:
        needle = address.lower()
        return any(agent.lower() == needle for agent in self.committed_agents)

    def has_revealed(self, address: str) -> bool:
        needle = address.lower()
        return any(record.agent.lower() == needle for record in self.reveals)

    def to_wire(self) -> dict[str, Any]:
        """序列化为对外 JSON

        结算前 winningOption / isTie 没有意义，输出为 null。
        """
        data = self.model_dump(mode="json", by_alias=True)
        if not self.resolved:
            data["winningOption"] = None
            data["isTie"] = None
        return data
