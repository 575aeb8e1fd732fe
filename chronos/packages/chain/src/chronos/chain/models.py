"""Chain 数据模型 -- 原始日志与合约任务记录"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RawLog(BaseModel):
    """已按 ABI 解出参数、尚未转换为领域事件的日志"""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(description="事件名称")
    fields: dict[str, Any] = Field(default_factory=dict, description="事件参数（ABI 原名）")
    block_number: int = Field(ge=0, description="所在区块号")
    log_index: int = Field(ge=0, description="区块内日志序号")
    block_timestamp: int | None = Field(default=None, description="区块时间戳（秒）")

    @property
    def position(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)


class LedgerTaskRecord(BaseModel):
    """getTask 返回的任务记录

    deliberation_start 为 0 表示合约中尚未开始。
    """

    model_config = ConfigDict(frozen=True)

    creator: str
    description: str = ""
    bounty: int = Field(default=0, ge=0)
    required_agents: int = Field(ge=1)
    deliberation_duration: int = Field(ge=0)
    deliberation_start: int = Field(default=0, ge=0)
    cancelled: bool = False
    resolved: bool = False
    winning_option: int = Field(default=0, ge=0)
    is_tie: bool = False
