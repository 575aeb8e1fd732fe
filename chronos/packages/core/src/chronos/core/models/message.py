"""DeliberationMessage Domain Model -- Agent 审议消息

消息写入后不可变。sender 统一小写，timestamp 由服务端赋值（毫秒）。
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class DeliberationMessage(BaseModel):
    """已通过校验的审议消息"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    task_id: int = Field(ge=0, description="所属任务 ID")
    sender: str = Field(description="发送者地址（小写）")
    content: str = Field(description="消息正文")
    timestamp: int = Field(ge=0, description="服务端接收时间，epoch 毫秒")
    signature: str = Field(description="personal_sign 签名，0x + 130 hex")

    @field_validator("sender")
    @classmethod
    def _lower_sender(cls, value: str) -> str:
        return value.lower()

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
