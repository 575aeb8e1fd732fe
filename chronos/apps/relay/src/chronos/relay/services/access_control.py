"""Access Control Layer -- 审议消息提交的校验流水线

按顺序执行，首个失败即返回：
1. 结构校验（task id、content、signature、sender 格式）
2. 任务存在
3. 发送者限流
4. 签名恢复并与 sender 比对
5. sender 是该任务已加入的 Agent
全部通过后写入消息存储并广播给 SSE 订阅者。
"""

import re
from typing import Any

import structlog
from chronos.chain.signature import build_signed_payload, verify_signer
from chronos.core.config import MAX_CONTENT_LENGTH
from chronos.core.exceptions import (
    InvalidRequestError,
    InvalidSignatureError,
    MessageCapReachedError,
    MessageRejectedError,
    NotAMemberError,
    RateLimitedError,
    TaskNotFoundError,
)
from chronos.core.models import DeliberationMessage
from chronos.core.phase_clock import Clock, SystemClock
from chronos.core.store import AppendOutcome, MessageStore, TaskSnapshotStore
from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from .rate_limiter import RateLimiter
from .sse_hub import SSEHub

log = structlog.get_logger()

SIGNATURE_PATTERN = r"^0x[0-9a-fA-F]{130}$"
ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"

_TASK_ID_RE = re.compile(r"[0-9]{1,18}")


class PostMessageRequest(BaseModel):
    """POST /tasks/{id}/messages 请求体"""

    model_config = ConfigDict(populate_by_name=True)

    content: StrictStr = Field(
        min_length=1,
        max_length=MAX_CONTENT_LENGTH,
        description="消息正文",
    )
    signature: StrictStr = Field(pattern=SIGNATURE_PATTERN, description="personal_sign 签名")
    sender: StrictStr = Field(pattern=ADDRESS_PATTERN, description="发送者地址")
    task_id: int | None = Field(
        default=None,
        alias="taskId",
        description="可选；出现时必须与路径中的 task id 一致",
    )


def parse_task_id(raw: Any) -> int:
    """解析路径中的 task id，只接受非负十进制整数

    Raises:
        InvalidRequestError: 格式非法
    """
    if isinstance(raw, int) and not isinstance(raw, bool):
        if raw < 0:
            raise InvalidRequestError("Invalid task ID")
        return raw
    if isinstance(raw, str) and _TASK_ID_RE.fullmatch(raw):
        return int(raw)
    raise InvalidRequestError("Invalid task ID")


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"{location}: {first.get('msg', 'invalid value')}"


class MessageGate:
    """审议消息提交入口"""

    def __init__(
        self,
        tasks: TaskSnapshotStore,
        messages: MessageStore,
        rate_limiter: RateLimiter | None = None,
        clock: Clock | None = None,
        hub: SSEHub | None = None,
    ) -> None:
        self._tasks = tasks
        self._messages = messages
        self._clock = clock or SystemClock()
        self._rate_limiter = rate_limiter or RateLimiter(clock=self._clock)
        self._hub = hub

    async def submit(self, raw_task_id: Any, payload: Any) -> DeliberationMessage:
        """校验并存储一条审议消息

        Returns:
            已存储的消息（sender 小写，timestamp 为服务端毫秒时间）

        Raises:
            MessageRejectedError: 任一阶段失败，category 标明拒绝类别
        """
        try:
            return await self._submit(raw_task_id, payload)
        except MessageRejectedError as exc:
            sender = payload.get("sender") if isinstance(payload, dict) else None
            log_fn = log.awarning if isinstance(exc, InvalidSignatureError) else log.ainfo
            await log_fn(
                "message_rejected",
                category=exc.category.value,
                task_id=str(raw_task_id),
                sender=sender if isinstance(sender, str) else None,
                reason=exc.message,
            )
            raise

    async def _submit(self, raw_task_id: Any, payload: Any) -> DeliberationMessage:
        # 1. 结构校验
        task_id = parse_task_id(raw_task_id)
        if not isinstance(payload, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        try:
            request = PostMessageRequest.model_validate(payload)
        except ValidationError as exc:
            raise InvalidRequestError(_describe_validation_error(exc)) from exc
        if request.task_id is not None and request.task_id != task_id:
            raise InvalidRequestError("taskId in body does not match path")

        # 2. 任务存在
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError("Task not found")

        # 3. 限流
        sender = request.sender.lower()
        if self._rate_limiter.hit(sender):
            raise RateLimitedError("Rate limit exceeded")

        # 4. 签名
        signed_text = build_signed_payload(task_id, request.content)
        if not verify_signer(signed_text, request.signature, request.sender):
            raise InvalidSignatureError("Invalid signature")

        # 5. 成员资格
        if not task.is_member(sender):
            raise NotAMemberError("Sender is not a registered agent for this task")

        message = DeliberationMessage(
            task_id=task_id,
            sender=sender,
            content=request.content,
            timestamp=self._clock.now_ms(),
            signature=request.signature,
        )
        outcome = await self._messages.append(message)
        if outcome is AppendOutcome.CAP_REACHED:
            raise MessageCapReachedError(
                f"Task has reached the limit of {self._messages.cap} messages"
            )

        await log.ainfo(
            "message_accepted",
            task_id=task_id,
            sender=sender,
            length=len(request.content),
        )
        if self._hub is not None:
            await self._hub.broadcast(task_id, message)
        return message
