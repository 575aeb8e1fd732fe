"""SSE 消息流路由

GET /tasks/{task_id}/messages/stream: 实时推送指定任务新接受的审议消息。
先推送已有消息，再推送新消息；Last-Event-ID 断线重连；心跳保活；
任务进入 Resolved 后推送 final 事件并结束。
"""

import asyncio
import json
import re

from chronos.core.config import SSE_HEARTBEAT_INTERVAL
from chronos.core.exceptions import MessageRejectedError
from chronos.core.models import DeliberationMessage, Phase
from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from ..deps import get_message_store, get_sse_hub, get_task_store
from ..responses import error_response, rejection_response
from ..services.access_control import parse_task_id

router = APIRouter()

_LAST_EVENT_ID_RE = re.compile(r"[0-9]{1,18}")


def _message_event(seq: int, message: DeliberationMessage) -> dict:
    return {
        "id": str(seq),
        "event": "message",
        "data": json.dumps(message.to_wire(), ensure_ascii=False),
    }


def _sequence_of(messages: list[DeliberationMessage], message: DeliberationMessage) -> int:
    # 按对象身份定位，字段完全相同的两条消息各有自己的序号
    for index in range(len(messages) - 1, -1, -1):
        if messages[index] is message:
            return index + 1
    return 0


def _parse_last_event_id(raw: str | None) -> int:
    if raw and _LAST_EVENT_ID_RE.fullmatch(raw):
        return int(raw)
    return 0


@router.get("/tasks/{task_id}/messages/stream")
async def stream_messages(
    task_id: str,
    request: Request,
    task_store=Depends(get_task_store),
    message_store=Depends(get_message_store),
    sse_hub=Depends(get_sse_hub),
):
    """SSE 消息流端点

    事件 id 为消息在任务内的序号（从 1 开始），重连时跳过已收到的部分。
    """
    try:
        parsed = parse_task_id(task_id)
    except MessageRejectedError as exc:
        return rejection_response(exc)

    if task_store.get(parsed) is None:
        return error_response(404, "TASK_NOT_FOUND", f"Task {parsed} does not exist")

    last_seq = _parse_last_event_id(request.headers.get("last-event-id"))

    def _is_resolved() -> bool:
        return task_store.phase_of(parsed) == Phase.RESOLVED

    def _final_event() -> dict:
        return {"event": "final", "data": json.dumps({"taskId": parsed, "final": True})}

    async def event_generator():
        # 先订阅再读取历史，避免两者之间的消息丢失
        queue = await sse_hub.subscribe(parsed)
        try:
            seq = last_seq
            for message in message_store.list(parsed)[last_seq:]:
                seq += 1
                yield _message_event(seq, message)

            if _is_resolved():
                yield _final_event()
                return

            while True:
                try:
                    message = await asyncio.wait_for(
                        queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                    )
                except TimeoutError:
                    if _is_resolved():
                        yield _final_event()
                        return
                    # 心跳保活
                    yield {"comment": "heartbeat"}
                    continue

                # 订阅与读取历史之间到达的消息会重复出现，按序号去重
                new_seq = _sequence_of(message_store.list(parsed), message)
                if new_seq > seq:
                    seq = new_seq
                    yield _message_event(seq, message)
        finally:
            await sse_hub.unsubscribe(parsed, queue)

    return EventSourceResponse(event_generator())
