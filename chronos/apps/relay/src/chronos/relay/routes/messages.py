"""审议消息路由

GET /tasks/{task_id}/messages: 消息列表，任务不存在时返回空列表。
POST /tasks/{task_id}/messages: 提交签名消息，经 Access Control 流水线校验。
"""

import json

from chronos.core.exceptions import InvalidRequestError, MessageRejectedError
from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse

from ..deps import get_message_gate, get_query_service
from ..responses import rejection_response
from ..services.access_control import parse_task_id

router = APIRouter()


@router.get("/tasks/{task_id}/messages")
async def list_messages(
    task_id: str,
    query_service=Depends(get_query_service),
):
    try:
        parsed = parse_task_id(task_id)
    except MessageRejectedError as exc:
        return rejection_response(exc)
    return query_service.get_messages(parsed)


@router.post("/tasks/{task_id}/messages")
async def post_message(
    task_id: str,
    request: Request,
    gate=Depends(get_message_gate),
):
    """提交审议消息

    请求体: {"content", "signature", "sender"}，可选 "taskId"
    - 成功返回 201 + 存储的消息
    - 拒绝返回对应状态码 + 错误信封
    """
    try:
        payload = await _read_json(request)
        message = await gate.submit(task_id, payload)
    except MessageRejectedError as exc:
        return rejection_response(exc)

    return JSONResponse(status_code=201, content=message.to_wire())


async def _read_json(request: Request):
    body = await request.body()
    if not body:
        raise InvalidRequestError("Missing content, signature, or sender")
    try:
        return json.loads(body)
    except ValueError as exc:
        raise InvalidRequestError("Request body is not valid JSON") from exc
