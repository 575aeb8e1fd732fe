"""任务查询路由

GET /tasks: 全部任务，id 倒序，阶段按当前时间调整。
GET /tasks/{task_id}: 任务详情，附带审议消息列表。
"""

from chronos.core.exceptions import MessageRejectedError
from fastapi import APIRouter, Depends

from ..deps import get_query_service
from ..responses import error_response, rejection_response
from ..services.access_control import parse_task_id

router = APIRouter()


@router.get("/tasks")
async def list_tasks(query_service=Depends(get_query_service)):
    """任务列表（最新在前）"""
    return query_service.list_tasks()


@router.get("/tasks/{task_id}")
async def get_task_detail(
    task_id: str,
    query_service=Depends(get_query_service),
):
    """任务详情 -- 非法 id 返回 400，不存在返回 404"""
    try:
        parsed = parse_task_id(task_id)
    except MessageRejectedError as exc:
        return rejection_response(exc)

    detail = query_service.get_task_detail(parsed)
    if detail is None:
        return error_response(404, "TASK_NOT_FOUND", f"Task {parsed} does not exist")
    return detail
