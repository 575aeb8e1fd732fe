"""健康检查路由

GET /health: Liveness 检查，永远返回 200 + 服务端时间戳（毫秒）。
GET /ready: Readiness 检查，包含消息存储加载状态与 Poller 同步进度。
"""

from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse

from ..deps import get_message_store, get_poller, get_query_service, get_task_store

router = APIRouter()


@router.get("/health")
async def health(query_service=Depends(get_query_service)):
    """Liveness 检查 -- 永远返回 200"""
    return query_service.health()


@router.get("/ready")
async def ready(
    request: Request,
    task_store=Depends(get_task_store),
    message_store=Depends(get_message_store),
    poller=Depends(get_poller),
):
    """Readiness 检查

    检查项：
    1. message_store: 已完成 load（接受写入的前提）
    2. poller: 至少完成过一次同步（last_seen 已设置）
    """
    checks: dict = {}
    all_ok = True

    if message_store.loaded:
        checks["message_store"] = "ok"
    else:
        checks["message_store"] = "not_loaded"
        all_ok = False
    checks["message_backend"] = message_store.backend

    if poller is None:
        checks["poller"] = "disabled"
        all_ok = False
    else:
        state = poller.state
        checks["poller"] = "ok" if state.last_seen is not None else "syncing"
        checks["last_seen_block"] = state.last_seen
        checks["last_tick"] = state.last_tick.status.value if state.last_tick else None
        checks["sync_mode"] = poller.sync_mode.value
        if state.last_seen is None:
            all_ok = False

    checks["task_count"] = len(task_store)

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
