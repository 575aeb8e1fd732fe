"""TraceMiddleware -- 为任务相关请求绑定 task_id

/tasks/{id}/... 路径上的 id 绑定到 structlog contextvars，
同一任务的请求日志可以按 task_id 聚合。
"""

import re

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_TASK_ID_RE = re.compile(r"[0-9]{1,18}")


def extract_task_id(path: str) -> int | None:
    """从 /tasks/{id} 形式的路径中提取十进制 task id"""
    parts = path.split("/")
    for i, part in enumerate(parts):
        if part == "tasks" and i + 1 < len(parts):
            candidate = parts[i + 1]
            if _TASK_ID_RE.fullmatch(candidate):
                return int(candidate)
            return None
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        task_id = extract_task_id(request.url.path)
        if task_id is not None:
            structlog.contextvars.bind_contextvars(task_id=task_id)

        return await call_next(request)
