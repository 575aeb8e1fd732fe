"""BodySizeLimitMiddleware -- 拒绝超过上限的请求体（413）"""

import structlog
from chronos.core.config import MAX_BODY_BYTES
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..responses import error_response

log = structlog.get_logger()

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """请求体大小限制中间件

    优先按 Content-Length 判断；没有该头（分块上传）时边读边计数，
    超过上限立即拒绝，不再继续读取。
    """

    def __init__(self, app, max_bytes: int = MAX_BODY_BYTES) -> None:
        super().__init__(app)
        self._max_bytes = max_bytes

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method in _BODY_METHODS:
            declared = request.headers.get("content-length")
            if declared is not None:
                try:
                    size = int(declared)
                except ValueError:
                    return error_response(400, "INVALID_REQUEST", "Invalid Content-Length")
            else:
                size = await self._read_limited(request)

            if size > self._max_bytes:
                await log.ainfo("request_body_too_large", size=size, limit=self._max_bytes)
                return error_response(
                    413,
                    "PAYLOAD_TOO_LARGE",
                    f"Request body exceeds {self._max_bytes} bytes",
                )

        return await call_next(request)

    async def _read_limited(self, request: Request) -> int:
        """读取请求体直到结束或超过上限，返回已读取的字节数"""
        chunks: list[bytes] = []
        size = 0
        async for chunk in request.stream():
            size += len(chunk)
            if size > self._max_bytes:
                return size
            chunks.append(chunk)
        # 与 Request.body() 的缓存方式一致，下游路由读取同一份请求体
        request._body = b"".join(chunks)
        return size
