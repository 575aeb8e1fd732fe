"""统一错误响应 -- {"error": {"code": ..., "message": ...}}"""

from chronos.core.exceptions import MessageRejectedError, RejectionCategory
from starlette.responses import JSONResponse

# 拒绝类别 -> HTTP 状态码
STATUS_BY_CATEGORY: dict[RejectionCategory, int] = {
    RejectionCategory.INVALID_REQUEST: 400,
    RejectionCategory.TASK_NOT_FOUND: 404,
    RejectionCategory.RATE_LIMITED: 429,
    RejectionCategory.INVALID_SIGNATURE: 401,
    RejectionCategory.NOT_A_MEMBER: 403,
    RejectionCategory.MESSAGE_CAP_REACHED: 409,
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def rejection_response(exc: MessageRejectedError) -> JSONResponse:
    return error_response(
        STATUS_BY_CATEGORY[exc.category],
        exc.category.value,
        exc.message,
    )
