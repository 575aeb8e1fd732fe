"""Core 异常体系

ChronosError 为包内基础异常。
MessageRejectedError 家族携带稳定的拒绝类别，供 HTTP 层映射为响应，
内部细节不会越过边界。
"""

from enum import StrEnum


class ChronosError(Exception):
    """Chronos 基础异常"""


class ConfigurationError(ChronosError):
    """配置缺失或非法 -- 进程拒绝启动"""


class InvalidTaskError(ChronosError):
    """账本任务数据违反不变量（如选项数不在 [2,5]）"""

    def __init__(self, task_id: int, reason: str) -> None:
        super().__init__(f"task #{task_id}: {reason}")
        self.task_id = task_id
        self.reason = reason


class RejectionCategory(StrEnum):
    """消息提交的拒绝类别"""

    INVALID_REQUEST = "INVALID_REQUEST"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    NOT_A_MEMBER = "NOT_A_MEMBER"
    MESSAGE_CAP_REACHED = "MESSAGE_CAP_REACHED"


class MessageRejectedError(ChronosError):
    """消息提交被拒绝（校验流水线中首个失败的阶段）"""

    category: RejectionCategory = RejectionCategory.INVALID_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(MessageRejectedError):
    """请求结构非法：task id、content、signature、sender 格式"""

    category = RejectionCategory.INVALID_REQUEST


class TaskNotFoundError(MessageRejectedError):
    category = RejectionCategory.TASK_NOT_FOUND


class RateLimitedError(MessageRejectedError):
    category = RejectionCategory.RATE_LIMITED


class InvalidSignatureError(MessageRejectedError):
    """签名无法恢复，或恢复出的地址与声明的 sender 不一致"""

    category = RejectionCategory.INVALID_SIGNATURE


class NotAMemberError(MessageRejectedError):
    """签名有效，但 sender 不是该任务的已注册 Agent"""

    category = RejectionCategory.NOT_A_MEMBER


class MessageCapReachedError(MessageRejectedError):
    category = RejectionCategory.MESSAGE_CAP_REACHED
