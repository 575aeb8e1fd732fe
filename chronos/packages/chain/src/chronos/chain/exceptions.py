"""Chain 异常体系

LedgerError 为账本访问的基础异常，Poller 捕获后记录日志并在下一轮重试。
"""


class LedgerError(Exception):
    """账本访问基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过下一轮重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class LedgerUnavailableError(LedgerError):
    """RPC 节点不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, endpoint: str, original_error: Exception) -> None:
        """
        Args:
            endpoint: 尝试连接的 RPC 地址
            original_error: 原始异常
        """
        detail = str(original_error) or type(original_error).__name__
        super().__init__(
            f"RPC 节点不可达: {endpoint} -- {detail}",
            recoverable=True,
        )
        self.endpoint = endpoint
        self.original_error = original_error


class EventDecodeError(LedgerError):
    """日志字段缺失或类型非法，该条日志被丢弃"""

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(f"{kind}: {reason}", recoverable=True)
        self.kind = kind
        self.reason = reason
