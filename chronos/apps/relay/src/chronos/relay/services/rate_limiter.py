"""RateLimiter -- 按发送者的固定窗口限流

桶在首次请求时惰性创建，仅存在于内存。
窗口内第一条消息计数为 1，之后每条（包括被拒绝的）都会累加。
hit() 内部没有 await，在事件循环中对单个 key 的读改写是原子的。
"""

from dataclasses import dataclass

from chronos.core.config import RATE_LIMIT_MAX, RATE_LIMIT_WINDOW_S
from chronos.core.phase_clock import Clock, SystemClock


@dataclass
class RateBucket:
    count: int
    reset_at: int  # epoch 毫秒


class RateLimiter:
    """固定窗口限流器"""

    def __init__(
        self,
        max_messages: int = RATE_LIMIT_MAX,
        window_s: int = RATE_LIMIT_WINDOW_S,
        clock: Clock | None = None,
        prune_threshold: int = 10_000,
    ) -> None:
        self._max_messages = max_messages
        self._window_ms = window_s * 1000
        self._clock = clock or SystemClock()
        self._buckets: dict[str, RateBucket] = {}
        self._prune_threshold = prune_threshold

    def hit(self, sender: str) -> bool:
        """记录一次请求

        Returns:
            True 表示已超限，请求应被拒绝
        """
        key = sender.lower()
        now = self._clock.now_ms()
        bucket = self._buckets.get(key)
        if bucket is None or now >= bucket.reset_at:
            if bucket is None and len(self._buckets) >= self._prune_threshold:
                self.prune()
            self._buckets[key] = RateBucket(count=1, reset_at=now + self._window_ms)
            return False
        bucket.count += 1
        return bucket.count > self._max_messages

    def bucket(self, sender: str) -> RateBucket | None:
        return self._buckets.get(sender.lower())

    def prune(self) -> int:
        """清理已过期的桶，返回清理数量"""
        now = self._clock.now_ms()
        expired = [key for key, bucket in self._buckets.items() if now >= bucket.reset_at]
        for key in expired:
            del self._buckets[key]
        return len(expired)
