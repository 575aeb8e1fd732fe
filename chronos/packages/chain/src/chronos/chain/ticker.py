"""IntervalTicker -- 固定间隔驱动异步回调，直到停止信号置位"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any


class IntervalTicker:
    """固定间隔调度器

    回调立即执行一次，此后每隔 interval_s 秒执行；
    stop 置位后在当前回调结束时退出，不会等满一个间隔。
    """

    def __init__(self, interval_s: float) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self._interval_s = interval_s
        self.ticks = 0

    @property
    def interval_s(self) -> float:
        return self._interval_s

    async def run(
        self,
        stop: asyncio.Event,
        callback: Callable[[], Awaitable[Any]],
    ) -> None:
        while not stop.is_set():
            await callback()
            self.ticks += 1
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval_s)
            except TimeoutError:
                continue
