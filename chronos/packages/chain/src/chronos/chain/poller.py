"""Chain Poller -- 按固定间隔把账本事件同步到任务快照

- tick 串行执行：上一轮未结束时新一轮直接跳过
- (last_seen, current] 按 max_block_span 切成闭区间子段，逐段拉取、解码、应用
- 只有全部子段成功后 last_seen 才前进；失败时下一轮从同一位置重试
- 未提交窗口内已应用日志的 (block, log_index) 记录在 pending_keys 中，
  重试时跳过，保证每条日志恰好应用一次
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import StrEnum

import structlog
from pydantic import ValidationError

from chronos.core.exceptions import InvalidTaskError
from chronos.core.models import Task
from chronos.core.phase_clock import Clock, SystemClock, with_effective_phase
from chronos.core.projection import apply_event
from chronos.core.store.task_store import TaskSnapshotStore

from .client import LedgerClient
from .config import ChainConfig, SyncMode
from .decoder import decode_logs
from .models import LedgerTaskRecord
from .ticker import IntervalTicker

log = structlog.get_logger()


class TickStatus(StrEnum):
    SKIPPED = "skipped"  # 上一轮仍在运行
    IDLE = "idle"  # 没有新区块
    SYNCED = "synced"
    FAILED = "failed"


@dataclass(frozen=True)
class TickResult:
    status: TickStatus
    from_block: int | None = None
    to_block: int | None = None
    events: int = 0
    error: str | None = None


@dataclass
class PollerState:
    """Poller 的全部可变状态"""

    last_seen: int | None = None
    running: bool = False
    pending_keys: set[tuple[int, int]] = field(default_factory=set)
    # 冷启动回放起点，首轮确定后固定，重试不漂移
    replay_from: int | None = None
    last_tick: TickResult | None = None
    hydrated: bool = False


def block_ranges(start: int, end: int, max_span: int) -> list[tuple[int, int]]:
    """把闭区间 [start, end] 切成跨度不超过 max_span 的闭区间子段"""
    if max_span < 1:
        raise ValueError("max_span must be >= 1")
    ranges: list[tuple[int, int]] = []
    lo = start
    while lo <= end:
        hi = min(lo + max_span - 1, end)
        ranges.append((lo, hi))
        lo = hi + 1
    return ranges


class ChainPoller:
    """账本同步器，Task Snapshot Store 的唯一写入方"""

    def __init__(
        self,
        ledger: LedgerClient,
        store: TaskSnapshotStore,
        clock: Clock | None = None,
        config: ChainConfig | None = None,
        *,
        poll_interval_s: float = 5.0,
        max_block_span: int = 100,
        lookback_blocks: int = 5000,
        sync_mode: SyncMode = SyncMode.REPLAY,
        expected_chain_id: int | None = None,
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._clock = clock or SystemClock()
        if config is not None:
            poll_interval_s = config.poll_interval_s
            max_block_span = config.max_block_span
            lookback_blocks = config.lookback_blocks
            sync_mode = config.sync_mode
            expected_chain_id = config.chain_id
        self._poll_interval_s = poll_interval_s
        self._max_block_span = max_block_span
        self._lookback_blocks = lookback_blocks
        self._sync_mode = sync_mode
        self._expected_chain_id = expected_chain_id
        self.state = PollerState()
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @property
    def sync_mode(self) -> SyncMode:
        return self._sync_mode

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ---- 启动 ----

    async def bootstrap(self) -> None:
        """启动前准备：校验链 ID，按配置执行批量水合

        水合失败只记录日志，下一轮 tick 退回事件回放。
        """
        await self._check_chain_id()
        if self._sync_mode != SyncMode.HYDRATE:
            return
        try:
            await self.hydrate()
        except Exception as e:
            await log.aerror(
                "hydration_failed",
                error=str(e),
                error_type=type(e).__name__,
                fallback=SyncMode.REPLAY.value,
            )

    async def _check_chain_id(self) -> None:
        if self._expected_chain_id is None:
            return
        try:
            actual = await self._ledger.chain_id()
        except Exception as e:
            await log.awarning("chain_id_check_failed", error=str(e))
            return
        if actual != self._expected_chain_id:
            await log.awarning(
                "chain_id_mismatch",
                expected=self._expected_chain_id,
                actual=actual,
            )

    async def hydrate(self) -> int:
        """在固定高度 H 读取全部任务状态并写入快照，然后 last_seen = H

        所有读取都指定同一高度，避免与 H 之后的事件重复计票。
        reveal 明细无法通过状态读取恢复，保持为空。

        Returns:
            写入的任务数
        """
        start_time = time.monotonic()
        height = await self._ledger.block_number()
        count = await self._ledger.task_count(height)
        await log.ainfo("hydration_started", block=height, task_count=count)

        snapshots: list[Task] = []
        for task_id in range(count):
            record = await self._ledger.get_task(task_id, height)
            options = await self._ledger.get_options(task_id, height)
            agents = await self._ledger.get_agents(task_id, height)
            reveal_count = await self._ledger.get_reveal_count(task_id, height)
            votes = [
                await self._ledger.get_option_votes(task_id, index, height)
                for index in range(len(options))
            ]
            try:
                task = self._snapshot_from_record(
                    task_id, record, options, agents, reveal_count, votes
                )
            except (InvalidTaskError, ValidationError) as e:
                await log.awarning("hydration_task_skipped", task_id=task_id, error=str(e))
                continue
            snapshots.append(task)

        # 全部读取成功后再写入，失败时不留下半套快照
        for task in snapshots:
            self._store.apply_snapshot(task)
        self.state.last_seen = height
        self.state.hydrated = True

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        await log.ainfo(
            "hydration_completed",
            block=height,
            task_count=len(snapshots),
            elapsed_ms=elapsed_ms,
        )
        return len(snapshots)

    def _snapshot_from_record(
        self,
        task_id: int,
        record: LedgerTaskRecord,
        options: list[str],
        agents: list[str],
        reveal_count: int,
        votes: list[int],
    ) -> Task:
        if not 2 <= len(options) <= 5:
            raise InvalidTaskError(task_id, f"option count {len(options)} outside [2,5]")
        if reveal_count != sum(votes):
            log.warning(
                "hydration_reveal_count_mismatch",
                task_id=task_id,
                reveal_count=reveal_count,
                vote_sum=sum(votes),
            )
        task = Task(
            id=task_id,
            creator=record.creator,
            description=record.description,
            options=options,
            bounty=str(record.bounty),
            required_agents=record.required_agents,
            deliberation_duration=record.deliberation_duration,
            # 合约以 0 表示未开始
            deliberation_start=record.deliberation_start or None,
            cancelled=record.cancelled,
            resolved=record.resolved,
            winning_option=record.winning_option,
            is_tie=record.is_tie,
            agents=agents,
            option_votes=votes,
            reveal_count=sum(votes),
        )
        return with_effective_phase(task, self._clock.now())

    # ---- 轮询 ----

    async def tick(self) -> TickResult:
        """执行一轮同步，任何异常都不会抛出"""
        if self.state.running:
            await log.adebug("poll_tick_skipped", last_seen=self.state.last_seen)
            return TickResult(status=TickStatus.SKIPPED)

        self.state.running = True
        try:
            result = await self._sync()
        except Exception as e:
            await log.aerror(
                "poll_tick_failed",
                error=str(e),
                error_type=type(e).__name__,
                last_seen=self.state.last_seen,
                pending=len(self.state.pending_keys),
            )
            result = TickResult(status=TickStatus.FAILED, error=str(e))
        finally:
            self.state.running = False

        self.state.last_tick = result
        return result

    async def _sync(self) -> TickResult:
        current = await self._ledger.block_number()

        if self.state.last_seen is None:
            if self.state.replay_from is None:
                self.state.replay_from = max(current - self._lookback_blocks, 0)
            start = self.state.replay_from
        else:
            start = self.state.last_seen + 1

        if start > current:
            self._store.sweep_phases(self._clock.now())
            return TickResult(status=TickStatus.IDLE, to_block=current)

        start_time = time.monotonic()
        applied = 0
        for lo, hi in block_ranges(start, current, self._max_block_span):
            raws = await self._ledger.get_logs(lo, hi)
            events = sorted(decode_logs(raws), key=lambda ev: ev.position)
            for event in events:
                if event.position in self.state.pending_keys:
                    continue
                apply_event(self._store, event)
                self.state.pending_keys.add(event.position)
                applied += 1

        self.state.last_seen = current
        self.state.replay_from = None
        self.state.pending_keys.clear()
        swept = self._store.sweep_phases(self._clock.now())

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        await log.ainfo(
            "poll_tick_completed",
            from_block=start,
            to_block=current,
            events=applied,
            phase_changes=swept,
            elapsed_ms=elapsed_ms,
        )
        return TickResult(
            status=TickStatus.SYNCED,
            from_block=start,
            to_block=current,
            events=applied,
        )

    async def run(self, stop: asyncio.Event) -> None:
        """按间隔驱动 tick，直到 stop 置位"""
        await log.ainfo(
            "poller_started",
            interval_s=self._poll_interval_s,
            sync_mode=self._sync_mode.value,
        )
        await IntervalTicker(self._poll_interval_s).run(stop, self.tick)
        await log.ainfo("poller_stopped", last_seen=self.state.last_seen)

    def start(self) -> asyncio.Task:
        """在后台启动轮询任务"""
        if self.is_running:
            return self._task
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self.run(self._stop_event), name="chain-poller")
        return self._task

    async def stop(self) -> None:
        """置位停止信号并等待当前 tick 结束"""
        if self._task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
            self._stop_event = None
