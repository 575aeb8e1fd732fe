"""Task Snapshot Store -- 链上任务的内存镜像

唯一写入方是 Chain Poller；HTTP 处理器只读。
每次变更都基于 model_copy 生成新的 Task 并在同一个同步步骤内替换字典项，
读写之间没有 await，读方永远看到完整的旧记录或完整的新记录。

所有 apply_* 操作幂等；任务不存在时为 no-op（apply_created 除外）。
"""

from collections.abc import Sequence

import structlog

from ..exceptions import InvalidTaskError
from ..models.enums import Phase
from ..models.task import MAX_OPTIONS, MIN_OPTIONS, RevealRecord, Task
from ..phase_clock import Clock, SystemClock, effective_phase, with_effective_phase

log = structlog.get_logger()


class TaskSnapshotStore:
    """任务快照存储（单写者，内存）"""

    def __init__(self, clock: Clock | None = None) -> None:
        self._tasks: dict[int, Task] = {}
        self._clock = clock or SystemClock()

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    # ---- 写入（仅 Poller 调用） ----

    def apply_created(
        self,
        task_id: int,
        creator: str,
        description: str,
        options: Sequence[str],
        required_agents: int,
        deliberation_duration: int,
        bounty: str = "0",
    ) -> Task:
        """插入新任务：零票数、未开始、Phase.OPEN

        同一 id 重复出现时以最后一次为准。

        Raises:
            InvalidTaskError: 选项数不在 [2,5] 或容量非法
        """
        if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
            raise InvalidTaskError(task_id, f"option count {len(options)} outside [2,5]")
        if required_agents < 1:
            raise InvalidTaskError(task_id, "required_agents must be >= 1")

        if task_id in self._tasks:
            log.warning("task_created_overwrite", task_id=task_id)

        task = Task(
            id=task_id,
            creator=creator,
            description=description,
            options=list(options),
            bounty=bounty,
            required_agents=required_agents,
            deliberation_duration=deliberation_duration,
        )
        self._tasks[task_id] = task
        return task

    def apply_agent_joined(
        self,
        task_id: int,
        agent: str,
        joined_at: int | None = None,
    ) -> None:
        """追加 Agent

        已是成员、已满员、已取消或已结算时忽略。
        加入恰好满员且已知区块时间、开始时间未设置时，同时设置开始时间。
        """
        task = self._tasks.get(task_id)
        if task is None:
            return
        if task.is_closed or task.is_full or task.is_member(agent):
            return

        agents = [*task.agents, agent]
        update: dict = {"agents": agents}
        if (
            len(agents) >= task.required_agents
            and joined_at is not None
            and task.deliberation_start is None
        ):
            update["deliberation_start"] = joined_at
            update["phase"] = Phase.DELIBERATION
        self._tasks[task_id] = task.model_copy(update=update)

    def apply_started(self, task_id: int, start_ts: int) -> None:
        """设置开始时间，仅在未设置时生效"""
        task = self._tasks.get(task_id)
        if task is None or task.deliberation_start is not None or task.is_closed:
            return
        self._tasks[task_id] = task.model_copy(
            update={"deliberation_start": start_ts, "phase": Phase.DELIBERATION}
        )

    def apply_cancelled(self, task_id: int) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.is_closed:
            return
        self._tasks[task_id] = task.model_copy(
            update={"cancelled": True, "phase": Phase.RESOLVED}
        )

    def apply_phase_advanced(self, task_id: int, phase: Phase) -> None:
        """记录合约显式推进的阶段；对外响应仍以 Phase Clock 为准"""
        task = self._tasks.get(task_id)
        if task is None or task.is_closed or phase == task.phase:
            return
        self._tasks[task_id] = task.model_copy(update={"phase": Phase(phase)})

    def apply_committed(self, task_id: int, agent: str) -> None:
        """记录 commit 方（只计数，不存 hash）"""
        task = self._tasks.get(task_id)
        if task is None or task.is_closed or task.has_committed(agent):
            return
        self._tasks[task_id] = task.model_copy(
            update={"committed_agents": [*task.committed_agents, agent]}
        )

    def apply_revealed(self, task_id: int, agent: str, option_index: int) -> None:
        """记录 reveal：票数 +1、reveal_count +1、追加记录

        同一 Agent 重复 reveal 或下标越界时忽略，票数不会增长。
        """
        task = self._tasks.get(task_id)
        if task is None or task.is_closed:
            return
        if task.has_revealed(agent):
            return
        if not 0 <= option_index < len(task.options):
            log.warning(
                "reveal_option_out_of_range",
                task_id=task_id,
                agent=agent,
                option_index=option_index,
                option_count=len(task.options),
            )
            return

        votes = list(task.option_votes)
        votes[option_index] += 1
        self._tasks[task_id] = task.model_copy(
            update={
                "option_votes": votes,
                "reveal_count": task.reveal_count + 1,
                "reveals": [
                    *task.reveals,
                    RevealRecord(agent=agent, option_index=option_index),
                ],
            }
        )

    def apply_resolved(self, task_id: int, winning_option: int, is_tie: bool) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.resolved:
            return
        self._tasks[task_id] = task.model_copy(
            update={
                "resolved": True,
                "winning_option": winning_option,
                "is_tie": is_tie,
                "phase": Phase.RESOLVED,
            }
        )

    def apply_snapshot(self, task: Task) -> None:
        """批量水合：直接放入完整记录（reveal 明细为空）"""
        self._tasks[task.id] = task

    def sweep_phases(self, now: int) -> int:
        """把 Phase Clock 结果写回所有缓存任务，返回发生变化的数量"""
        changed = 0
        for task_id, task in list(self._tasks.items()):
            updated = with_effective_phase(task, now)
            if updated is not task:
                self._tasks[task_id] = updated
                changed += 1
        return changed

    # ---- 读取 ----

    def get(self, task_id: int) -> Task | None:
        """按 id 查询，阶段按当前时间调整"""
        task = self._tasks.get(task_id)
        if task is None:
            return None
        return with_effective_phase(task, self._clock.now())

    def get_raw(self, task_id: int) -> Task | None:
        """按 id 查询存储中的原始记录（不做阶段调整）"""
        return self._tasks.get(task_id)

    def list_all(self) -> list[Task]:
        """全部任务，id 倒序（最新在前），阶段按当前时间调整"""
        now = self._clock.now()
        return [
            with_effective_phase(self._tasks[task_id], now)
            for task_id in sorted(self._tasks, reverse=True)
        ]

    def phase_of(self, task_id: int) -> Phase | None:
        task = self._tasks.get(task_id)
        if task is None:
            return None
        return effective_phase(task, self._clock.now())

    def is_member(self, task_id: int, address: str) -> bool:
        """地址是否为该任务已加入的 Agent（大小写不敏感）"""
        task = self._tasks.get(task_id)
        return task is not None and task.is_member(address)
