"""Projection 模块 -- 把账本事件应用到任务快照

LedgerEvent 是封闭联合，match 必须覆盖全部成员；
新增事件类型而未处理时类型检查会在 assert_never 处报错。
"""

from collections.abc import Iterable
from typing import assert_never

import structlog

from .exceptions import InvalidTaskError
from .models.events import (
    AgentJoined,
    CommitSubmitted,
    LedgerEvent,
    PhaseAdvanced,
    RevealSubmitted,
    TaskCancelled,
    TaskCreated,
    TaskResolved,
    TaskStarted,
)
from .store.task_store import TaskSnapshotStore

log = structlog.get_logger()


def apply_event(store: TaskSnapshotStore, event: LedgerEvent) -> bool:
    """将单个事件应用到快照存储

    Returns:
        False 表示事件被拒绝（非法任务数据），其余情况为 True
    """
    match event:
        case TaskCreated():
            try:
                store.apply_created(
                    event.task_id,
                    creator=event.creator,
                    description=event.description,
                    options=event.options,
                    required_agents=event.required_agents,
                    deliberation_duration=event.deliberation_duration,
                    bounty=event.bounty,
                )
            except InvalidTaskError as exc:
                log.warning(
                    "task_created_rejected",
                    task_id=event.task_id,
                    reason=exc.reason,
                    block_number=event.block_number,
                )
                return False
        case AgentJoined():
            store.apply_agent_joined(event.task_id, event.agent, joined_at=event.joined_at)
        case TaskStarted():
            store.apply_started(event.task_id, event.deliberation_start)
        case TaskCancelled():
            store.apply_cancelled(event.task_id)
        case PhaseAdvanced():
            store.apply_phase_advanced(event.task_id, event.new_phase)
        case CommitSubmitted():
            store.apply_committed(event.task_id, event.agent)
        case RevealSubmitted():
            store.apply_revealed(event.task_id, event.agent, event.option_index)
        case TaskResolved():
            store.apply_resolved(event.task_id, event.winning_option, event.is_tie)
        case _:
            assert_never(event)
    return True


def apply_events(store: TaskSnapshotStore, events: Iterable[LedgerEvent]) -> int:
    """按顺序应用一批事件，返回成功应用的数量"""
    applied = 0
    for event in events:
        if apply_event(store, event):
            applied += 1
    return applied
