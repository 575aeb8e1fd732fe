"""Event Decoder -- 原始日志 -> LedgerEvent

未知事件名返回 None（向前兼容）。字段缺失或类型非法抛出 EventDecodeError；
批量入口 decode_logs 记录日志后丢弃该条，不会把异常抛给 Poller。
"""

import re
from collections.abc import Callable, Iterable
from typing import Any

import structlog
from pydantic import ValidationError

from chronos.core.models import (
    AgentJoined,
    CommitSubmitted,
    LedgerEvent,
    LedgerEventKind,
    Phase,
    PhaseAdvanced,
    RevealSubmitted,
    TaskCancelled,
    TaskCreated,
    TaskResolved,
    TaskStarted,
)

from .exceptions import EventDecodeError
from .models import RawLog

log = structlog.get_logger()

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class _Fields:
    """按字段名取值并做类型转换，失败抛 EventDecodeError"""

    def __init__(self, raw: RawLog) -> None:
        self._kind = raw.kind
        self._fields = raw.fields

    def _get(self, name: str) -> Any:
        if name not in self._fields:
            raise EventDecodeError(self._kind, f"missing field {name!r}")
        return self._fields[name]

    def integer(self, name: str) -> int:
        value = self._get(name)
        if isinstance(value, bool):
            raise EventDecodeError(self._kind, f"field {name!r} is not an integer")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text, 16) if text.lower().startswith("0x") else int(text)
            except ValueError:
                pass
        raise EventDecodeError(self._kind, f"field {name!r} is not an integer: {value!r}")

    def amount(self, name: str) -> str:
        """任意精度金额，保留为十进制字符串"""
        value = self.integer(name)
        if value < 0:
            raise EventDecodeError(self._kind, f"field {name!r} is negative")
        return str(value)

    def text(self, name: str) -> str:
        value = self._get(name)
        if not isinstance(value, str):
            raise EventDecodeError(self._kind, f"field {name!r} is not a string")
        return value

    def address(self, name: str) -> str:
        value = self.text(name)
        if not _ADDRESS_RE.match(value):
            raise EventDecodeError(self._kind, f"field {name!r} is not an address: {value!r}")
        return value

    def flag(self, name: str) -> bool:
        value = self._get(name)
        if not isinstance(value, bool):
            raise EventDecodeError(self._kind, f"field {name!r} is not a bool")
        return value

    def str_list(self, name: str) -> list[str]:
        value = self._get(name)
        if not isinstance(value, list | tuple) or not all(isinstance(v, str) for v in value):
            raise EventDecodeError(self._kind, f"field {name!r} is not a string list")
        return list(value)


def _base(raw: RawLog, f: _Fields) -> dict[str, Any]:
    return {
        "task_id": f.integer("taskId"),
        "block_number": raw.block_number,
        "log_index": raw.log_index,
    }


def _task_created(raw: RawLog, f: _Fields) -> LedgerEvent:
    return TaskCreated(
        **_base(raw, f),
        creator=f.address("creator"),
        description=f.text("description"),
        options=f.str_list("options"),
        bounty=f.amount("bounty"),
        required_agents=f.integer("requiredAgents"),
        deliberation_duration=f.integer("deliberationDuration"),
    )


def _task_started(raw: RawLog, f: _Fields) -> LedgerEvent:
    return TaskStarted(**_base(raw, f), deliberation_start=f.integer("deliberationStart"))


def _task_cancelled(raw: RawLog, f: _Fields) -> LedgerEvent:
    return TaskCancelled(**_base(raw, f))


def _agent_joined(raw: RawLog, f: _Fields) -> LedgerEvent:
    return AgentJoined(
        **_base(raw, f),
        agent=f.address("agent"),
        joined_at=raw.block_timestamp,
    )


def _phase_advanced(raw: RawLog, f: _Fields) -> LedgerEvent:
    value = f.integer("phase")
    try:
        phase = Phase(value)
    except ValueError as exc:
        raise EventDecodeError(raw.kind, f"unknown phase {value}") from exc
    return PhaseAdvanced(**_base(raw, f), new_phase=phase)


def _commit_submitted(raw: RawLog, f: _Fields) -> LedgerEvent:
    return CommitSubmitted(**_base(raw, f), agent=f.address("agent"))


def _reveal_submitted(raw: RawLog, f: _Fields) -> LedgerEvent:
    return RevealSubmitted(
        **_base(raw, f),
        agent=f.address("agent"),
        option_index=f.integer("optionIndex"),
    )


def _task_resolved(raw: RawLog, f: _Fields) -> LedgerEvent:
    return TaskResolved(
        **_base(raw, f),
        winning_option=f.integer("winningOption"),
        is_tie=f.flag("isTie"),
    )


_BUILDERS: dict[LedgerEventKind, Callable[[RawLog, _Fields], LedgerEvent]] = {
    LedgerEventKind.TASK_CREATED: _task_created,
    LedgerEventKind.TASK_STARTED: _task_started,
    LedgerEventKind.TASK_CANCELLED: _task_cancelled,
    LedgerEventKind.AGENT_JOINED: _agent_joined,
    LedgerEventKind.PHASE_ADVANCED: _phase_advanced,
    LedgerEventKind.COMMIT_SUBMITTED: _commit_submitted,
    LedgerEventKind.REVEAL_SUBMITTED: _reveal_submitted,
    LedgerEventKind.TASK_RESOLVED: _task_resolved,
}


def decode_log(raw: RawLog) -> LedgerEvent | None:
    """解码单条日志

    Returns:
        LedgerEvent；未知事件名返回 None

    Raises:
        EventDecodeError: 字段缺失或类型非法
    """
    try:
        kind = LedgerEventKind(raw.kind)
    except ValueError:
        return None

    try:
        return _BUILDERS[kind](raw, _Fields(raw))
    except ValidationError as exc:
        raise EventDecodeError(raw.kind, str(exc.errors()[0]["msg"])) from exc


def decode_logs(raws: Iterable[RawLog]) -> list[LedgerEvent]:
    """批量解码，解码失败的日志记录后丢弃"""
    events: list[LedgerEvent] = []
    for raw in raws:
        try:
            event = decode_log(raw)
        except EventDecodeError as exc:
            log.warning(
                "event_decode_failed",
                kind=raw.kind,
                block_number=raw.block_number,
                log_index=raw.log_index,
                reason=exc.reason,
            )
            continue
        if event is None:
            log.debug(
                "event_kind_ignored",
                kind=raw.kind,
                block_number=raw.block_number,
            )
            continue
        events.append(event)
    return events
