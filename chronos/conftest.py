"""全局 pytest 配置 -- 可控时钟、内存账本、签名 Agent 账户"""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest
import pytest_asyncio
from chronos.chain.exceptions import LedgerUnavailableError
from chronos.chain.models import LedgerTaskRecord, RawLog
from chronos.chain.signature import build_signed_payload
from eth_account import Account
from eth_account.messages import encode_defunct

# 2025-01-01T00:00:00Z
BASE_TIME_S = 1_735_689_600

CREATOR = "0x" + "c0" * 20


class FakeClock:
    """手动推进的时钟"""

    def __init__(self, start: int = BASE_TIME_S) -> None:
        self._ms = start * 1000

    def now(self) -> int:
        return self._ms // 1000

    def now_ms(self) -> int:
        return self._ms

    def advance(self, seconds: float) -> None:
        self._ms += round(seconds * 1000)


@dataclass
class HydrationEntry:
    record: LedgerTaskRecord
    options: list[str]
    agents: list[str] = field(default_factory=list)
    reveal_count: int = 0
    votes: list[int] | None = None


class FakeLedger:
    """内存账本 -- 实现 LedgerClient 协议

    fail_get_logs_calls 中的调用序号（从 1 开始）会抛出 LedgerUnavailableError。
    """

    def __init__(self, height: int = 0, chain_id: int = 143) -> None:
        self.height = height
        self.chain = chain_id
        self.logs: list[RawLog] = []
        self.entries: dict[int, HydrationEntry] = {}
        self.get_logs_calls: list[tuple[int, int]] = []
        self.fail_get_logs_calls: set[int] = set()
        self.fail_block_number = False
        self.view_blocks: set[int | None] = set()
        self.closed = False

    def add_log(self, raw: RawLog) -> None:
        self.logs.append(raw)
        self.height = max(self.height, raw.block_number)

    async def block_number(self) -> int:
        if self.fail_block_number:
            raise LedgerUnavailableError("http://fake", ConnectionError("refused"))
        return self.height

    async def chain_id(self) -> int:
        return self.chain

    async def get_logs(self, from_block: int, to_block: int) -> list[RawLog]:
        self.get_logs_calls.append((from_block, to_block))
        if len(self.get_logs_calls) in self.fail_get_logs_calls:
            raise LedgerUnavailableError("http://fake", ConnectionError("reset"))
        return [raw for raw in self.logs if from_block <= raw.block_number <= to_block]

    async def task_count(self, block: int | None = None) -> int:
        self.view_blocks.add(block)
        return len(self.entries)

    async def get_task(self, task_id: int, block: int | None = None) -> LedgerTaskRecord:
        self.view_blocks.add(block)
        return self.entries[task_id].record

    async def get_options(self, task_id: int, block: int | None = None) -> list[str]:
        self.view_blocks.add(block)
        return list(self.entries[task_id].options)

    async def get_agents(self, task_id: int, block: int | None = None) -> list[str]:
        self.view_blocks.add(block)
        return list(self.entries[task_id].agents)

    async def get_reveal_count(self, task_id: int, block: int | None = None) -> int:
        self.view_blocks.add(block)
        return self.entries[task_id].reveal_count

    async def get_option_votes(
        self, task_id: int, option_index: int, block: int | None = None
    ) -> int:
        self.view_blocks.add(block)
        entry = self.entries[task_id]
        votes = entry.votes or [0] * len(entry.options)
        return votes[option_index]

    async def close(self) -> None:
        self.closed = True


class LogFactory:
    """按事件名构造 RawLog，log_index 在同一区块内自增"""

    def __init__(self) -> None:
        self._index: dict[int, int] = {}

    def __call__(
        self,
        kind: str,
        block: int,
        timestamp: int | None = None,
        **fields,
    ) -> RawLog:
        index = self._index.get(block, 0)
        self._index[block] = index + 1
        return RawLog(
            kind=kind,
            fields=fields,
            block_number=block,
            log_index=index,
            block_timestamp=timestamp,
        )

    def created(
        self,
        task_id: int,
        block: int,
        options: list[str] | None = None,
        required_agents: int = 3,
        duration: int = 120,
        bounty: int = 10**18,
    ) -> RawLog:
        return self(
            "TaskCreated",
            block,
            taskId=task_id,
            creator=CREATOR,
            description=f"task {task_id}",
            options=options or ["Yes", "No", "Abstain"],
            bounty=bounty,
            requiredAgents=required_agents,
            deliberationDuration=duration,
        )

    def joined(self, task_id: int, agent: str, block: int, timestamp: int) -> RawLog:
        return self("AgentJoined", block, timestamp=timestamp, taskId=task_id, agent=agent)


@dataclass
class AgentAccount:
    """测试用 Agent 账户"""

    address: str
    _key: str

    def sign(self, task_id: int, content: str) -> str:
        signed = Account.sign_message(
            encode_defunct(text=build_signed_payload(task_id, content)),
            private_key=self._key,
        )
        return "0x" + bytes(signed.signature).hex()

    def post_body(self, task_id: int, content: str) -> dict:
        return {
            "content": content,
            "signature": self.sign(task_id, content),
            "sender": self.address,
        }


def _account(seed: int) -> AgentAccount:
    key = "0x" + f"{seed:02x}" * 32
    return AgentAccount(address=Account.from_key(key).address, _key=key)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def make_log() -> LogFactory:
    return LogFactory()


@pytest.fixture
def agents() -> list[AgentAccount]:
    """三个确定性私钥生成的 Agent"""
    return [_account(seed) for seed in (0x11, 0x22, 0x33)]


@pytest.fixture
def outsider() -> AgentAccount:
    """未加入任何任务的账户"""
    return _account(0x44)


@pytest.fixture
def hydration_entry() -> Callable[..., HydrationEntry]:
    def _build(
        options: list[str],
        agents: list[str] | None = None,
        votes: list[int] | None = None,
        reveal_count: int | None = None,
        **record,
    ) -> HydrationEntry:
        record.setdefault("creator", CREATOR)
        record.setdefault("required_agents", 3)
        record.setdefault("deliberation_duration", 120)
        return HydrationEntry(
            record=LedgerTaskRecord(**record),
            options=options,
            agents=agents or [],
            reveal_count=sum(votes or []) if reveal_count is None else reveal_count,
            votes=votes,
        )

    return _build


@pytest_asyncio.fixture
async def tmp_store_path(tmp_path: Path) -> Path:
    """临时消息持久化文件路径"""
    return tmp_path / "messages.json"
