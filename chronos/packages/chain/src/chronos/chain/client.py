"""LedgerClient -- ChronosCore 合约只读访问封装

Web3LedgerClient 基于 web3.py AsyncWeb3 + AsyncHTTPProvider。
每次调用都由 asyncio.wait_for 限定超时；连接类失败包装为 LedgerUnavailableError，
其余失败包装为 LedgerError。
"""

import asyncio
import time
from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar

import structlog
from eth_abi.exceptions import DecodingError
from eth_utils import event_abi_to_log_topic
from pydantic.alias_generators import to_snake
from web3 import AsyncWeb3
from web3.exceptions import LogTopicError, MismatchedABI

from .abi import CHRONOS_CORE_ABI, EVENT_ABI, TASK_RECORD_FIELDS
from .exceptions import LedgerError, LedgerUnavailableError
from .models import LedgerTaskRecord, RawLog

log = structlog.get_logger()

T = TypeVar("T")

# 仅这些事件需要区块时间戳（满员时用作开始时间）
_TIMESTAMPED_EVENTS = frozenset({"AgentJoined"})

# 单条日志解码失败：topic 命中但 data/topics 不符合 ABI。
# Web3ValueError 与 UnicodeDecodeError 都是 ValueError 子类
_LOG_DECODE_ERROR_TYPES = (
    MismatchedABI,
    LogTopicError,
    DecodingError,
    ValueError,
)

# 连接类异常类型集合（触发 LedgerUnavailableError）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
)


def _is_connection_error(e: Exception) -> bool:
    """判断异常是否为连接类错误（节点不可达）"""
    if isinstance(e, _CONNECTION_ERROR_TYPES):
        return True
    # aiohttp / web3 的连接异常不一定继承 OSError
    error_name = type(e).__name__
    return error_name in (
        "ClientConnectionError",
        "ClientConnectorError",
        "ServerDisconnectedError",
        "ProviderConnectionError",
    )


class LedgerClient(Protocol):
    """账本只读接口，Poller 只依赖此协议"""

    async def block_number(self) -> int: ...

    async def chain_id(self) -> int: ...

    async def get_logs(self, from_block: int, to_block: int) -> list[RawLog]: ...

    async def task_count(self, block: int | None = None) -> int: ...

    async def get_task(self, task_id: int, block: int | None = None) -> LedgerTaskRecord: ...

    async def get_options(self, task_id: int, block: int | None = None) -> list[str]: ...

    async def get_agents(self, task_id: int, block: int | None = None) -> list[str]: ...

    async def get_reveal_count(self, task_id: int, block: int | None = None) -> int: ...

    async def get_option_votes(
        self, task_id: int, option_index: int, block: int | None = None
    ) -> int: ...

    async def close(self) -> None: ...


class Web3LedgerClient:
    """基于 web3.py 的 ChronosCore 只读客户端"""

    def __init__(
        self,
        rpc_url: str,
        core_address: str,
        timeout_s: float = 10.0,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        """
        Args:
            rpc_url: RPC 地址
            core_address: ChronosCore 合约地址
            timeout_s: 单次调用超时（秒）
            w3: 预先构造的 AsyncWeb3 实例（测试注入）
        """
        self._rpc_url = rpc_url
        self._timeout_s = timeout_s
        self._w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self._address = AsyncWeb3.to_checksum_address(core_address)
        self._contract = self._w3.eth.contract(address=self._address, abi=CHRONOS_CORE_ABI)
        self._events_by_topic: dict[bytes, str] = {
            bytes(event_abi_to_log_topic(abi)): abi["name"] for abi in EVENT_ABI
        }

    @property
    def endpoint(self) -> str:
        return self._rpc_url

    async def _call(self, op: str, awaitable: Awaitable[T]) -> T:
        start_time = time.monotonic()
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout_s)
        except LedgerError:
            raise
        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            log.debug(
                "ledger_call_failed",
                op=op,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
            )
            if _is_connection_error(e):
                raise LedgerUnavailableError(
                    endpoint=self._rpc_url,
                    original_error=e,
                ) from e
            raise LedgerError(f"{op} 调用失败: {e}", recoverable=True) from e

    async def block_number(self) -> int:
        return int(await self._call("eth_blockNumber", self._w3.eth.block_number))

    async def chain_id(self) -> int:
        return int(await self._call("eth_chainId", self._w3.eth.chain_id))

    async def get_logs(self, from_block: int, to_block: int) -> list[RawLog]:
        """查询 [from_block, to_block] 内的合约日志并按 ABI 解出参数

        未匹配 ABI 或解码失败的日志记录后跳过，不影响同批次其他日志；
        AgentJoined 附带区块时间戳。
        """
        logs = await self._call(
            "eth_getLogs",
            self._w3.eth.get_logs(
                {
                    "address": self._address,
                    "fromBlock": from_block,
                    "toBlock": to_block,
                }
            ),
        )

        raws: list[RawLog] = []
        timestamps: dict[int, int] = {}
        for entry in logs:
            topics = entry.get("topics") or []
            if not topics:
                continue
            name = self._events_by_topic.get(bytes(topics[0]))
            if name is None:
                continue
            try:
                decoded = self._contract.events[name]().process_log(entry)
            except _LOG_DECODE_ERROR_TYPES as e:
                log.warning(
                    "event_decode_failed",
                    kind=name,
                    block_number=entry.get("blockNumber"),
                    log_index=entry.get("logIndex"),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            block_number = int(decoded["blockNumber"])
            block_timestamp = None
            if name in _TIMESTAMPED_EVENTS:
                if block_number not in timestamps:
                    timestamps[block_number] = await self._block_timestamp(block_number)
                block_timestamp = timestamps[block_number]

            raws.append(
                RawLog(
                    kind=name,
                    fields=dict(decoded["args"]),
                    block_number=block_number,
                    log_index=int(decoded["logIndex"]),
                    block_timestamp=block_timestamp,
                )
            )
        return raws

    async def _block_timestamp(self, block_number: int) -> int:
        block = await self._call("eth_getBlockByNumber", self._w3.eth.get_block(block_number))
        return int(block["timestamp"])

    async def task_count(self, block: int | None = None) -> int:
        return int(await self._view("taskCount", block))

    async def get_task(self, task_id: int, block: int | None = None) -> LedgerTaskRecord:
        values = await self._view("getTask", block, task_id)
        record: dict[str, Any] = {
            to_snake(name): value for (name, _), value in zip(TASK_RECORD_FIELDS, values)
        }
        return LedgerTaskRecord(**record)

    async def get_options(self, task_id: int, block: int | None = None) -> list[str]:
        return list(await self._view("getOptions", block, task_id))

    async def get_agents(self, task_id: int, block: int | None = None) -> list[str]:
        return list(await self._view("getAgents", block, task_id))

    async def get_reveal_count(self, task_id: int, block: int | None = None) -> int:
        return int(await self._view("revealCount", block, task_id))

    async def get_option_votes(
        self, task_id: int, option_index: int, block: int | None = None
    ) -> int:
        return int(await self._view("optionVotes", block, task_id, option_index))

    async def _view(self, fn_name: str, block: int | None, *args: Any) -> Any:
        fn = self._contract.functions[fn_name](*args)
        block_identifier = block if block is not None else "latest"
        return await self._call(fn_name, fn.call(block_identifier=block_identifier))

    async def close(self) -> None:
        """释放 HTTP 会话"""
        provider = self._w3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is None:
            return
        try:
            await disconnect()
        except Exception as e:
            log.debug("ledger_client_close_failed", error=str(e))
