"""ChainConfig -- 账本同步配置加载

从环境变量加载配置。合约地址为必填项，缺失时拒绝启动；
数值项非法时记录警告并回退默认值，不阻塞启动。
"""

import os
import re
from enum import StrEnum

import structlog
from pydantic import BaseModel, Field

from chronos.core.exceptions import ConfigurationError

log = structlog.get_logger()

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class SyncMode(StrEnum):
    """冷启动同步方式"""

    REPLAY = "replay"  # 回放最近 lookback_blocks 个区块的事件
    HYDRATE = "hydrate"  # 直接读取合约状态批量水合


class ChainConfig(BaseModel):
    """Chain 包配置 -- 从环境变量加载

    环境变量:
        CHRONOS_RPC_URL: RPC 地址（兼容 MONAD_RPC）
        CHRONOS_CORE: ChronosCore 合约地址（必填）
        CHRONOS_CHAIN_ID: 期望的链 ID（兼容 CHAIN_ID，默认 143）
        CHRONOS_POLL_INTERVAL_MS: 轮询间隔（兼容 POLL_INTERVAL，默认 5000）
        CHRONOS_SYNC_MODE: replay / hydrate
        CHRONOS_LOOKBACK_BLOCKS: 回放窗口（默认 5000）
        CHRONOS_MAX_BLOCK_SPAN: 单次 getLogs 最大区块跨度（默认 100）
        CHRONOS_RPC_TIMEOUT_S: 单次 RPC 超时（秒，默认 10）
    """

    rpc_url: str = Field(default="https://rpc.monad.xyz", description="RPC 地址")
    core_address: str = Field(
        pattern=r"^0x[0-9a-fA-F]{40}$",
        description="ChronosCore 合约地址",
    )
    chain_id: int = Field(default=143, ge=1, description="期望的链 ID")
    poll_interval_ms: int = Field(default=5000, ge=100, description="轮询间隔（毫秒）")
    sync_mode: SyncMode = Field(default=SyncMode.REPLAY, description="冷启动同步方式")
    lookback_blocks: int = Field(default=5000, ge=0, description="冷启动回放窗口")
    max_block_span: int = Field(default=100, ge=1, description="单次日志查询最大跨度")
    rpc_timeout_s: float = Field(default=10.0, gt=0, description="单次 RPC 超时（秒）")

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000


# (环境变量, 兼容旧名, 字段名, 默认值, 最小值)
_INT_SETTINGS: list[tuple[str, str | None, str, int, int]] = [
    ("CHRONOS_CHAIN_ID", "CHAIN_ID", "chain_id", 143, 1),
    ("CHRONOS_POLL_INTERVAL_MS", "POLL_INTERVAL", "poll_interval_ms", 5000, 100),
    ("CHRONOS_LOOKBACK_BLOCKS", None, "lookback_blocks", 5000, 0),
    ("CHRONOS_MAX_BLOCK_SPAN", None, "max_block_span", 100, 1),
]


def _env(name: str, legacy: str | None = None) -> str | None:
    value = os.environ.get(name)
    if not value and legacy:
        value = os.environ.get(legacy)
    return value.strip() if value else None


def load_chain_config() -> ChainConfig:
    """从环境变量加载 Chain 配置

    Returns:
        ChainConfig 实例

    Raises:
        ConfigurationError: CHRONOS_CORE 缺失或不是合法地址
    """
    core_address = _env("CHRONOS_CORE")
    if not core_address:
        raise ConfigurationError(
            "CHRONOS_CORE is required: set it to the deployed ChronosCore contract address"
        )
    if not _ADDRESS_RE.match(core_address):
        raise ConfigurationError(f"CHRONOS_CORE is not a valid address: {core_address!r}")

    kwargs: dict = {"core_address": core_address}

    if val := _env("CHRONOS_RPC_URL", "MONAD_RPC"):
        kwargs["rpc_url"] = val

    for env_var, legacy, field_name, fallback, minimum in _INT_SETTINGS:
        val = _env(env_var, legacy)
        if val is None:
            continue
        try:
            parsed = int(val)
        except ValueError:
            parsed = None
        if parsed is None or parsed < minimum:
            log.warning(
                "invalid_chain_config",
                env_var=env_var,
                value=val,
                fallback=fallback,
            )
            # 使用默认值，不阻塞启动
            continue
        kwargs[field_name] = parsed

    if val := _env("CHRONOS_RPC_TIMEOUT_S"):
        try:
            timeout = float(val)
        except ValueError:
            timeout = 0.0
        if timeout > 0:
            kwargs["rpc_timeout_s"] = timeout
        else:
            log.warning(
                "invalid_chain_config",
                env_var="CHRONOS_RPC_TIMEOUT_S",
                value=val,
                fallback=10.0,
            )

    if val := _env("CHRONOS_SYNC_MODE"):
        try:
            kwargs["sync_mode"] = SyncMode(val.lower())
        except ValueError:
            log.warning(
                "invalid_chain_config",
                env_var="CHRONOS_SYNC_MODE",
                value=val,
                fallback=SyncMode.REPLAY.value,
            )

    return ChainConfig(**kwargs)
