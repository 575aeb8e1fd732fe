"""Chronos Chain -- ChronosCore 账本同步层

packages/chain 的公开接口导出。
"""

# 配置
from .config import ChainConfig, SyncMode, load_chain_config

# 核心组件
from .client import LedgerClient, Web3LedgerClient
from .decoder import decode_log, decode_logs

# 异常
from .exceptions import EventDecodeError, LedgerError, LedgerUnavailableError
from .models import LedgerTaskRecord, RawLog
from .poller import ChainPoller, PollerState, TickResult, TickStatus, block_ranges
from .signature import build_signed_payload, recover_signer, verify_signer
from .ticker import IntervalTicker

__all__ = [
    "ChainConfig",
    "SyncMode",
    "load_chain_config",
    "LedgerClient",
    "Web3LedgerClient",
    "RawLog",
    "LedgerTaskRecord",
    "decode_log",
    "decode_logs",
    "ChainPoller",
    "PollerState",
    "TickResult",
    "TickStatus",
    "block_ranges",
    "IntervalTicker",
    "build_signed_payload",
    "recover_signer",
    "verify_signer",
    "LedgerError",
    "LedgerUnavailableError",
    "EventDecodeError",
]
