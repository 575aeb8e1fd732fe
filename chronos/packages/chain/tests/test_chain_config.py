"""ChainConfig 加载测试"""

import pytest
from chronos.chain import SyncMode, load_chain_config
from chronos.core.exceptions import ConfigurationError

CORE = "0x" + "12" * 20

_ENV_VARS = [
    "CHRONOS_CORE",
    "CHRONOS_RPC_URL",
    "MONAD_RPC",
    "CHRONOS_CHAIN_ID",
    "CHAIN_ID",
    "CHRONOS_POLL_INTERVAL_MS",
    "POLL_INTERVAL",
    "CHRONOS_SYNC_MODE",
    "CHRONOS_LOOKBACK_BLOCKS",
    "CHRONOS_MAX_BLOCK_SPAN",
    "CHRONOS_RPC_TIMEOUT_S",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadChainConfig:
    def test_missing_core_address(self):
        with pytest.raises(ConfigurationError):
            load_chain_config()

    def test_invalid_core_address(self, monkeypatch):
        monkeypatch.setenv("CHRONOS_CORE", "0x1234")
        with pytest.raises(ConfigurationError):
            load_chain_config()

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("CHRONOS_CORE", CORE)
        config = load_chain_config()
        assert config.core_address == CORE
        assert config.chain_id == 143
        assert config.poll_interval_ms == 5000
        assert config.poll_interval_s == 5.0
        assert config.sync_mode == SyncMode.REPLAY
        assert config.lookback_blocks == 5000
        assert config.max_block_span == 100
        assert config.rpc_timeout_s == 10.0

    def test_legacy_names(self, monkeypatch):
        monkeypatch.setenv("CHRONOS_CORE", CORE)
        monkeypatch.setenv("MONAD_RPC", "http://legacy:8545")
        monkeypatch.setenv("CHAIN_ID", "10143")
        monkeypatch.setenv("POLL_INTERVAL", "2000")
        config = load_chain_config()
        assert config.rpc_url == "http://legacy:8545"
        assert config.chain_id == 10143
        assert config.poll_interval_ms == 2000

    def test_new_names_win_over_legacy(self, monkeypatch):
        monkeypatch.setenv("CHRONOS_CORE", CORE)
        monkeypatch.setenv("CHRONOS_RPC_URL", "http://new:8545")
        monkeypatch.setenv("MONAD_RPC", "http://legacy:8545")
        assert load_chain_config().rpc_url == "http://new:8545"

    def test_invalid_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("CHRONOS_CORE", CORE)
        monkeypatch.setenv("CHRONOS_POLL_INTERVAL_MS", "fast")
        monkeypatch.setenv("CHRONOS_MAX_BLOCK_SPAN", "0")
        monkeypatch.setenv("CHRONOS_RPC_TIMEOUT_S", "-1")
        monkeypatch.setenv("CHRONOS_SYNC_MODE", "turbo")
        config = load_chain_config()
        assert config.poll_interval_ms == 5000
        assert config.max_block_span == 100
        assert config.rpc_timeout_s == 10.0
        assert config.sync_mode == SyncMode.REPLAY

    def test_hydrate_mode(self, monkeypatch):
        monkeypatch.setenv("CHRONOS_CORE", CORE)
        monkeypatch.setenv("CHRONOS_SYNC_MODE", "HYDRATE")
        assert load_chain_config().sync_mode == SyncMode.HYDRATE
