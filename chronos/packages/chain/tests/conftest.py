"""packages/chain 测试配置 -- Poller 与快照存储 fixture"""

import pytest
from chronos.chain import ChainPoller, SyncMode
from chronos.core.store import TaskSnapshotStore


@pytest.fixture
def snapshot_store(clock) -> TaskSnapshotStore:
    return TaskSnapshotStore(clock)


@pytest.fixture
def make_poller(ledger, snapshot_store, clock):
    def _build(**kwargs) -> ChainPoller:
        kwargs.setdefault("poll_interval_s", 0.01)
        kwargs.setdefault("max_block_span", 100)
        kwargs.setdefault("lookback_blocks", 5000)
        kwargs.setdefault("sync_mode", SyncMode.REPLAY)
        return ChainPoller(ledger, snapshot_store, clock, **kwargs)

    return _build
