"""集成测试共享 fixture -- 内存账本 + 真实 Poller + HTTP 接口"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from chronos.chain import ChainPoller
from chronos.core.store import TaskSnapshotStore, create_message_store
from httpx import ASGITransport, AsyncClient


async def _wire(app, store_path: Path, ledger, clock) -> None:
    from chronos.relay.services.access_control import MessageGate
    from chronos.relay.services.query_service import QueryService
    from chronos.relay.services.rate_limiter import RateLimiter
    from chronos.relay.services.sse_hub import SSEHub

    message_store = create_message_store(store_path, "json")
    await message_store.load()
    task_store = TaskSnapshotStore(clock)
    hub = SSEHub()

    app.state.clock = clock
    app.state.ledger = ledger
    app.state.task_store = task_store
    app.state.message_store = message_store
    app.state.sse_hub = hub
    app.state.message_gate = MessageGate(
        task_store, message_store, RateLimiter(clock=clock), clock, hub=hub
    )
    app.state.query_service = QueryService(task_store, message_store, clock)
    app.state.poller = ChainPoller(ledger, task_store, clock, max_block_span=10)


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, ledger, clock):
    """集成测试用 FastAPI app（Poller 由测试手动 tick）"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from chronos.relay.main import create_app

    app = create_app()
    await _wire(app, tmp_path / "messages.json", ledger, clock)

    yield app

    await app.state.message_store.close()
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def rebuild_app(tmp_path: Path, ledger, clock):
    """用同一持久化文件重新装配 app，模拟进程重启"""
    from chronos.relay.main import create_app

    async def _rebuild():
        app = create_app()
        await _wire(app, tmp_path / "messages.json", ledger, clock)
        return app

    return _rebuild


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
