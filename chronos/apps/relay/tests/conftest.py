"""apps/relay 测试配置 -- 手动装配 app.state（绕过 lifespan）+ httpx AsyncClient"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from chronos.core.store import TaskSnapshotStore, create_message_store
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def relay_app(tmp_path: Path, clock):
    """创建测试用 FastAPI app，服务实例直接挂到 app.state"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from chronos.relay.main import create_app
    from chronos.relay.services.access_control import MessageGate
    from chronos.relay.services.query_service import QueryService
    from chronos.relay.services.rate_limiter import RateLimiter
    from chronos.relay.services.sse_hub import SSEHub

    app = create_app()

    message_store = create_message_store(tmp_path / "messages.json", "json")
    await message_store.load()
    task_store = TaskSnapshotStore(clock)
    sse_hub = SSEHub()

    app.state.clock = clock
    app.state.task_store = task_store
    app.state.message_store = message_store
    app.state.sse_hub = sse_hub
    app.state.message_gate = MessageGate(
        task_store, message_store, RateLimiter(clock=clock), clock, hub=sse_hub
    )
    app.state.query_service = QueryService(task_store, message_store, clock)

    yield app

    await message_store.close()
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(relay_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=relay_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def open_task(relay_app, agents, clock) -> int:
    """任务 #0：三个 Agent 已加入、处于审议阶段"""
    task_store = relay_app.state.task_store
    task_store.apply_created(
        0,
        creator="0x" + "c0" * 20,
        description="Ship the release?",
        options=["Yes", "No", "Abstain"],
        required_agents=3,
        deliberation_duration=300,
        bounty="1000000000000000000",
    )
    for agent in agents:
        task_store.apply_agent_joined(0, agent.address, joined_at=clock.now())
    return 0
