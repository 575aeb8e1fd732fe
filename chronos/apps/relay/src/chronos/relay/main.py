"""FastAPI 应用主文件

app 创建 + lifespan 管理：消息存储加载、任务快照与 Poller 初始化、路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from chronos.chain import ChainPoller, Web3LedgerClient, load_chain_config
from chronos.core.config import get_message_store_backend, get_message_store_path
from chronos.core.exceptions import MessageRejectedError
from chronos.core.phase_clock import SystemClock
from chronos.core.store import TaskSnapshotStore, create_message_store
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .middleware.body_limit_mw import BodySizeLimitMiddleware
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .responses import error_response, rejection_response
from .routes import health, messages, skill, stream, tasks
from .services.access_control import MessageGate
from .services.query_service import QueryService
from .services.rate_limiter import RateLimiter
from .services.sse_hub import SSEHub

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理

    启动：加载配置 -> 加载消息存储 -> 构建快照存储与 Poller -> 启动后台同步
    关闭：停止 Poller -> 关闭账本连接 -> 关闭消息存储

    app.state.ledger / app.state.clock 预先设置时直接使用（测试注入）。
    """
    # 合约地址缺失时抛出 ConfigurationError，启动失败
    chain_config = load_chain_config()
    app.state.chain_config = chain_config

    clock = getattr(app.state, "clock", None) or SystemClock()
    app.state.clock = clock

    # 消息存储：先加载再接受写入
    message_store = create_message_store(
        get_message_store_path(),
        get_message_store_backend(),
    )
    await message_store.load()
    app.state.message_store = message_store

    task_store = TaskSnapshotStore(clock)
    app.state.task_store = task_store

    sse_hub = SSEHub()
    app.state.sse_hub = sse_hub
    app.state.message_gate = MessageGate(
        task_store,
        message_store,
        RateLimiter(clock=clock),
        clock,
        hub=sse_hub,
    )
    app.state.query_service = QueryService(task_store, message_store, clock)

    ledger = getattr(app.state, "ledger", None) or Web3LedgerClient(
        rpc_url=chain_config.rpc_url,
        core_address=chain_config.core_address,
        timeout_s=chain_config.rpc_timeout_s,
    )
    app.state.ledger = ledger

    poller = ChainPoller(ledger, task_store, clock, chain_config)
    app.state.poller = poller

    log.info(
        "relay_starting",
        core_address=chain_config.core_address,
        rpc_url=chain_config.rpc_url,
        poll_interval_ms=chain_config.poll_interval_ms,
        sync_mode=chain_config.sync_mode.value,
        message_backend=message_store.backend,
    )
    await poller.bootstrap()
    poller.start()

    yield

    # 关闭：停止同步并释放连接
    await poller.stop()
    await ledger.close()
    await message_store.close()
    log.info("relay_stopped")


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(MessageRejectedError)
    async def _rejected(_request: Request, exc: MessageRejectedError):
        return rejection_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _invalid(_request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return error_response(400, "INVALID_REQUEST", message)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        await log.aexception(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
        )
        return error_response(500, "INTERNAL_ERROR", "Internal server error")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Chronos Relay",
        version="0.1.0",
        description="ChronosCore 任务同步与审议消息中继",
        lifespan=lifespan,
    )

    # 注册中间件（后注册的在外层：CORS -> Logging -> Trace -> BodyLimit）
    app.add_middleware(BodySizeLimitMiddleware)
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    _register_exception_handlers(app)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    # 注册路由
    app.include_router(health.router, tags=["health"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(messages.router, tags=["messages"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(skill.router, tags=["skill"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
