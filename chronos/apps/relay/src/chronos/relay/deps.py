"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from chronos.core.store import MessageStore, TaskSnapshotStore
from fastapi import Request

from .services.access_control import MessageGate
from .services.query_service import QueryService
from .services.sse_hub import SSEHub


def get_task_store(request: Request) -> TaskSnapshotStore:
    """从 app.state 获取任务快照存储"""
    return request.app.state.task_store


def get_message_store(request: Request) -> MessageStore:
    return request.app.state.message_store


def get_sse_hub(request: Request) -> SSEHub:
    return request.app.state.sse_hub


def get_message_gate(request: Request) -> MessageGate:
    return request.app.state.message_gate


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


def get_poller(request: Request):
    """从 app.state 获取 ChainPoller（未启动同步时为 None）"""
    return getattr(request.app.state, "poller", None)
