"""配置常量模块 -- 可通过环境变量覆盖

包含消息存储路径、监听地址、阶段窗口、限流参数等可配置常量。
"""

import os
from pathlib import Path


def get_message_store_path() -> Path:
    """获取审议消息持久化文件路径"""
    return Path(os.environ.get("CHRONOS_STORE_PATH", "./messages.json"))


def get_message_store_backend() -> str:
    """获取审议消息持久化后端（json / sqlite）"""
    return os.environ.get("CHRONOS_STORE_BACKEND", "json").strip().lower()


def get_skill_doc_path() -> Path:
    """获取 Agent 接入文档（skill.md）路径"""
    return Path(os.environ.get("CHRONOS_SKILL_DOC_PATH", "../skill.md"))


def get_listen_host() -> str:
    """获取 HTTP 监听地址"""
    return os.environ.get("CHRONOS_HOST", "0.0.0.0")


def get_listen_port() -> int:
    """获取 HTTP 监听端口，非法值回退到 3001"""
    try:
        return int(os.environ.get("CHRONOS_PORT", "3001"))
    except ValueError:
        return 3001


# 合约固定的 commit / reveal 窗口（秒），与单个任务无关
COMMIT_WINDOW_S: int = 60
REVEAL_WINDOW_S: int = 60

# 每个任务最多保留的审议消息数（先到先得，不做淘汰）
MAX_MESSAGES_PER_TASK: int = int(
    os.environ.get("CHRONOS_MAX_MESSAGES_PER_TASK", "500")
)

# 单条审议消息最大字符数
MAX_CONTENT_LENGTH: int = 2000

# 请求体最大字节数
MAX_BODY_BYTES: int = 16 * 1024

# 每个发送者在一个窗口内允许的消息数
RATE_LIMIT_MAX: int = 20
RATE_LIMIT_WINDOW_S: int = 60

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("CHRONOS_SSE_HEARTBEAT_INTERVAL", "15")
)
