"""进程入口 -- python -m chronos.relay

合约地址等必填配置缺失时以状态码 1 退出；SIGINT/SIGTERM 由 uvicorn 处理。
"""

import sys

import structlog
import uvicorn
from chronos.chain import load_chain_config
from chronos.core.config import get_listen_host, get_listen_port
from chronos.core.exceptions import ConfigurationError

from .middleware.logging_config import setup_logging

log = structlog.get_logger()


def main() -> int:
    setup_logging()
    try:
        load_chain_config()
    except ConfigurationError as e:
        log.error("startup_config_invalid", error=str(e))
        return 1

    host = get_listen_host()
    port = get_listen_port()
    log.info("relay_listening", host=host, port=port)
    uvicorn.run("chronos.relay.main:app", host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
