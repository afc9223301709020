"""
Star Broadcast - 多人会话实时广播 Hub

主要组件：
- protocol: 信封与载荷的两级编解码
- hub: 会话读写循环、注册表/路由控制循环、WebSocket 服务器
- cli: 命令行入口
- utils: 配置和日志
"""

__version__ = "1.0.0"

from . import protocol
from . import hub
from . import utils

from .hub import BroadcastHub, HubServer, Session, run_server
from .utils import HubConfig, configure_logging, get_logger
from .exceptions import (
    StarBroadcastError,
    TransportError,
    ConfigurationError,
    InvalidConfigurationError,
)

__all__ = [
    # 版本
    "__version__",
    # 子模块
    "protocol",
    "hub",
    "utils",
    # Hub
    "BroadcastHub",
    "HubServer",
    "Session",
    "run_server",
    # 工具
    "HubConfig",
    "configure_logging",
    "get_logger",
    # 异常
    "StarBroadcastError",
    "TransportError",
    "ConfigurationError",
    "InvalidConfigurationError",
]
