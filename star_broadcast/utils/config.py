"""Star Broadcast 配置管理

本模块提供统一的配置管理接口，支持环境变量、默认值和运行时配置。
配置优先级：环境变量 > 运行时设置 > 默认值
"""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..exceptions import InvalidConfigurationError
from ..protocol import OverflowPolicy, UpdateIdPolicy

# 可接受的日志级别名称（大小写不敏感）
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _env(name: str, default: Any, convert: Callable[[str], Any]) -> Any:
    """读取并转换环境变量，转换失败时抛出配置错误"""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return convert(raw)
    except ValueError:
        raise InvalidConfigurationError(name, raw)


def _flag(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class HubConfig:
    """Star Broadcast 配置类

    包含 Hub 服务器、会话队列、路由策略和日志的配置选项。
    """

    # Hub 服务器配置
    hub_host: str = "0.0.0.0"
    hub_port: int = 2508
    hub_path: str = "/ws"

    # WebSocket 配置
    ws_ping_interval: Optional[float] = 20.0
    ws_ping_timeout: Optional[float] = 20.0

    # 队列配置
    outbound_queue_size: int = 256
    inbound_queue_size: int = 1024
    overflow_policy: OverflowPolicy = OverflowPolicy.DROP

    # 路由配置
    update_id_policy: UpdateIdPolicy = UpdateIdPolicy.SENDER

    # 日志配置
    log_level: str = "INFO"
    log_file: Optional[str] = None
    enable_rich_logging: bool = True

    # 自定义配置
    custom: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """校验配置项

        Raises:
            InvalidConfigurationError: 配置值不合法
        """
        try:
            port = int(self.hub_port)
        except (TypeError, ValueError):
            raise InvalidConfigurationError("hub_port", str(self.hub_port))
        if not 0 <= port <= 65535:
            raise InvalidConfigurationError("hub_port", str(self.hub_port))
        self.hub_port = port
        if str(self.log_level).upper() not in LOG_LEVELS:
            raise InvalidConfigurationError("log_level", str(self.log_level))
        if not self.hub_path.startswith("/"):
            raise InvalidConfigurationError("hub_path", self.hub_path)
        if self.outbound_queue_size < 1:
            raise InvalidConfigurationError(
                "outbound_queue_size", str(self.outbound_queue_size)
            )
        if self.inbound_queue_size < 0:
            raise InvalidConfigurationError(
                "inbound_queue_size", str(self.inbound_queue_size)
            )
        if not isinstance(self.overflow_policy, OverflowPolicy):
            raise InvalidConfigurationError(
                "overflow_policy", str(self.overflow_policy)
            )
        if not isinstance(self.update_id_policy, UpdateIdPolicy):
            raise InvalidConfigurationError(
                "update_id_policy", str(self.update_id_policy)
            )

    @classmethod
    def from_env(cls) -> "HubConfig":
        """从环境变量创建配置

        读取环境变量并创建配置实例。环境变量格式：STAR_<配置名>

        Returns:
            从环境变量读取的配置实例

        Raises:
            InvalidConfigurationError: 环境变量的值无法转换
        """
        defaults = cls()

        return cls(
            # Hub 配置
            hub_host=os.getenv("STAR_HUB_HOST", defaults.hub_host),
            hub_port=_env("STAR_HUB_PORT", defaults.hub_port, int),
            hub_path=os.getenv("STAR_HUB_PATH", defaults.hub_path),
            # WebSocket 配置
            ws_ping_interval=_env(
                "STAR_WS_PING_INTERVAL", defaults.ws_ping_interval, float
            ),
            ws_ping_timeout=_env(
                "STAR_WS_PING_TIMEOUT", defaults.ws_ping_timeout, float
            ),
            # 队列配置
            outbound_queue_size=_env(
                "STAR_OUTBOUND_QUEUE_SIZE", defaults.outbound_queue_size, int
            ),
            inbound_queue_size=_env(
                "STAR_INBOUND_QUEUE_SIZE", defaults.inbound_queue_size, int
            ),
            overflow_policy=_env(
                "STAR_OVERFLOW_POLICY",
                defaults.overflow_policy,
                lambda raw: OverflowPolicy(raw.strip().lower()),
            ),
            # 路由配置
            update_id_policy=_env(
                "STAR_UPDATE_ID_POLICY",
                defaults.update_id_policy,
                lambda raw: UpdateIdPolicy(raw.strip().lower()),
            ),
            # 日志配置
            log_level=os.getenv("STAR_LOG_LEVEL", defaults.log_level),
            log_file=os.getenv("STAR_LOG_FILE", defaults.log_file),
            enable_rich_logging=_env(
                "STAR_ENABLE_RICH_LOGGING", defaults.enable_rich_logging, _flag
            ),
        )

    def update(self, **kwargs) -> None:
        """更新配置项

        Args:
            **kwargs: 要更新的配置项
        """
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                self.custom[key] = value
        self.validate()

    def get(self, key: str, default: Any = None) -> Any:
        """获取配置项

        Args:
            key: 配置项名称
            default: 默认值

        Returns:
            配置项的值
        """
        if hasattr(self, key):
            return getattr(self, key)
        return self.custom.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典

        Returns:
            配置的字典表示
        """
        result = {
            # Hub 配置
            "hub_host": self.hub_host,
            "hub_port": self.hub_port,
            "hub_path": self.hub_path,
            # WebSocket 配置
            "ws_ping_interval": self.ws_ping_interval,
            "ws_ping_timeout": self.ws_ping_timeout,
            # 队列配置
            "outbound_queue_size": self.outbound_queue_size,
            "inbound_queue_size": self.inbound_queue_size,
            "overflow_policy": self.overflow_policy.value,
            # 路由配置
            "update_id_policy": self.update_id_policy.value,
            # 日志配置
            "log_level": self.log_level,
            "log_file": self.log_file,
            "enable_rich_logging": self.enable_rich_logging,
        }

        # 添加自定义配置
        result.update(self.custom)
        return result


# 全局配置实例
_global_config: Optional[HubConfig] = None


def get_config() -> HubConfig:
    """获取全局配置

    如果配置尚未初始化，则从环境变量创建默认配置。
    """
    global _global_config
    if _global_config is None:
        _global_config = HubConfig.from_env()
    return _global_config


def set_config(config: HubConfig) -> None:
    """设置全局配置"""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """重置全局配置

    清除当前配置，下次调用 get_config() 时会重新从环境变量读取。
    """
    global _global_config
    _global_config = None
