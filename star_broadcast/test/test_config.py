"""测试配置加载和命令行参数合并"""

import pytest

from star_broadcast.cli import build_parser, config_from_args, main
from star_broadcast.exceptions import ConfigurationError, InvalidConfigurationError
from star_broadcast.protocol import OverflowPolicy, UpdateIdPolicy
from star_broadcast.utils import (
    HubConfig,
    configure_logging,
    get_config,
    get_logger,
    reset_config,
    set_config,
)

ENV_KEYS = [
    "STAR_HUB_HOST",
    "STAR_HUB_PORT",
    "STAR_HUB_PATH",
    "STAR_OUTBOUND_QUEUE_SIZE",
    "STAR_OVERFLOW_POLICY",
    "STAR_UPDATE_ID_POLICY",
    "STAR_ENABLE_RICH_LOGGING",
    "STAR_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


def test_defaults():
    config = HubConfig()

    assert config.hub_port == 2508
    assert config.hub_path == "/ws"
    assert config.overflow_policy == OverflowPolicy.DROP
    assert config.update_id_policy == UpdateIdPolicy.SENDER


def test_from_env(monkeypatch):
    monkeypatch.setenv("STAR_HUB_PORT", "9000")
    monkeypatch.setenv("STAR_OVERFLOW_POLICY", "BLOCK")
    monkeypatch.setenv("STAR_UPDATE_ID_POLICY", "recipient")
    monkeypatch.setenv("STAR_ENABLE_RICH_LOGGING", "false")

    config = HubConfig.from_env()

    assert config.hub_port == 9000
    assert config.overflow_policy == OverflowPolicy.BLOCK
    assert config.update_id_policy == UpdateIdPolicy.RECIPIENT
    assert config.enable_rich_logging is False


@pytest.mark.parametrize(
    "key,value",
    [
        ("STAR_HUB_PORT", "not-a-port"),
        ("STAR_HUB_PORT", "70000"),
        ("STAR_OVERFLOW_POLICY", "explode"),
        ("STAR_HUB_PATH", "ws"),
        ("STAR_OUTBOUND_QUEUE_SIZE", "0"),
        ("STAR_LOG_LEVEL", "verbose"),
    ],
)
def test_from_env_rejects_invalid_values(monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(InvalidConfigurationError) as excinfo:
        HubConfig.from_env()

    assert isinstance(excinfo.value, ConfigurationError)
    assert excinfo.value.to_dict()["error_code"] == "CONFIG002"


def test_update_and_custom_values():
    config = HubConfig()

    config.update(hub_port=1234, team="blue")

    assert config.get("hub_port") == 1234
    assert config.get("team") == "blue"
    assert config.to_dict()["team"] == "blue"
    assert config.to_dict()["overflow_policy"] == "drop"


def test_global_config():
    config = HubConfig(hub_port=4321)

    set_config(config)

    assert get_config() is config
    reset_config()
    assert get_config().hub_port == 2508


def test_cli_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("STAR_HUB_PORT", "9000")
    args = build_parser().parse_args(
        ["--port", "3000", "--overflow", "block", "--update-id", "recipient", "--no-rich"]
    )

    config = config_from_args(args)

    assert config.hub_port == 3000
    assert config.overflow_policy == OverflowPolicy.BLOCK
    assert config.update_id_policy == UpdateIdPolicy.RECIPIENT
    assert config.enable_rich_logging is False
    assert config.hub_path == "/ws"


def test_configure_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "hub.log"

    logger = configure_logging(
        name="star_broadcast.test_logging",
        level="debug",
        log_file=str(log_file),
        enable_rich=False,
    )
    get_logger("star_broadcast.test_logging.child").debug("子日志器继承配置")
    for handler in logger.handlers:
        handler.flush()

    assert len(logger.handlers) == 2
    assert "子日志器继承配置" in log_file.read_text()


@pytest.mark.parametrize(
    "key,value",
    [
        ("hub_port", "abc"),
        ("hub_port", None),
        ("log_level", "verbose"),
    ],
)
def test_update_rejects_invalid_values(key, value):
    config = HubConfig()

    with pytest.raises(InvalidConfigurationError) as excinfo:
        config.update(**{key: value})

    assert excinfo.value.to_dict()["error_code"] == "CONFIG002"


def test_numeric_port_string_is_normalized():
    config = HubConfig()

    config.update(hub_port="3000", log_level="debug")

    assert config.hub_port == 3000


def test_cli_reports_invalid_log_level(capsys):
    assert main(["--log-level", "verbose"]) == 2

    assert "配置错误" in capsys.readouterr().err
