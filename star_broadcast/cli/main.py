"""star-broadcast 命令行入口

启动广播 Hub 服务器，收到 SIGINT / SIGTERM 时优雅退出。
未在命令行给出的选项回退到 STAR_* 环境变量，再回退到默认值。
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from ..exceptions import ConfigurationError
from ..hub import run_server
from ..protocol import OverflowPolicy, UpdateIdPolicy
from ..utils import HubConfig, configure_logging, get_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="star-broadcast", description="Star Broadcast Hub Server"
    )
    parser.add_argument("--host", help="监听地址 (默认: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="监听端口 (默认: 2508)")
    parser.add_argument("--path", help="WebSocket 路径 (默认: /ws)")
    parser.add_argument("--queue-size", type=int, help="每个会话的发送队列长度")
    parser.add_argument(
        "--overflow",
        choices=[policy.value for policy in OverflowPolicy],
        help="发送队列满时的策略",
    )
    parser.add_argument(
        "--update-id",
        choices=[policy.value for policy in UpdateIdPolicy],
        help="位置广播中 id 字段的取值",
    )
    parser.add_argument("--log-level", help="日志级别 (默认: INFO)")
    parser.add_argument("--log-file", help="日志文件路径")
    parser.add_argument("--no-rich", action="store_true", help="禁用 rich 日志输出")
    return parser


def config_from_args(args: argparse.Namespace) -> HubConfig:
    """合并环境变量配置与命令行参数"""
    config = HubConfig.from_env()

    overrides = {
        "hub_host": args.host,
        "hub_port": args.port,
        "hub_path": args.path,
        "outbound_queue_size": args.queue_size,
        "overflow_policy": OverflowPolicy(args.overflow) if args.overflow else None,
        "update_id_policy": UpdateIdPolicy(args.update_id) if args.update_id else None,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }
    config.update(**{key: value for key, value in overrides.items() if value is not None})
    if args.no_rich:
        config.update(enable_rich_logging=False)
    return config


async def serve(config: HubConfig) -> None:
    """运行服务器直到收到停止信号"""
    logger = get_logger("star_broadcast.cli")
    server = await run_server(config)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows 不支持 add_signal_handler，依赖 KeyboardInterrupt
            pass

    try:
        await stop_event.wait()
        logger.info("收到停止信号，正在关闭服务器...")
    finally:
        await server.stop()


def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        print(f"配置错误: {e.message}", file=sys.stderr)
        return 2

    configure_logging(
        level=config.log_level,
        log_file=config.log_file,
        enable_rich=config.enable_rich_logging,
    )

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        pass
    except OSError as e:
        get_logger("star_broadcast.cli").error(f"程序异常退出: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
