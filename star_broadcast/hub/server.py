"""Hub WebSocket 服务器"""

import uuid
from http import HTTPStatus
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.http11 import Request, Response

from ..utils import HubConfig, get_logger
from .router import BroadcastHub
from .session import Session


class HubServer:
    """Hub WebSocket 服务器

    只在配置的路径（默认 /ws）上接受 WebSocket 升级，其余路径返回 404。
    每个连接分配一个新的 UUID 作为会话 ID，注册到 Hub 后运行读写循环。
    """

    def __init__(self, config: Optional[HubConfig] = None):
        self.config = config or HubConfig()

        # 核心组件
        self.hub = BroadcastHub(
            update_id_policy=self.config.update_id_policy,
            inbound_queue_size=self.config.inbound_queue_size,
        )

        # 服务器状态
        self.server: Optional[Server] = None
        self.running = False

        self.logger = get_logger("star_broadcast.hub.server")

    @property
    def port(self) -> Optional[int]:
        """实际监听的端口（配置端口为 0 时由系统分配）"""
        if not self.server:
            return None
        for sock in self.server.sockets:
            return sock.getsockname()[1]
        return None

    async def start(self) -> None:
        """启动服务器"""
        if self.running:
            self.logger.warning("服务器已经在运行")
            return

        self.logger.info(
            f"启动 Hub 服务器: {self.config.hub_host}:{self.config.hub_port}"
            f"{self.config.hub_path}"
        )

        await self.hub.start()
        try:
            self.server = await serve(
                self._handle_client,
                self.config.hub_host,
                self.config.hub_port,
                process_request=self._process_request,
                ping_interval=self.config.ws_ping_interval,
                ping_timeout=self.config.ws_ping_timeout,
            )
        except OSError as e:
            self.logger.error(f"启动服务器失败: {e}")
            await self.hub.stop()
            raise

        self.running = True
        self.logger.info(f"Hub 服务器启动成功，端口 {self.port}")

    async def stop(self) -> None:
        """停止服务器

        先关闭监听和所有连接，等待各会话完成注销，再停止控制循环。
        """
        if not self.running:
            return

        self.logger.info("停止 Hub 服务器")
        self.running = False

        try:
            if self.server:
                self.server.close()
                await self.server.wait_closed()
                self.server = None
        finally:
            await self.hub.stop()

        self.logger.info("Hub 服务器已停止")

    def _process_request(
        self, connection: ServerConnection, request: Request
    ) -> Optional[Response]:
        """拒绝非 Hub 路径的升级请求"""
        path = urlsplit(request.path).path
        if path != self.config.hub_path:
            self.logger.debug(f"拒绝路径 {request.path}")
            return connection.respond(HTTPStatus.NOT_FOUND, "404 page not found\n")
        return None

    async def _handle_client(self, websocket: ServerConnection) -> None:
        """处理客户端连接

        Args:
            websocket: WebSocket 连接
        """
        session = Session(
            session_id=str(uuid.uuid4()),
            websocket=websocket,
            hub=self.hub,
            queue_size=self.config.outbound_queue_size,
            overflow=self.config.overflow_policy,
        )
        self.logger.debug(f"新连接 {websocket.remote_address} -> {session.session_id}")

        await self.hub.register(session)
        await session.run()

    def get_stats(self) -> Dict[str, Any]:
        """获取服务器统计信息

        Returns:
            统计信息字典
        """
        return {
            "server": {
                "running": self.running,
                "host": self.config.hub_host,
                "port": self.port,
                "path": self.config.hub_path,
            },
            "hub": self.hub.get_stats(),
            "sessions": self.hub.get_session_info(),
        }


# 便捷的启动函数
async def run_server(config: Optional[HubConfig] = None) -> HubServer:
    """启动 Hub 服务器

    Args:
        config: 服务器配置，默认从环境变量读取

    Returns:
        已启动的 Hub 服务器实例
    """
    server = HubServer(config or HubConfig.from_env())
    await server.start()
    return server
