"""
Star Broadcast 传输会话

封装单个客户端的双工连接：一个读循环把收到的帧包装成信封交给 Hub，
一个写循环按顺序把发送队列中的帧写回客户端。会话本身不知道其他会话的存在。
"""

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Union

from websockets.exceptions import ConnectionClosed

from ..exceptions import TransportError
from ..protocol import Envelope, OverflowPolicy, encode_envelope
from ..utils import get_logger

if TYPE_CHECKING:
    from .router import BroadcastHub

# 发送队列关闭标记
_CLOSE = object()


class Session:
    """客户端会话

    发送队列只由 Hub 的控制循环写入、只由本会话的写循环读取。
    Hub 注销会话时调用 close_outbound()，写循环收到关闭标记后发送 close 帧并退出。
    """

    def __init__(
        self,
        session_id: str,
        websocket: Any,
        hub: "BroadcastHub",
        queue_size: int = 256,
        overflow: OverflowPolicy = OverflowPolicy.DROP,
    ):
        self.session_id = session_id
        self.websocket = websocket
        self.hub = hub
        self.overflow = overflow
        self.connected_at = datetime.now()

        self._outbound: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._closed = False
        self._unregister_signalled = False

        # 统计
        self.frames_received = 0
        self.frames_sent = 0
        self.frames_dropped = 0

        self.logger = get_logger("star_broadcast.hub.session")

    def __repr__(self) -> str:
        return f"Session({self.session_id!r})"

    @property
    def closed(self) -> bool:
        """发送队列是否已被关闭"""
        return self._closed

    @property
    def pending(self) -> int:
        """发送队列中等待写出的帧数"""
        return self._outbound.qsize()

    # 发送队列

    async def enqueue(self, frame: str) -> bool:
        """把一帧放入发送队列

        BLOCK 策略下队列满时等待写循环腾出空间；
        DROP 策略下队列满时直接丢弃这一帧。

        Args:
            frame: 已序列化的帧

        Returns:
            是否成功入队
        """
        if self._closed:
            return False

        if self.overflow == OverflowPolicy.BLOCK:
            await self._outbound.put(frame)
            return True

        try:
            self._outbound.put_nowait(frame)
            return True
        except asyncio.QueueFull:
            self.frames_dropped += 1
            self.logger.warning(
                f"会话 {self.session_id} 发送队列已满，丢弃一帧 "
                f"(累计丢弃 {self.frames_dropped})"
            )
            return False

    def close_outbound(self) -> None:
        """关闭发送队列

        丢弃尚未写出的帧，并放入关闭标记。重复调用无副作用。
        """
        if self._closed:
            return
        self._closed = True

        discarded = 0
        while True:
            try:
                self._outbound.get_nowait()
            except asyncio.QueueEmpty:
                break
            discarded += 1

        if discarded:
            self.logger.debug(f"会话 {self.session_id} 关闭时丢弃 {discarded} 帧")
        self._outbound.put_nowait(_CLOSE)

    # 读写循环

    async def read_loop(self) -> None:
        """读循环

        每收到一帧，包装为 {sender: 会话ID, content: 原始帧} 交给 Hub。
        连接关闭或出错时通知 Hub 注销本会话。
        """
        try:
            async for message in self.websocket:
                self.frames_received += 1
                content = self._as_text(message)
                envelope = Envelope(sender=self.session_id, content=content)
                await self.hub.broadcast(encode_envelope(envelope))

        except ConnectionClosed as e:
            error = TransportError(self.session_id, f"read failed: {e}")
            self.logger.info(str(error))

        finally:
            await self._signal_unregister()

    async def write_loop(self) -> None:
        """写循环

        按入队顺序写出帧。收到关闭标记时发送 close 帧并退出。
        写失败后不再写入连接，但继续消费队列直到关闭标记到来，
        保证 BLOCK 策略下控制循环不会卡在一个已失效的会话上。
        """
        failed = False

        while True:
            frame = await self._outbound.get()

            if frame is _CLOSE:
                if not failed:
                    await self._close_transport()
                return

            if failed:
                continue

            try:
                await self._send(frame)
            except TransportError as e:
                self.logger.info(str(e))
                failed = True
                await self._signal_unregister()

    async def run(self) -> None:
        """运行读写循环，直到两者都结束"""
        writer = asyncio.create_task(self.write_loop())
        try:
            await self.read_loop()
        finally:
            await writer

    # 内部方法

    async def _send(self, frame: str) -> None:
        try:
            await self.websocket.send(frame)
        except (ConnectionClosed, OSError) as e:
            raise TransportError(self.session_id, f"write failed: {e}") from e
        self.frames_sent += 1

    async def _close_transport(self) -> None:
        try:
            await self.websocket.close()
        except (ConnectionClosed, OSError) as e:
            self.logger.debug(f"关闭会话 {self.session_id} 连接失败: {e}")

    async def _signal_unregister(self) -> None:
        if self._unregister_signalled:
            return
        self._unregister_signalled = True
        await self.hub.unregister(self)

    def _as_text(self, message: Union[str, bytes]) -> str:
        """二进制帧按 UTF-8 解码，非法字节替换为 U+FFFD"""
        if not isinstance(message, (bytes, bytearray)):
            return message
        try:
            return bytes(message).decode("utf-8")
        except UnicodeDecodeError as e:
            self.logger.debug(f"会话 {self.session_id} 的二进制帧不是合法 UTF-8: {e}")
            return bytes(message).decode("utf-8", errors="replace")

    def get_info(self) -> Dict[str, Any]:
        """获取会话详细信息"""
        return {
            "session_id": self.session_id,
            "connected_at": self.connected_at.isoformat(),
            "closed": self._closed,
            "pending": self.pending,
            "frames_received": self.frames_received,
            "frames_sent": self.frames_sent,
            "frames_dropped": self.frames_dropped,
        }
