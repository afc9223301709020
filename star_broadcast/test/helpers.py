"""测试用的假连接和辅助函数"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Union

from websockets.exceptions import ConnectionClosedError

from star_broadcast.hub import BroadcastHub, Session
from star_broadcast.protocol import Envelope, OverflowPolicy

# 读循环结束标记
EOF = object()


class FakeWebSocket:
    """模拟 websockets 连接：可迭代接收帧，记录发送的帧"""

    def __init__(self):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: List[str] = []
        self.closed = False
        self.fail_send = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is EOF:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, frame: str) -> None:
        if self.fail_send:
            raise ConnectionClosedError(None, None)
        self.sent.append(frame)

    async def close(self) -> None:
        self.closed = True

    def feed(self, message: Union[str, bytes]) -> None:
        self.incoming.put_nowait(message)

    def disconnect(self) -> None:
        self.incoming.put_nowait(EOF)

    def break_connection(self) -> None:
        self.incoming.put_nowait(ConnectionClosedError(None, None))


class RecordingHub:
    """只记录调用的 Hub 替身"""

    def __init__(self):
        self.frames: List[str] = []
        self.unregistered: List[Session] = []

    async def broadcast(self, frame: str) -> None:
        self.frames.append(frame)

    async def unregister(self, session: Session) -> None:
        self.unregistered.append(session)


def make_session(
    session_id: str,
    hub: Any,
    queue_size: int = 64,
    overflow: OverflowPolicy = OverflowPolicy.DROP,
) -> Session:
    return Session(session_id, FakeWebSocket(), hub, queue_size, overflow)


def drain(session: Session) -> List[Optional[Dict[str, Any]]]:
    """取出发送队列中的全部帧；关闭标记记为 None"""
    frames = []
    while True:
        try:
            frame = session._outbound.get_nowait()
        except asyncio.QueueEmpty:
            break
        frames.append(json.loads(frame) if isinstance(frame, str) else None)
    return frames


def envelope(sender: str, payload: Union[str, Dict[str, Any]]) -> str:
    """构造读循环会产生的信封帧"""
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return Envelope(sender=sender, content=content).to_json()


async def registered_members(hub: BroadcastHub, *session_ids: str) -> List[Session]:
    """注册一组会话并清空它们收到的欢迎帧"""
    sessions = [make_session(session_id, hub) for session_id in session_ids]
    for session in sessions:
        await hub.handle_register(session)
    for session in sessions:
        drain(session)
    return sessions
