"""Hub 连接注册表与消息路由器

BroadcastHub 持有全部在线会话，并通过单一控制循环串行处理三类事件：
注册、注销、广播。成员集合只在控制循环中修改，因此不需要加锁。
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..protocol import (
    ChatPayload,
    ClosedPayload,
    LoginPayload,
    MalformedEnvelope,
    MalformedPayload,
    UpdateIdPolicy,
    UpdatePayload,
    WelcomePayload,
    decode_envelope,
    decode_payload,
    default_location,
    encode_payload,
)
from ..utils import get_logger
from .session import Session


class EventKind(Enum):
    """控制循环的事件类型"""

    REGISTER = "register"
    UNREGISTER = "unregister"
    BROADCAST = "broadcast"


@dataclass
class HubEvent:
    """控制循环事件"""

    kind: EventKind
    session: Optional[Session] = None
    frame: Optional[str] = None


class BroadcastHub:
    """广播 Hub

    对外只暴露 register / unregister / broadcast 三个入口，
    它们只负责把事件放入队列，真正的处理在控制循环中进行。
    """

    def __init__(
        self,
        update_id_policy: UpdateIdPolicy = UpdateIdPolicy.SENDER,
        inbound_queue_size: int = 1024,
    ):
        self.update_id_policy = update_id_policy

        # 成员集合：session_id -> Session，只由控制循环修改
        self._members: Dict[str, Session] = {}

        # 事件队列不设上限，注册/注销永远不会阻塞；
        # 广播事件通过信号量限制积压数量，给读循环施加背压
        self._events: asyncio.Queue = asyncio.Queue()
        self._inbound_slots: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(inbound_queue_size) if inbound_queue_size > 0 else None
        )

        self._loop_task: Optional[asyncio.Task] = None

        self.stats: Dict[str, int] = {
            "registered": 0,
            "unregistered": 0,
            "logins": 0,
            "chat_messages": 0,
            "updates": 0,
            "malformed_envelopes": 0,
            "malformed_payloads": 0,
            "unrecognized": 0,
            "frames_delivered": 0,
            "frames_dropped": 0,
        }

        self.logger = get_logger("star_broadcast.hub.router")

    # 生命周期

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def start(self) -> None:
        """启动控制循环"""
        if self.running:
            self.logger.warning("控制循环已经在运行")
            return
        self._loop_task = asyncio.create_task(self._run(), name="broadcast-hub")
        self.logger.info("Hub 控制循环已启动")

    async def stop(self) -> None:
        """停止控制循环，并关闭所有剩余会话的发送队列"""
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        for session in list(self._members.values()):
            session.close_outbound()
        self._members.clear()
        self.logger.info("Hub 控制循环已停止")

    async def wait_idle(self) -> None:
        """等待已入队的事件全部处理完毕"""
        await self._events.join()

    # 事件入口

    async def register(self, session: Session) -> None:
        """请求注册会话"""
        self._events.put_nowait(HubEvent(EventKind.REGISTER, session=session))

    async def unregister(self, session: Session) -> None:
        """请求注销会话（可重复调用）"""
        self._events.put_nowait(HubEvent(EventKind.UNREGISTER, session=session))

    async def broadcast(self, frame: str) -> None:
        """提交一个信封帧等待路由

        积压的广播事件达到上限时等待控制循环消化。
        """
        if self._inbound_slots is not None:
            await self._inbound_slots.acquire()
        self._events.put_nowait(HubEvent(EventKind.BROADCAST, frame=frame))

    # 控制循环

    async def _run(self) -> None:
        while True:
            event = await self._events.get()
            try:
                await self.dispatch(event)
            except Exception:
                # 单个事件出错不能终止控制循环
                self.logger.exception(f"处理事件 {event.kind.value} 失败")
            finally:
                if event.kind == EventKind.BROADCAST and self._inbound_slots is not None:
                    self._inbound_slots.release()
                self._events.task_done()

    async def dispatch(self, event: HubEvent) -> None:
        """按事件类型分发到对应的处理器"""
        if event.kind == EventKind.REGISTER:
            await self.handle_register(event.session)
        elif event.kind == EventKind.UNREGISTER:
            await self.handle_unregister(event.session)
        elif event.kind == EventKind.BROADCAST:
            await self.handle_broadcast(event.frame)

    async def handle_register(self, session: Session) -> None:
        """加入成员集合，并依次发送欢迎消息和初始位置"""
        session_id = session.session_id
        if session_id in self._members:
            self.logger.warning(f"会话 {session_id} 已注册，忽略重复注册")
            return

        self._members[session_id] = session
        self.stats["registered"] += 1
        self.logger.info(f"客户端 {session_id} 已经加入连接")

        welcome = encode_payload(WelcomePayload(id=session_id))
        self.logger.debug(f"新的客户端连接分配ID: {welcome}")
        await self._deliver(session, welcome)
        await self._deliver(session, encode_payload(default_location(session_id)))

    async def handle_unregister(self, session: Session) -> None:
        """移出成员集合，关闭其发送队列，并通知其余成员

        会话不在成员集合中时什么也不做。
        """
        session_id = session.session_id
        if self._members.get(session_id) is not session:
            return

        del self._members[session_id]
        session.close_outbound()
        self.stats["unregistered"] += 1
        self.logger.info(f"客户端 {session_id} 已经断开连接")

        await self._fan_out(encode_payload(ClosedPayload(id=session_id)))

    async def handle_broadcast(self, frame: str) -> None:
        """两级解码后按载荷类型路由

        任意一级解码失败都只记录日志并丢弃，不向发送者回复。
        """
        self.logger.debug(f"收到消息: {frame}")

        try:
            envelope = decode_envelope(frame)
        except MalformedEnvelope as e:
            self.stats["malformed_envelopes"] += 1
            self.logger.warning(f"丢弃格式错误的信封: {e}")
            return

        try:
            payload = decode_payload(envelope.content)
        except MalformedPayload as e:
            self.stats["malformed_payloads"] += 1
            self.logger.warning(f"丢弃来自 {envelope.sender} 的格式错误载荷: {e}")
            return

        if isinstance(payload, LoginPayload):
            self.stats["logins"] += 1
            self.logger.info(f"ID: {envelope.sender} 登录成功")

        elif isinstance(payload, ChatPayload):
            self.stats["chat_messages"] += 1
            chat = encode_payload(payload.with_id(envelope.sender))
            self.logger.debug(f"广播: {chat}")
            await self._fan_out(chat)

        elif isinstance(payload, UpdatePayload):
            self.stats["updates"] += 1
            template = payload.with_id(envelope.sender)
            for member in list(self._members.values()):
                location = self.location_for(member, template)
                await self._deliver(member, encode_payload(location))

        else:
            # welcome / closed 等服务器下行类型，或无法识别的 type
            self.stats["unrecognized"] += 1
            self.logger.debug(f"忽略来自 {envelope.sender} 的未知消息类型")

    def location_for(self, recipient: Session, template: UpdatePayload) -> UpdatePayload:
        """为某个接收者构造位置广播副本

        template 的 id 已经是发送者 ID；RECIPIENT 策略下改写为接收者 ID。
        """
        if self.update_id_policy == UpdateIdPolicy.RECIPIENT:
            return template.with_id(recipient.session_id)
        return template

    # 发送

    async def _fan_out(self, frame: str) -> int:
        """把同一帧发送给所有当前成员"""
        delivered = 0
        for member in list(self._members.values()):
            if await self._deliver(member, frame):
                delivered += 1
        return delivered

    async def _deliver(self, session: Session, frame: str) -> bool:
        if await session.enqueue(frame):
            self.stats["frames_delivered"] += 1
            return True
        self.stats["frames_dropped"] += 1
        return False

    # 查询方法

    def members(self) -> List[str]:
        """当前成员 ID 列表（快照）"""
        return list(self._members.keys())

    def is_member(self, session_id: str) -> bool:
        return session_id in self._members

    def get_member_count(self) -> int:
        return len(self._members)

    def get_stats(self) -> Dict[str, int]:
        """获取路由统计"""
        stats = dict(self.stats)
        stats["members"] = len(self._members)
        return stats

    def get_session_info(self) -> List[Dict[str, Any]]:
        """获取所有成员会话的详细信息"""
        return [session.get_info() for session in self._members.values()]
