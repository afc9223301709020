"""Star Broadcast 消息格式定义

本模块定义了广播协议的两层消息结构：

- 外层信封 Envelope: {"sender": "<会话ID>", "content": "<内层载荷的 JSON 字符串>"}
- 内层载荷: 由 type 字段区分 (login / update / message / welcome / closed)

解码分两步进行，每一步失败时抛出不同的异常：
decode_envelope -> MalformedEnvelope，decode_payload -> MalformedPayload。
所有函数都是无状态的，可以被任意数量的调用方并发使用。
"""

import json
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Union

from .types import PayloadType
from .exceptions import MalformedEnvelope, MalformedPayload, SerializationException

# 载荷字段的取值：线上格式通常是字符串，也接受数字原样透传
Scalar = Union[str, int, float]

# 新会话注册时下发的初始位置
DEFAULT_MOMENTUM = "0.036"
DEFAULT_ANGLE = "3.063"
DEFAULT_X = "0"
DEFAULT_Y = "0"
DEFAULT_SEX = "-1"
DEFAULT_ICON = ""


def _scalar(data: Dict[str, Any], key: str) -> Scalar:
    """读取载荷中的标量字段

    缺失或 null 视为空字符串；对象、数组和布尔值视为格式错误。
    """
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedPayload(
            f"Field '{key}' must be a string or number, got {type(value).__name__}"
        )
    return value


def _dumps(data: Dict[str, Any]) -> str:
    try:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise SerializationException(f"Failed to serialize payload: {e}")


# === 外层信封 ===


@dataclass
class Envelope:
    """外层信封

    sender 由服务器在读循环中填写为发送会话的 ID，
    content 是客户端发来的原始帧文本（其本身又是一个 JSON 载荷）。
    """

    sender: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"sender": self.sender, "content": self.content}

    @classmethod
    def from_dict(cls, data: Any) -> "Envelope":
        """从字典反序列化

        Raises:
            MalformedEnvelope: 结构不是对象，或字段类型不正确
        """
        if not isinstance(data, dict):
            raise MalformedEnvelope(
                f"Envelope must be a JSON object, got {type(data).__name__}"
            )

        sender = data.get("sender", "")
        if sender is None:
            sender = ""
        if not isinstance(sender, str):
            raise MalformedEnvelope("Envelope 'sender' must be a string")

        if "content" not in data:
            raise MalformedEnvelope("Envelope is missing 'content'")
        content = data["content"]
        if not isinstance(content, str):
            raise MalformedEnvelope("Envelope 'content' must be a string")

        return cls(sender=sender, content=content)

    def to_json(self) -> str:
        return _dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "Envelope":
        """从原始帧反序列化"""
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = bytes(raw).decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedEnvelope(f"Envelope is not valid UTF-8: {e}")
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as e:
            raise MalformedEnvelope(f"Invalid JSON format: {e}")
        return cls.from_dict(data)


# === 内层载荷 ===


@dataclass
class LoginPayload:
    """登录消息（除 type 外的字段全部忽略）"""

    payload_type: PayloadType = PayloadType.LOGIN

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.payload_type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoginPayload":
        return cls()


@dataclass
class UpdatePayload:
    """位置更新

    客户端上报和服务器下发使用同一结构，例如:
    {"type":"update","id":"...","momentum":"0.002","angle":"-4.07",
     "x":"-24.6","y":"-138.7","name":"dizzys","sex":"1","icon":"/icon/a.jpg"}
    """

    payload_type: PayloadType = PayloadType.UPDATE
    id: Scalar = ""
    momentum: Scalar = ""
    angle: Scalar = ""
    x: Scalar = ""
    y: Scalar = ""
    name: Scalar = ""
    sex: Scalar = ""
    icon: Scalar = ""

    def with_id(self, new_id: str) -> "UpdatePayload":
        """返回只替换了 id 的副本，原对象不变"""
        return replace(self, id=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.payload_type.value,
            "id": self.id,
            "momentum": self.momentum,
            "angle": self.angle,
            "x": self.x,
            "y": self.y,
            "name": self.name,
            "sex": self.sex,
            "icon": self.icon,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpdatePayload":
        return cls(
            id=_scalar(data, "id"),
            momentum=_scalar(data, "momentum"),
            angle=_scalar(data, "angle"),
            x=_scalar(data, "x"),
            y=_scalar(data, "y"),
            name=_scalar(data, "name"),
            sex=_scalar(data, "sex"),
            icon=_scalar(data, "icon"),
        )


@dataclass
class ChatPayload:
    """聊天消息"""

    payload_type: PayloadType = PayloadType.MESSAGE
    id: Scalar = ""
    message: Scalar = ""

    def with_id(self, new_id: str) -> "ChatPayload":
        return replace(self, id=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.payload_type.value,
            "id": self.id,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatPayload":
        return cls(id=_scalar(data, "id"), message=_scalar(data, "message"))


@dataclass
class WelcomePayload:
    """欢迎消息，告知客户端分配到的会话 ID"""

    payload_type: PayloadType = PayloadType.WELCOME
    id: Scalar = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.payload_type.value, "id": self.id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WelcomePayload":
        return cls(id=_scalar(data, "id"))


@dataclass
class ClosedPayload:
    """离线通知 {"type":"closed","id":"..."}"""

    payload_type: PayloadType = PayloadType.CLOSED
    id: Scalar = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.payload_type.value, "id": self.id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClosedPayload":
        return cls(id=_scalar(data, "id"))


# Union 类型定义
Payload = Union[
    LoginPayload,
    UpdatePayload,
    ChatPayload,
    WelcomePayload,
    ClosedPayload,
]

_PAYLOAD_CLASSES = {
    PayloadType.LOGIN: LoginPayload,
    PayloadType.UPDATE: UpdatePayload,
    PayloadType.MESSAGE: ChatPayload,
    PayloadType.WELCOME: WelcomePayload,
    PayloadType.CLOSED: ClosedPayload,
}


def payload_from_dict(data: Dict[str, Any]) -> Optional[Payload]:
    """从字典创建载荷（工厂函数）

    Returns:
        载荷实例；type 缺失或无法识别时返回 None

    Raises:
        MalformedPayload: type 不是字符串，或已知字段的类型不正确
    """
    type_value = data.get("type")
    if type_value is None:
        return None
    if not isinstance(type_value, str):
        raise MalformedPayload("Payload 'type' must be a string")

    try:
        payload_type = PayloadType(type_value)
    except ValueError:
        return None

    return _PAYLOAD_CLASSES[payload_type].from_dict(data)


# === 编解码入口 ===


def decode_envelope(raw: Union[str, bytes]) -> Envelope:
    """解码外层信封

    Raises:
        MalformedEnvelope: 原始帧不是合法的信封
    """
    return Envelope.from_json(raw)


def decode_payload(content: str) -> Optional[Payload]:
    """解码信封中的内层载荷

    Args:
        content: 信封的 content 字符串

    Returns:
        载荷实例；无法识别的 type 返回 None

    Raises:
        MalformedPayload: content 不是合法的载荷
    """
    try:
        data = json.loads(content)
    except (ValueError, RecursionError, TypeError) as e:
        raise MalformedPayload(f"Invalid JSON format: {e}")

    if not isinstance(data, dict):
        raise MalformedPayload(
            f"Payload must be a JSON object, got {type(data).__name__}"
        )

    return payload_from_dict(data)


def encode_envelope(envelope: Envelope) -> str:
    """编码外层信封"""
    return envelope.to_json()


def encode_payload(payload: Payload) -> str:
    """编码任意载荷为紧凑 JSON 文本"""
    return _dumps(payload.to_dict())


def default_location(session_id: str) -> UpdatePayload:
    """新会话注册时下发的初始位置"""
    return UpdatePayload(
        id=session_id,
        momentum=DEFAULT_MOMENTUM,
        angle=DEFAULT_ANGLE,
        x=DEFAULT_X,
        y=DEFAULT_Y,
        name=session_id,
        sex=DEFAULT_SEX,
        icon=DEFAULT_ICON,
    )
