"""Star Broadcast 协议核心模块"""

from .exceptions import (
    ProtocolException,
    MalformedEnvelope,
    MalformedPayload,
    SerializationException,
)
from .types import PayloadType, UpdateIdPolicy, OverflowPolicy
from .messages import (
    # 信封与载荷
    Envelope,
    LoginPayload,
    UpdatePayload,
    ChatPayload,
    WelcomePayload,
    ClosedPayload,
    Payload,  # Union 类型
    # 编解码
    payload_from_dict,
    decode_envelope,
    decode_payload,
    encode_envelope,
    encode_payload,
    default_location,
)

__all__ = [
    # 异常类
    "ProtocolException",
    "MalformedEnvelope",
    "MalformedPayload",
    "SerializationException",
    # 类型枚举
    "PayloadType",
    "UpdateIdPolicy",
    "OverflowPolicy",
    # 信封与载荷
    "Envelope",
    "LoginPayload",
    "UpdatePayload",
    "ChatPayload",
    "WelcomePayload",
    "ClosedPayload",
    "Payload",
    # 编解码
    "payload_from_dict",
    "decode_envelope",
    "decode_payload",
    "encode_envelope",
    "encode_payload",
    "default_location",
]
