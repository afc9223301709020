"""Star Broadcast 类型定义

本模块定义了广播协议的基础枚举：载荷类型、位置广播的 id 策略、
以及会话发送队列的溢出策略。
"""

from enum import Enum


class PayloadType(Enum):
    """内层载荷类型枚举

    客户端 -> 服务器: login / update / message
    服务器 -> 客户端: welcome / update / message / closed
    """

    LOGIN = "login"
    UPDATE = "update"
    MESSAGE = "message"
    WELCOME = "welcome"
    CLOSED = "closed"


class UpdateIdPolicy(Enum):
    """位置广播的 id 标记策略

    SENDER: 每份副本都带上报告者的 id
    RECIPIENT: 每份副本改写为接收者自己的 id
    """

    SENDER = "sender"
    RECIPIENT = "recipient"


class OverflowPolicy(Enum):
    """会话发送队列满时的处理策略

    BLOCK: 控制循环等待队列腾出空间（慢消费者会阻塞所有广播）
    DROP: 丢弃发给该接收者的这一帧，其他接收者不受影响
    """

    BLOCK = "block"
    DROP = "drop"
