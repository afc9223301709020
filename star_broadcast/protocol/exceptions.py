"""Star Broadcast 协议异常定义

本模块定义了编解码层的异常体系。外层信封和内层载荷的解码失败
分别使用不同的异常类型，便于定位是哪一层出错。
"""


class ProtocolException(Exception):
    """协议基础异常

    所有编解码相关异常的基类。
    """

    pass


class MalformedEnvelope(ProtocolException):
    """外层信封格式错误

    当原始帧不是合法的 {"sender": ..., "content": ...} 结构时抛出。
    """

    pass


class MalformedPayload(ProtocolException):
    """内层载荷格式错误

    当信封 content 中的字符串无法解析为合法载荷时抛出。
    """

    pass


class SerializationException(ProtocolException):
    """序列化错误

    当载荷无法编码为 JSON 时抛出。
    """

    pass
