"""Exceptions raised by the FINS client."""

from __future__ import annotations


class FinsError(Exception):
    """Base class for FINS errors."""

    default_message = "FINS错误"

    def __init__(self, detail: str | None = None) -> None:
        if detail is None:
            message = self.default_message
        else:
            message = f"{self.default_message}: {detail}"
        super().__init__(message)
        self.detail = detail


class FinsTimeoutError(FinsError, TimeoutError):
    """The operation timed out."""

    default_message = "操作超时"


class InvalidFrameError(FinsError):
    """The frame data is malformed."""

    default_message = "无效的帧数据"


class InvalidMagicError(FinsError):
    """The FINS/TCP magic is wrong."""

    default_message = "无效的魔数"


class ConnectionClosedError(FinsError, ConnectionError):
    """The connection has been closed."""

    default_message = "连接已关闭"


class InvalidResponseError(FinsError):
    """The response is malformed."""

    default_message = "无效的响应"


class InvalidSIDError(FinsError):
    """The service ID is invalid."""

    default_message = "无效的SID"


class InvalidAddressError(FinsError, ValueError):
    """The PLC address is invalid."""

    default_message = "无效的地址"


class InvalidDataLengthError(FinsError, ValueError):
    """The data length is invalid."""

    default_message = "无效的数据长度"