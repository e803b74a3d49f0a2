"""Encoding and decoding of the FINS/TCP outer frame."""

from __future__ import annotations

import struct
from collections.abc import Callable

from .constants import TCP_COMMAND_FINS_FRAME, TCP_HEADER_LENGTH, TCP_MAGIC
from .errors import InvalidFrameError, InvalidMagicError, InvalidResponseError
from .models import FinsResponse, FinsTCPFrame
from .udp_frame import parse_udp_response

_OUTER = struct.Struct(">4sIII")
_LENGTH = struct.Struct(">I")

# Command and error code are always counted in the length field.
_MIN_LENGTH = 8


def build_tcp_frame(frame: FinsTCPFrame) -> bytes:
    """Serialise a FINS/TCP frame; a zero ``length`` is computed from the data."""
    magic = bytes(frame.magic)
    if len(magic) != 4:
        raise InvalidMagicError(f"magic must be 4 bytes, got {len(magic)}")
    data = bytes(frame.data)
    length = frame.length or _MIN_LENGTH + len(data)
    if length < _MIN_LENGTH:
        raise InvalidFrameError(f"无效的TCP长度: {length}")
    if length != _MIN_LENGTH + len(data):
        raise InvalidFrameError(f"TCP长度与数据不匹配: length={length} data={len(data)}")
    return _OUTER.pack(magic, length, frame.command, frame.error_code) + data


def parse_tcp_frame(data: bytes) -> FinsTCPFrame:
    """Decode a FINS/TCP frame; bytes past the announced length are ignored."""
    if len(data) < TCP_HEADER_LENGTH:
        raise InvalidFrameError()
    magic, length, command, error_code = _OUTER.unpack_from(data)
    if magic != TCP_MAGIC:
        raise InvalidMagicError()
    if length < _MIN_LENGTH:
        raise InvalidFrameError()
    if len(data) < _MIN_LENGTH + length:
        raise InvalidFrameError()
    payload = bytes(data[TCP_HEADER_LENGTH:_MIN_LENGTH + length])
    return FinsTCPFrame(
        magic=magic,
        length=length,
        command=command,
        error_code=error_code,
        data=payload,
    )


def new_tcp_request_frame(command: int, data: bytes) -> FinsTCPFrame:
    """Create an outer frame carrying ``data`` under the given outer command."""
    payload = bytes(data)
    return FinsTCPFrame(
        magic=TCP_MAGIC,
        length=_MIN_LENGTH + len(payload),
        command=command,
        error_code=0,
        data=payload,
    )


def parse_tcp_response(data: bytes) -> FinsResponse:
    """Decode a FINS frame carried in a FINS/TCP data frame."""
    frame = parse_tcp_frame(data)
    if frame.command != TCP_COMMAND_FINS_FRAME:
        raise InvalidResponseError()
    return parse_udp_response(frame.data)


def read_tcp_frame(read_exactly: Callable[[int], bytes]) -> bytes:
    """Read one whole FINS/TCP frame using ``read_exactly(n)``.

    ``read_exactly`` returns up to ``n`` bytes; fewer bytes mean the stream ended.
    """
    magic = read_exactly(4)
    if len(magic) != 4 or magic != TCP_MAGIC:
        raise InvalidMagicError()

    length_bytes = read_exactly(4)
    if len(length_bytes) != 4:
        raise InvalidFrameError()
    (length,) = _LENGTH.unpack(length_bytes)
    if length < _MIN_LENGTH:
        raise InvalidFrameError()

    remaining = read_exactly(length)
    if len(remaining) != length:
        raise InvalidFrameError()

    return bytes(magic) + bytes(length_bytes) + bytes(remaining)