import io

import pytest

from omronfins.constants import TCP_COMMAND_FINS_FRAME, TCP_COMMAND_HANDSHAKE_RESPONSE, TCP_MAGIC
from omronfins.errors import InvalidFrameError, InvalidMagicError, InvalidResponseError
from omronfins.models import FinsTCPFrame
from omronfins.tcp_frame import (
    build_tcp_frame,
    new_tcp_request_frame,
    parse_tcp_frame,
    parse_tcp_response,
    read_tcp_frame,
)
from omronfins.udp_frame import build_udp_frame, new_udp_request_frame


def test_build_request_frame_wire_bytes():
    frame = new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, b"\x01\x02")
    assert build_tcp_frame(frame) == (
        b"FINS" b"\x00\x00\x00\x0a" b"\x00\x00\x00\x02" b"\x00\x00\x00\x00" b"\x01\x02"
    )


def test_new_request_frame_fields():
    frame = new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, b"abc")
    assert frame.magic == TCP_MAGIC
    assert frame.length == 8 + len(b"abc")
    assert frame.error_code == 0
    assert frame.data == b"abc"


def test_zero_length_is_computed():
    explicit = new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, b"xyz")
    implicit = FinsTCPFrame(command=TCP_COMMAND_FINS_FRAME, data=b"xyz")
    assert build_tcp_frame(implicit) == build_tcp_frame(explicit)


def test_build_rejects_length_mismatch():
    frame = FinsTCPFrame(length=20, command=TCP_COMMAND_FINS_FRAME, data=b"ab")
    with pytest.raises(InvalidFrameError):
        build_tcp_frame(frame)


def test_build_rejects_short_length():
    frame = FinsTCPFrame(length=4, command=TCP_COMMAND_FINS_FRAME)
    with pytest.raises(InvalidFrameError):
        build_tcp_frame(frame)


@pytest.mark.parametrize("payload", [b"", b"\x00", b"\x10\x20\x30\x40\x50"])
def test_round_trip(payload):
    frame = FinsTCPFrame(command=TCP_COMMAND_HANDSHAKE_RESPONSE, error_code=3, data=payload)
    parsed = parse_tcp_frame(build_tcp_frame(frame))
    assert parsed.magic == TCP_MAGIC
    assert parsed.command == TCP_COMMAND_HANDSHAKE_RESPONSE
    assert parsed.error_code == 3
    assert parsed.data == payload
    assert parsed.length == 8 + len(payload)


def test_parse_ignores_trailing_bytes():
    raw = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, b"\xaa\xbb"))
    parsed = parse_tcp_frame(raw + b"\xff\xff")
    assert parsed.data == b"\xaa\xbb"


def test_parse_too_short():
    with pytest.raises(InvalidFrameError):
        parse_tcp_frame(b"FINS\x00\x00")


def test_parse_bad_magic():
    raw = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, b""))
    with pytest.raises(InvalidMagicError):
        parse_tcp_frame(b"FINX" + raw[4:])


def test_parse_length_below_minimum():
    raw = b"FINS" + (4).to_bytes(4, "big") + bytes(8)
    with pytest.raises(InvalidFrameError):
        parse_tcp_frame(raw)


def test_parse_truncated_data():
    raw = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, b"\x01\x02\x03"))
    with pytest.raises(InvalidFrameError):
        parse_tcp_frame(raw[:-1])


def _inner_response(sid, status, payload):
    frame = new_udp_request_frame(1, 2, sid, 0x0101, status.to_bytes(2, "big") + payload)
    return build_udp_frame(frame)


def test_parse_tcp_response():
    inner = _inner_response(9, 0, b"\x12\x34")
    raw = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, inner))
    resp = parse_tcp_response(raw)
    assert resp.sid == 9
    assert resp.status_code == 0
    assert resp.data == b"\x12\x34"


def test_parse_tcp_response_wrong_command():
    inner = _inner_response(1, 0, b"")
    raw = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_HANDSHAKE_RESPONSE, inner))
    with pytest.raises(InvalidResponseError):
        parse_tcp_response(raw)


def test_read_frame_from_stream():
    first = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, b"one"))
    second = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, b"second"))
    stream = io.BytesIO(first + second)
    assert read_tcp_frame(stream.read) == first
    assert read_tcp_frame(stream.read) == second


def test_read_frame_bad_magic():
    stream = io.BytesIO(b"XXXX" + bytes(12))
    with pytest.raises(InvalidMagicError):
        read_tcp_frame(stream.read)


def test_read_frame_missing_length():
    stream = io.BytesIO(b"FINS\x00\x00")
    with pytest.raises(InvalidFrameError):
        read_tcp_frame(stream.read)


def test_read_frame_length_below_minimum():
    stream = io.BytesIO(b"FINS" + (7).to_bytes(4, "big") + bytes(7))
    with pytest.raises(InvalidFrameError):
        read_tcp_frame(stream.read)


def test_read_frame_truncated_body():
    raw = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, b"abcdef"))
    stream = io.BytesIO(raw[:-2])
    with pytest.raises(InvalidFrameError):
        read_tcp_frame(stream.read)