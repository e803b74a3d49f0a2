"""Encoding and decoding of FINS frames and memory area commands."""

from __future__ import annotations

import struct

from .constants import CPU_UNIT, ICF_REQUEST, LOCAL_NETWORK, UDP_HEADER_LENGTH
from .errors import FinsError, InvalidFrameError, InvalidResponseError
from .models import FinsResponse, FinsUDPFrame, ReadRequest, WriteRequest

_HEADER = struct.Struct(">10BH")
_MEMORY_PARAMS = struct.Struct(">BHBH")


def build_udp_frame(frame: FinsUDPFrame) -> bytes:
    """Serialise a FINS frame."""
    header = _HEADER.pack(
        frame.icf,
        frame.rsv,
        frame.gct,
        frame.dna,
        frame.da1,
        frame.da2,
        frame.sna,
        frame.sa1,
        frame.sa2,
        frame.sid,
        frame.command,
    )
    return header + bytes(frame.data)


def parse_udp_frame(data: bytes) -> FinsUDPFrame:
    """Decode a FINS frame; raises InvalidFrameError when it is too short."""
    if len(data) < UDP_HEADER_LENGTH + 2:
        raise InvalidFrameError()
    fields = _HEADER.unpack_from(data)
    return FinsUDPFrame(*fields, data=bytes(data[_HEADER.size:]))


def new_udp_request_frame(
    local_node: int, server_node: int, sid: int, command: int, data: bytes
) -> FinsUDPFrame:
    """Create a request frame addressed to the CPU unit on the local network."""
    return FinsUDPFrame(
        icf=ICF_REQUEST,
        rsv=0x00,
        gct=0x02,
        dna=LOCAL_NETWORK,
        da1=server_node,
        da2=CPU_UNIT,
        sna=LOCAL_NETWORK,
        sa1=local_node,
        sa2=CPU_UNIT,
        sid=sid,
        command=command,
        data=bytes(data),
    )


def parse_udp_response(data: bytes) -> FinsResponse:
    """Decode a response frame into SID, end code and payload."""
    frame = parse_udp_frame(data)
    if len(frame.data) < 2:
        raise InvalidResponseError()
    status = int.from_bytes(frame.data[:2], "big")
    return FinsResponse(sid=frame.sid, status_code=status, data=frame.data[2:])


def build_read_memory_request(req: ReadRequest) -> bytes:
    """Parameters of a memory area read command."""
    return _MEMORY_PARAMS.pack(req.area_code, req.address, req.bit_no, req.count)


def build_write_memory_request(req: WriteRequest) -> bytes:
    """Parameters of a memory area write command, followed by the data."""
    return _MEMORY_PARAMS.pack(req.area_code, req.address, req.bit_no, req.count) + bytes(req.data)


def parse_read_memory_response(resp: FinsResponse) -> bytes:
    """Return the data of a read response, raising FinsError on a failure end code."""
    if not resp.is_success():
        raise FinsError(f"读取失败: {resp.error_message()} (0x{resp.status_code:04X})")
    return resp.data


def parse_write_memory_response(resp: FinsResponse) -> None:
    """Raise FinsError if a write response carries a failure end code."""
    if not resp.is_success():
        raise FinsError(f"写入失败: {resp.error_message()} (0x{resp.status_code:04X})")