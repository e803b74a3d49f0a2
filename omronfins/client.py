"""High-level FINS client working with textual PLC addresses."""

from __future__ import annotations

import struct
from typing import Protocol

from .address import ParsedAddress, parse_address
from .constants import (
    CMD_MEMORY_BIT_WRITE,
    CMD_MEMORY_READ,
    CMD_MEMORY_WRITE,
    DATA_TYPE_BIT,
    DATA_TYPE_WORD,
)
from .errors import InvalidAddressError, InvalidResponseError
from .models import ConnectionStats, FinsClientConfig, FinsResponse, ReadRequest, WriteRequest
from .tcp_client import FinsTCPClient
from .udp_client import FinsUDPClient
from .udp_frame import (
    build_read_memory_request,
    build_write_memory_request,
    parse_read_memory_response,
    parse_write_memory_response,
)


class Transport(Protocol):
    """What a FINS transport offers to the client."""

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def send_request(self, command: int, data: bytes) -> FinsResponse: ...

    def is_connected(self) -> bool: ...

    def stats(self) -> ConnectionStats: ...


def _word_address(address: str) -> ParsedAddress:
    parsed = parse_address(address)
    if parsed.is_bit:
        raise InvalidAddressError(f'"{address}" is bit address')
    return parsed


def _bit_address(address: str) -> ParsedAddress:
    parsed = parse_address(address)
    if not parsed.is_bit:
        raise InvalidAddressError(f'"{address}" is not bit address')
    return parsed


def _pack_words(values: list[int]) -> bytes:
    try:
        return struct.pack(f">{len(values)}H", *values)
    except struct.error as exc:
        raise ValueError(f"word values must be in 0..65535: {exc}") from exc


class FinsClient:
    """FINS client over TCP or UDP, addressed with strings such as ``D100`` or ``CIO0.00``."""

    def __init__(
        self,
        config: FinsClientConfig,
        use_tcp: bool = False,
        *,
        transport: Transport | None = None,
    ) -> None:
        if transport is None:
            transport = FinsTCPClient(config) if use_tcp else FinsUDPClient(config)
        self.config = config
        self.transport = transport

    def __enter__(self) -> FinsClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def connect(self) -> None:
        """Connect to the PLC."""
        self.transport.connect()

    def close(self) -> None:
        """Close the connection."""
        self.transport.close()

    def is_connected(self) -> bool:
        """Whether the transport is connected."""
        return self.transport.is_connected()

    def stats(self) -> ConnectionStats:
        """The transport's connection counters."""
        return self.transport.stats()

    def read_word(self, address: str) -> int:
        """Read one 16-bit word, e.g. ``D100``."""
        parsed = _word_address(address)
        data = self._read_memory_area(parsed.area_code, parsed.address, 1)
        if len(data) < 2:
            raise InvalidResponseError()
        return int.from_bytes(data[:2], "big")

    def read_words(self, address: str, count: int) -> list[int]:
        """Read ``count`` consecutive words starting at ``address``."""
        parsed = _word_address(address)
        data = self._read_memory_area(parsed.area_code, parsed.address, count)
        if len(data) < count * 2:
            raise InvalidResponseError()
        return list(struct.unpack_from(f">{count}H", data))

    def write_word(self, address: str, value: int) -> None:
        """Write one 16-bit word."""
        parsed = _word_address(address)
        self._write_memory_area(parsed.area_code, parsed.address, [value])

    def write_words(self, address: str, values: list[int]) -> None:
        """Write consecutive words starting at ``address``."""
        parsed = _word_address(address)
        self._write_memory_area(parsed.area_code, parsed.address, list(values))

    def read_bytes(self, address: str, byte_count: int) -> bytes:
        """Read ``byte_count`` bytes starting at the word ``address``."""
        parsed = _word_address(address)
        return self._read_bytes(parsed.area_code, parsed.address, byte_count)

    def write_bytes(self, address: str, data: bytes) -> None:
        """Write bytes starting at the word ``address``; an odd length is padded with zero."""
        parsed = _word_address(address)
        self._write_bytes(parsed.area_code, parsed.address, data)

    def read_bit(self, address: str) -> bool:
        """Read one bit, e.g. ``CIO0.00``."""
        parsed = _bit_address(address)
        return self._read_bit(parsed.area_code, parsed.address, parsed.bit_no)

    def write_bit(self, address: str, value: bool) -> None:
        """Write one bit."""
        parsed = _bit_address(address)
        self._write_bit(parsed.area_code, parsed.address, parsed.bit_no, value)

    def _read_memory_area(self, area_code: int, address: int, count: int) -> bytes:
        request = ReadRequest(area_code, address, 0, DATA_TYPE_WORD, count)
        response = self.transport.send_request(CMD_MEMORY_READ, build_read_memory_request(request))
        return parse_read_memory_response(response)

    def _write_memory_area(self, area_code: int, address: int, values: list[int]) -> None:
        request = WriteRequest(
            area_code, address, 0, DATA_TYPE_WORD, len(values), _pack_words(values)
        )
        response = self.transport.send_request(
            CMD_MEMORY_WRITE, build_write_memory_request(request)
        )
        parse_write_memory_response(response)

    def _read_bit(self, area_code: int, address: int, bit_no: int) -> bool:
        request = ReadRequest(area_code, address, bit_no, DATA_TYPE_BIT, 1)
        response = self.transport.send_request(CMD_MEMORY_READ, build_read_memory_request(request))
        result = parse_read_memory_response(response)
        if len(result) < 1:
            raise InvalidResponseError()
        return result[0] != 0

    def _write_bit(self, area_code: int, address: int, bit_no: int, value: bool) -> None:
        request = WriteRequest(
            area_code, address, bit_no, DATA_TYPE_BIT, 1, b"\x01" if value else b"\x00"
        )
        response = self.transport.send_request(
            CMD_MEMORY_BIT_WRITE, build_write_memory_request(request)
        )
        parse_write_memory_response(response)

    def _read_bytes(self, area_code: int, address: int, byte_count: int) -> bytes:
        word_count = ((byte_count + 1) & 0xFFFF) // 2
        result = self._read_memory_area(area_code, address, word_count)
        return result[:byte_count]

    def _write_bytes(self, area_code: int, address: int, data: bytes) -> None:
        payload = bytes(data)
        if len(payload) % 2:
            payload += b"\x00"
        request = WriteRequest(
            area_code, address, 0, DATA_TYPE_WORD, len(payload) // 2, payload
        )
        response = self.transport.send_request(
            CMD_MEMORY_WRITE, build_write_memory_request(request)
        )
        parse_write_memory_response(response)