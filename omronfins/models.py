"""Data structures shared by the FINS frame codecs and clients."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime

from .constants import DEFAULT_PORT, ERR_CODE_SUCCESS, TCP_MAGIC, SIDMode, get_error_message
from .errors import ConnectionClosedError, FinsTimeoutError


@dataclass
class FinsClientConfig:
    """Client settings. ``timeout`` is in seconds."""

    ip: str
    port: int = DEFAULT_PORT
    local_node: int = 0x00
    server_node: int = 0x00
    timeout: float = 5.0
    retry_count: int = 3
    sid_mode: SIDMode = SIDMode.FIXED
    fixed_sid: int = 0x00
    start_sid: int = 0x00
    max_sid: int = 0xFF


def default_config(ip: str) -> FinsClientConfig:
    """Return the default configuration for a PLC at ``ip``."""
    return FinsClientConfig(ip=ip)


@dataclass
class FinsUDPFrame:
    """A FINS frame: 10-byte header, 2-byte command and parameters."""

    icf: int
    rsv: int
    gct: int
    dna: int
    da1: int
    da2: int
    sna: int
    sa1: int
    sa2: int
    sid: int
    command: int
    data: bytes = b""


@dataclass
class FinsTCPFrame:
    """The FINS/TCP outer frame; ``length`` counts command, error code and data."""

    magic: bytes = TCP_MAGIC
    length: int = 0
    command: int = 0
    error_code: int = 0
    data: bytes = b""


@dataclass
class FinsResponse:
    """A decoded FINS response."""

    sid: int
    status_code: int
    data: bytes = b""

    def is_success(self) -> bool:
        """Whether the end code reports success."""
        return self.status_code == ERR_CODE_SUCCESS

    def error_message(self) -> str:
        """The message for the end code."""
        return get_error_message(self.status_code)


@dataclass
class MemoryAddress:
    """A memory location on the PLC."""

    area_code: int
    address: int
    bit_no: int = 0


@dataclass
class ReadRequest:
    """Parameters of a memory area read."""

    area_code: int
    address: int
    bit_no: int
    data_type: int
    count: int


@dataclass
class WriteRequest:
    """Parameters of a memory area write."""

    area_code: int
    address: int
    bit_no: int
    data_type: int
    count: int
    data: bytes = b""


@dataclass
class PendingRequest:
    """A request waiting for the response with the same SID."""

    sid: int
    request: bytes
    created_at: datetime = field(default_factory=datetime.now)
    _event: threading.Event = field(default_factory=threading.Event, init=False, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)
    _response: FinsResponse | None = field(default=None, init=False, repr=False, compare=False)
    _cancelled: bool = field(default=False, init=False, repr=False, compare=False)

    def deliver(self, response: FinsResponse) -> bool:
        """Hand over the response; returns False if one was already given or the request was cancelled."""
        with self._lock:
            if self._event.is_set():
                return False
            self._response = response
            self._event.set()
            return True

    def cancel(self) -> None:
        """Wake the waiter with a closed-connection error unless a response already arrived."""
        with self._lock:
            if self._event.is_set():
                return
            self._cancelled = True
            self._event.set()

    def wait(self, timeout: float | None) -> FinsResponse:
        """Block until the response arrives, the request is cancelled or ``timeout`` seconds pass."""
        if not self._event.wait(timeout):
            raise FinsTimeoutError()
        if self._cancelled or self._response is None:
            raise ConnectionClosedError()
        return self._response


@dataclass
class ConnectionStats:
    """Counters of a client connection."""

    total_requests: int = 0
    success_count: int = 0
    error_count: int = 0
    timeout_count: int = 0
    last_request_at: datetime | None = None
    last_response_at: datetime | None = None