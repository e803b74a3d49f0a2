"""FINS client over TCP with the FINS/TCP handshake."""

from __future__ import annotations

import dataclasses
import ipaddress
import logging
import socket
import struct
import threading
from collections.abc import Callable
from datetime import datetime

from .constants import (
    TCP_COMMAND_FINS_FRAME,
    TCP_COMMAND_HANDSHAKE_REQUEST,
    TCP_COMMAND_HANDSHAKE_RESPONSE,
    SIDMode,
)
from .errors import ConnectionClosedError, FinsError, FinsTimeoutError, InvalidResponseError
from .models import ConnectionStats, FinsClientConfig, FinsResponse, PendingRequest
from .tcp_frame import build_tcp_frame, new_tcp_request_frame, parse_tcp_frame, read_tcp_frame
from .udp_frame import build_udp_frame, new_udp_request_frame, parse_udp_response

_log = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1
_ZERO_IP = bytes(4)
_FALLBACK_LOCAL_NODE = 0x01


def derive_node_from_ipv4(ip_bytes: bytes | None) -> int | None:
    """The node number given by the last IPv4 octet, or None when it cannot be used."""
    if ip_bytes is None or len(ip_bytes) != 4:
        return None
    if ip_bytes[3] == 0:
        return None
    return ip_bytes[3]


def resolve_local_node(
    config_local_node: int, handshake_local_node: int, local_ip: bytes | None
) -> int:
    """Choose the local node number after the handshake.

    A configured node of 0 takes the node the PLC assigned, then the local IP,
    then 1. Any other configured node is replaced by the local IP's last octet
    when that is usable.
    """
    derived = derive_node_from_ipv4(local_ip)
    if config_local_node == 0:
        if handshake_local_node != 0:
            return handshake_local_node
        if derived is not None:
            return derived
        return _FALLBACK_LOCAL_NODE
    if derived is not None:
        return derived
    return config_local_node


def resolve_server_node(config_server_node: int, handshake_server_node: int) -> int:
    """Prefer the server node reported by the handshake over the configured one."""
    if handshake_server_node != 0:
        return handshake_server_node
    return config_server_node


def _local_ipv4(sock: socket.socket) -> bytes | None:
    try:
        host = sock.getsockname()[0]
    except OSError:
        return None
    try:
        ip = ipaddress.ip_address(str(host).split("%", 1)[0])
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address):
        mapped = ip.ipv4_mapped
        if mapped is None:
            return None
        return mapped.packed
    return ip.packed


def _recv_exactly(
    sock: socket.socket, size: int, should_stop: Callable[[], bool] | None = None
) -> bytes:
    """Receive ``size`` bytes; socket timeouts are waited out while ``should_stop`` is false."""
    buf = bytearray()
    while len(buf) < size:
        try:
            chunk = sock.recv(size - len(buf))
        except socket.timeout:
            if should_stop is None:
                raise
            if should_stop():
                raise ConnectionClosedError() from None
            continue
        if not chunk:
            raise EOFError("connection closed by peer")
        buf += chunk
    return bytes(buf)


class FinsTCPClient:
    """FINS client that wraps FINS frames in FINS/TCP and matches responses by SID."""

    def __init__(self, config: FinsClientConfig) -> None:
        if config is None:
            raise ValueError("配置不能为空")
        self.config = config
        self.local_node = 0
        self.server_node = 0
        self._lock = threading.Lock()
        self._sock: socket.socket | None = None
        self._closed = False
        self._stats = ConnectionStats()
        self._sequence_no = config.start_sid
        self._pending: dict[int, PendingRequest] = {}
        self._receiver: threading.Thread | None = None

    def __enter__(self) -> FinsTCPClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def connect(self) -> None:
        """Open the connection, perform the handshake and start receiving."""
        cfg = self.config
        with self._lock:
            if self._sock is not None:
                raise FinsError("已经连接")
            try:
                sock = socket.create_connection((cfg.ip, cfg.port), timeout=cfg.timeout)
            except OSError as exc:
                raise FinsError(f"连接失败: {exc}") from exc
            self._sock = sock
            self._closed = False

        try:
            handshake_local, handshake_server = self._handshake(sock)
        except Exception:
            self.close()
            raise

        local_ip = _local_ipv4(sock)
        with self._lock:
            self.local_node = resolve_local_node(cfg.local_node, handshake_local, local_ip)
            self.server_node = resolve_server_node(cfg.server_node, handshake_server)

        sock.settimeout(_POLL_INTERVAL)
        self._receiver = threading.Thread(
            target=self._receive_loop, args=(sock,), name="fins-tcp-receiver", daemon=True
        )
        self._receiver.start()

    def close(self) -> None:
        """Close the connection and fail every request still waiting."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            sock, self._sock = self._sock, None
            pending = list(self._pending.values())
            self._pending.clear()
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()
        for request in pending:
            request.cancel()

    def send_request(self, command: int, data: bytes) -> FinsResponse:
        """Send a FINS command and wait for the matching response."""
        with self._lock:
            sock = self._sock
            if self._closed or sock is None:
                raise ConnectionClosedError()
            sid = self._next_sid()
            try:
                inner = build_udp_frame(
                    new_udp_request_frame(self.local_node, self.server_node, sid, command, data)
                )
                outer = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_FINS_FRAME, inner))
            except (struct.error, FinsError) as exc:
                raise FinsError(f"构建帧失败: {exc}") from exc
            pending = PendingRequest(sid=sid, request=outer)
            self._pending[sid] = pending

        try:
            sock.sendall(outer)
        except OSError as exc:
            self._discard(sid, pending)
            raise FinsError(f"发送失败: {exc}") from exc

        with self._lock:
            self._stats.total_requests += 1
            self._stats.last_request_at = datetime.now()

        try:
            response = pending.wait(self.config.timeout)
        except FinsTimeoutError:
            self._discard(sid, pending)
            with self._lock:
                self._stats.timeout_count += 1
            raise

        with self._lock:
            self._stats.last_response_at = datetime.now()
            if response.is_success():
                self._stats.success_count += 1
            else:
                self._stats.error_count += 1
        return response

    def is_connected(self) -> bool:
        """Whether a connection is open."""
        with self._lock:
            return self._sock is not None and not self._closed

    def stats(self) -> ConnectionStats:
        """A snapshot of the connection counters."""
        with self._lock:
            return dataclasses.replace(self._stats)

    def _next_sid(self) -> int:
        cfg = self.config
        if cfg.sid_mode == SIDMode.INCREMENT:
            self._sequence_no += 1
            if self._sequence_no > cfg.max_sid:
                self._sequence_no = cfg.start_sid
            return self._sequence_no & 0xFF
        return cfg.fixed_sid

    def _discard(self, sid: int, pending: PendingRequest) -> None:
        with self._lock:
            if self._pending.get(sid) is pending:
                del self._pending[sid]

    def _handshake(self, sock: socket.socket) -> tuple[int, int]:
        if self.config.local_node == 0:
            ip_bytes = _ZERO_IP
        else:
            ip_bytes = _local_ipv4(sock) or _ZERO_IP

        request = build_tcp_frame(new_tcp_request_frame(TCP_COMMAND_HANDSHAKE_REQUEST, ip_bytes))
        try:
            sock.sendall(request)
        except OSError as exc:
            raise FinsError(f"发送握手请求失败: {exc}") from exc

        sock.settimeout(self.config.timeout)
        try:
            reply = read_tcp_frame(lambda n: _recv_exactly(sock, n))
        except (OSError, EOFError, FinsError) as exc:
            raise FinsError(f"读取握手响应失败: {exc}") from exc

        try:
            frame = parse_tcp_frame(reply)
        except FinsError as exc:
            raise FinsError(f"解析握手响应失败: {exc}") from exc
        if frame.command != TCP_COMMAND_HANDSHAKE_RESPONSE:
            raise FinsError(f"握手响应命令不匹配: 0x{frame.command:08X}")
        if frame.error_code != 0:
            raise FinsError(f"握手响应错误码: 0x{frame.error_code:08X}")
        if len(frame.data) < 8:
            raise InvalidResponseError()
        # Client then server address, 4 bytes each; the node is the last octet.
        return frame.data[3], frame.data[7]

    def _receive_loop(self, sock: socket.socket) -> None:
        def stopped() -> bool:
            return self._closed or self._sock is not sock

        while not stopped():
            try:
                raw = read_tcp_frame(lambda n: _recv_exactly(sock, n, stopped))
            except (EOFError, ConnectionClosedError):
                return
            except (OSError, FinsError) as exc:
                if not stopped():
                    _log.warning("读取帧失败: %s", exc)
                return

            try:
                outer = parse_tcp_frame(raw)
            except FinsError as exc:
                _log.warning("解析TCP帧失败: %s", exc)
                continue
            if outer.command != TCP_COMMAND_FINS_FRAME:
                continue

            try:
                response = parse_udp_response(outer.data)
            except FinsError as exc:
                _log.warning("解析内层FINS响应失败: %s", exc)
                continue

            with self._lock:
                pending = self._pending.pop(response.sid, None)
            if pending is not None:
                pending.deliver(response)