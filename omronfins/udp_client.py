"""FINS client over UDP."""

from __future__ import annotations

import dataclasses
import logging
import socket
import struct
import threading
from datetime import datetime

from .constants import SIDMode
from .errors import ConnectionClosedError, FinsError, FinsTimeoutError
from .models import ConnectionStats, FinsClientConfig, FinsResponse, PendingRequest
from .udp_frame import build_udp_frame, new_udp_request_frame, parse_udp_response

_log = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1
_RECV_BUFFER = 2048


class FinsUDPClient:
    """FINS client that sends datagrams to one PLC and matches responses by SID."""

    def __init__(self, config: FinsClientConfig) -> None:
        if config is None:
            raise ValueError("配置不能为空")
        try:
            infos = socket.getaddrinfo(config.ip, config.port, type=socket.SOCK_DGRAM)
        except (socket.gaierror, UnicodeError, OverflowError) as exc:
            raise FinsError(f"解析服务器地址失败: {exc}") from exc
        if not infos:
            raise FinsError(f"解析服务器地址失败: {config.ip}:{config.port}")
        family, _, _, _, sockaddr = infos[0]

        self.config = config
        self._family = family
        self._server_addr = sockaddr
        self._lock = threading.Lock()
        self._sock: socket.socket | None = None
        self._closed = False
        self._stats = ConnectionStats()
        self._sequence_no = config.start_sid
        self._pending: dict[int, PendingRequest] = {}
        self._receiver: threading.Thread | None = None

    def __enter__(self) -> FinsUDPClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def connect(self) -> None:
        """Open the UDP socket towards the PLC and start receiving."""
        with self._lock:
            if self._sock is not None:
                raise FinsError("已经连接")
            try:
                sock = socket.socket(self._family, socket.SOCK_DGRAM)
            except OSError as exc:
                raise FinsError(f"连接失败: {exc}") from exc
            try:
                sock.connect(self._server_addr)
            except OSError as exc:
                sock.close()
                raise FinsError(f"连接失败: {exc}") from exc
            sock.settimeout(_POLL_INTERVAL)
            self._sock = sock
            self._closed = False

        self._receiver = threading.Thread(
            target=self._receive_loop, args=(sock,), name="fins-udp-receiver", daemon=True
        )
        self._receiver.start()

    def close(self) -> None:
        """Close the socket and fail every request still waiting."""
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
        cfg = self.config
        with self._lock:
            sock = self._sock
            if self._closed or sock is None:
                raise ConnectionClosedError()
            sid = self._next_sid()
            try:
                frame = build_udp_frame(
                    new_udp_request_frame(cfg.local_node, cfg.server_node, sid, command, data)
                )
            except struct.error as exc:
                raise FinsError(f"构建帧失败: {exc}") from exc
            pending = PendingRequest(sid=sid, request=frame)
            self._pending[sid] = pending

        try:
            sock.send(frame)
        except OSError as exc:
            self._discard(sid, pending)
            raise FinsError(f"发送失败: {exc}") from exc

        with self._lock:
            self._stats.total_requests += 1
            self._stats.last_request_at = datetime.now()

        try:
            response = pending.wait(cfg.timeout)
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
        """Whether the socket is open."""
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

    def _receive_loop(self, sock: socket.socket) -> None:
        def stopped() -> bool:
            return self._closed or self._sock is not sock

        while not stopped():
            try:
                packet = sock.recv(_RECV_BUFFER)
            except socket.timeout:
                continue
            except OSError as exc:
                if not stopped():
                    _log.warning("接收数据错误: %s", exc)
                return

            try:
                response = parse_udp_response(packet)
            except FinsError as exc:
                _log.warning("解析响应失败: %s", exc)
                continue

            with self._lock:
                pending = self._pending.pop(response.sid, None)
            if pending is not None:
                pending.deliver(response)