"""Client wrapper that reconnects automatically after connection errors."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from .address import ParsedAddress, parse_address
from .client import FinsClient
from .errors import ConnectionClosedError, FinsError, FinsTimeoutError, InvalidAddressError
from .models import ConnectionStats

_log = logging.getLogger(__name__)

_T = TypeVar("_T")

_CONNECTION_ERROR_MARKERS = (
    "connection refused",
    "connection reset",
    "broken pipe",
    "eof",
    "连接已关闭",
    "发送失败",
    "读取失败",
)


@dataclass
class ReconnectPolicy:
    """Reconnection settings; delays and intervals are in seconds, 0 attempts means unlimited."""

    enable_auto_reconnect: bool = True
    max_reconnect_attempts: int = 0
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    reconnect_on_error: bool = True
    health_check_interval: float = 10.0


def default_reconnect_policy() -> ReconnectPolicy:
    """The default reconnection policy."""
    return ReconnectPolicy()


def is_connection_error(err: BaseException | None) -> bool:
    """Whether ``err`` indicates a broken connection."""
    if err is None:
        return False
    if isinstance(err, (ConnectionClosedError, FinsTimeoutError)):
        return True
    text = str(err).lower()
    return any(marker in text for marker in _CONNECTION_ERROR_MARKERS)


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


class ReconnectableClient:
    """Wraps a FinsClient, reconnecting on connection errors and on failed health checks."""

    def __init__(
        self,
        client: FinsClient,
        policy: ReconnectPolicy | None = None,
        *,
        on_reconnect: Callable[[], None] | None = None,
        on_disconnect: Callable[[], None] | None = None,
    ) -> None:
        self.client = client
        self.policy = policy if policy is not None else default_reconnect_policy()
        self.on_reconnect = on_reconnect
        self.on_disconnect = on_disconnect
        self._lock = threading.Lock()
        self._reconnecting = False
        self._reconnect_count = 0
        self._last_reconnect_at: datetime | None = None
        self._stop = threading.Event()
        self._health_thread: threading.Thread | None = None
        if self.policy.health_check_interval > 0:
            self._health_thread = threading.Thread(
                target=self._health_check_loop, name="fins-health-check", daemon=True
            )
            self._health_thread.start()

    def __enter__(self) -> ReconnectableClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def connect(self) -> None:
        """Connect to the PLC."""
        self.client.connect()

    def close(self) -> None:
        """Stop the health check and close the connection."""
        self._stop.set()
        self.client.close()

    def is_connected(self) -> bool:
        """Whether the wrapped client is connected."""
        return self.client.is_connected()

    def stats(self) -> ConnectionStats:
        """The wrapped client's connection counters."""
        return self.client.stats()

    def reconnect_count(self) -> int:
        """How many reconnection attempts have been made."""
        with self._lock:
            return self._reconnect_count

    def last_reconnect_time(self) -> datetime | None:
        """When the last successful reconnection happened, or None."""
        with self._lock:
            return self._last_reconnect_at

    def is_reconnecting(self) -> bool:
        """Whether a reconnection is in progress."""
        with self._lock:
            return self._reconnecting

    def reconnect(self) -> None:
        """Close and reopen the connection, backing off between failed attempts."""
        with self._lock:
            if self._reconnecting:
                raise FinsError("正在重连中")
            self._reconnecting = True
        try:
            if self.on_disconnect is not None:
                self.on_disconnect()
            try:
                self.client.close()
            except Exception:
                pass

            policy = self.policy
            delay = policy.initial_delay
            attempts = 0
            while True:
                attempts += 1
                with self._lock:
                    self._reconnect_count += 1
                if 0 < policy.max_reconnect_attempts < attempts:
                    raise FinsError(f"重连失败: 超过最大重试次数 {policy.max_reconnect_attempts}")

                _log.info("[重连] 第 %d 次尝试重连...", attempts)
                try:
                    self.client.connect()
                except Exception as exc:
                    _log.warning("[重连] 重连失败: %s, %ss 后重试", exc, delay)
                    time.sleep(delay)
                    delay = min(delay * policy.backoff_factor, policy.max_delay)
                    continue

                with self._lock:
                    self._last_reconnect_at = datetime.now()
                _log.info("[重连] 重连成功!")
                if self.on_reconnect is not None:
                    self.on_reconnect()
                return
        finally:
            with self._lock:
                self._reconnecting = False

    def read_word(self, address: str) -> int:
        """Read one word, reconnecting once on a connection error."""
        _word_address(address)
        return self._execute(lambda: self.client.read_word(address))

    def read_words(self, address: str, count: int) -> list[int]:
        """Read ``count`` words, reconnecting once on a connection error."""
        _word_address(address)
        return self._execute(lambda: self.client.read_words(address, count))

    def write_word(self, address: str, value: int) -> None:
        """Write one word, reconnecting once on a connection error."""
        self.write_words(address, [value])

    def write_words(self, address: str, values: list[int]) -> None:
        """Write consecutive words, reconnecting once on a connection error."""
        _word_address(address)
        words = list(values)
        self._execute(lambda: self.client.write_words(address, words))

    def read_bytes(self, address: str, byte_count: int) -> bytes:
        """Read bytes, reconnecting once on a connection error."""
        _word_address(address)
        return self._execute(lambda: self.client.read_bytes(address, byte_count))

    def write_bytes(self, address: str, data: bytes) -> None:
        """Write bytes, reconnecting once on a connection error."""
        _word_address(address)
        payload = bytes(data)
        self._execute(lambda: self.client.write_bytes(address, payload))

    def read_bit(self, address: str) -> bool:
        """Read one bit, reconnecting once on a connection error."""
        _bit_address(address)
        return self._execute(lambda: self.client.read_bit(address))

    def write_bit(self, address: str, value: bool) -> None:
        """Write one bit, reconnecting once on a connection error."""
        _bit_address(address)
        self._execute(lambda: self.client.write_bit(address, value))

    def _execute(self, operation: Callable[[], _T]) -> _T:
        try:
            return operation()
        except Exception as err:
            policy = self.policy
            if not (policy.reconnect_on_error and policy.enable_auto_reconnect):
                raise
            if not is_connection_error(err):
                raise
            _log.warning("[自动重连] 检测到连接错误: %s", err)
            try:
                self.reconnect()
            except Exception as reconnect_err:
                raise FinsError(f"重连失败: {reconnect_err}, 原始错误: {err}") from reconnect_err
        return operation()

    def _reconnect_quietly(self) -> None:
        try:
            self.reconnect()
        except Exception as exc:
            _log.debug("后台重连结束: %s", exc)

    def _health_check_loop(self) -> None:
        while not self._stop.wait(self.policy.health_check_interval):
            if self.client.is_connected():
                continue
            _log.warning("[健康检查] 检测到连接断开，尝试重连...")
            if self.policy.enable_auto_reconnect:
                threading.Thread(target=self._reconnect_quietly, daemon=True).start()