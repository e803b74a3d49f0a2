"""Client wrapper that retries operations failing with transient errors."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from .address import ParsedAddress, parse_address
from .client import FinsClient
from .errors import ConnectionClosedError, FinsError, FinsTimeoutError, InvalidAddressError

_T = TypeVar("_T")


@dataclass
class RetryPolicy:
    """When and how often an operation is retried; delays are in seconds."""

    max_retries: int = 3
    initial_delay: float = 0.1
    max_delay: float = 5.0
    backoff_factor: float = 2.0
    retryable_errors: tuple[type[BaseException], ...] = (FinsTimeoutError, ConnectionClosedError)

    def is_retryable(self, err: BaseException | None) -> bool:
        """Whether ``err`` is one of the retryable error types."""
        if err is None:
            return False
        return isinstance(err, tuple(self.retryable_errors))

    def get_delay(self, attempt: int) -> float:
        """The delay before the retry following ``attempt``, growing by the backoff factor."""
        if attempt <= 0:
            return self.initial_delay
        delay = self.initial_delay
        for _ in range(attempt):
            delay *= self.backoff_factor
            if delay > self.max_delay:
                return self.max_delay
        return delay


def default_retry_policy() -> RetryPolicy:
    """The default retry policy: three retries on timeouts and closed connections."""
    return RetryPolicy()


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


class RetryableClient:
    """Wraps a FinsClient and retries each operation according to a RetryPolicy."""

    def __init__(self, client: FinsClient, policy: RetryPolicy | None = None) -> None:
        self.client = client
        self.policy = policy if policy is not None else default_retry_policy()

    def _run(self, operation: Callable[[], _T]) -> _T:
        last_error: BaseException | None = None
        for attempt in range(max(self.policy.max_retries, 0) + 1):
            if attempt > 0:
                time.sleep(self.policy.get_delay(attempt - 1))
            try:
                return operation()
            except Exception as exc:
                if not self.policy.is_retryable(exc):
                    raise
                last_error = exc
        raise FinsError(f"重试{self.policy.max_retries}次后失败: {last_error}") from last_error

    def read_word(self, address: str) -> int:
        """Read one word, retrying on transient errors."""
        _word_address(address)
        return self._run(lambda: self.client.read_word(address))

    def read_words(self, address: str, count: int) -> list[int]:
        """Read ``count`` words, retrying on transient errors."""
        _word_address(address)
        return self._run(lambda: self.client.read_words(address, count))

    def write_word(self, address: str, value: int) -> None:
        """Write one word, retrying on transient errors."""
        self.write_words(address, [value])

    def write_words(self, address: str, values: list[int]) -> None:
        """Write consecutive words, retrying on transient errors."""
        _word_address(address)
        words = list(values)
        self._run(lambda: self.client.write_words(address, words))

    def read_bytes(self, address: str, byte_count: int) -> bytes:
        """Read bytes, retrying on transient errors."""
        _word_address(address)
        return self._run(lambda: self.client.read_bytes(address, byte_count))

    def write_bytes(self, address: str, data: bytes) -> None:
        """Write bytes, retrying on transient errors."""
        _word_address(address)
        payload = bytes(data)
        self._run(lambda: self.client.write_bytes(address, payload))

    def read_bit(self, address: str) -> bool:
        """Read one bit, retrying on transient errors."""
        _bit_address(address)
        return self._run(lambda: self.client.read_bit(address))

    def write_bit(self, address: str, value: bool) -> None:
        """Write one bit, retrying on transient errors."""
        _bit_address(address)
        self._run(lambda: self.client.write_bit(address, value))