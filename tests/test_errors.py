import pytest

from omronfins.errors import (
    ConnectionClosedError,
    FinsError,
    FinsTimeoutError,
    InvalidAddressError,
    InvalidDataLengthError,
    InvalidFrameError,
    InvalidMagicError,
    InvalidResponseError,
    InvalidSIDError,
)


@pytest.mark.parametrize(
    "cls, message",
    [
        (FinsTimeoutError, "操作超时"),
        (InvalidFrameError, "无效的帧数据"),
        (InvalidMagicError, "无效的魔数"),
        (ConnectionClosedError, "连接已关闭"),
        (InvalidResponseError, "无效的响应"),
        (InvalidSIDError, "无效的SID"),
        (InvalidAddressError, "无效的地址"),
        (InvalidDataLengthError, "无效的数据长度"),
    ],
)
def test_default_messages(cls, message):
    err = cls()
    assert str(err) == message
    assert isinstance(err, FinsError)
    assert err.detail is None


def test_detail_is_appended():
    err = InvalidAddressError("empty")
    assert str(err) == "无效的地址: empty"
    assert err.detail == "empty"


@pytest.mark.parametrize(
    "err, base, message",
    [
        (FinsTimeoutError(), TimeoutError, "操作超时"),
        (ConnectionClosedError(), ConnectionError, "连接已关闭"),
        (InvalidAddressError("x"), ValueError, "无效的地址: x"),
    ],
)
def test_builtin_bases(err, base, message):
    assert isinstance(err, base) is True
    assert str(err) == message


def test_base_class_carries_detail():
    err = InvalidFrameError("short")
    assert isinstance(err, FinsError) is True
    assert str(err) == "无效的帧数据: short"
    assert err.detail == "short"