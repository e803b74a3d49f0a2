import pytest

from omronfins.constants import (
    ERR_CODE_ADDRESS_OUT_OF_RANGE,
    ERR_CODE_PROTECTION_ERROR,
    ERR_CODE_SUCCESS,
    ERROR_MESSAGES,
    MEM_AREA_CIO,
    MEM_AREA_D,
    MEMORY_AREA_NAMES,
    SIDMode,
    get_error_message,
    get_memory_area_name,
)


def test_known_error_messages():
    assert get_error_message(ERR_CODE_SUCCESS) == "成功"
    assert get_error_message(ERR_CODE_ADDRESS_OUT_OF_RANGE) == "地址越界"
    assert get_error_message(ERR_CODE_PROTECTION_ERROR) == "保护错误"


def test_unknown_error_message():
    assert get_error_message(0xFFFF) == "未知错误"


@pytest.mark.parametrize("code", sorted(ERROR_MESSAGES))
def test_every_error_code_has_its_message(code):
    assert get_error_message(code) == ERROR_MESSAGES[code]


def test_memory_area_names():
    assert get_memory_area_name(MEM_AREA_D) == "D区"
    assert get_memory_area_name(MEM_AREA_CIO) == "CIO区"


def test_unknown_memory_area():
    assert get_memory_area_name(0x00) == "未知区域"


@pytest.mark.parametrize("code", sorted(MEMORY_AREA_NAMES))
def test_every_area_code_has_its_name(code):
    assert get_memory_area_name(code) == MEMORY_AREA_NAMES[code]


def test_sid_mode_values():
    assert SIDMode(0) is SIDMode.FIXED
    assert SIDMode(1) is SIDMode.INCREMENT