"""Protocol constants for Omron FINS over UDP and TCP."""

from __future__ import annotations

from enum import IntEnum

DEFAULT_PORT = 9600

TCP_MAGIC = b"FINS"

# FINS/TCP outer command codes.
TCP_COMMAND_HANDSHAKE_REQUEST = 0x00000000
TCP_COMMAND_HANDSHAKE_RESPONSE = 0x00000001
TCP_COMMAND_FINS_FRAME = 0x00000002

# Information Control Field values.
ICF_NO_RESPONSE = 0x00
ICF_REQUEST = 0x80

# Command codes.
CMD_MEMORY_READ = 0x0101
CMD_MEMORY_WRITE = 0x0102
CMD_MEMORY_BIT_WRITE = 0x0103
CMD_PARAMETER_READ = 0x0201
CMD_PARAMETER_WRITE = 0x0202
CMD_CONTROLLER_OP = 0x0501

# Memory area codes.
MEM_AREA_CIO = 0x30
MEM_AREA_WR = 0x31
MEM_AREA_HR = 0x32
MEM_AREA_TC = 0x33
MEM_AREA_A = 0x34
MEM_AREA_D = 0x82
MEM_AREA_T = 0x89
MEM_AREA_C = 0x8C

# Data types.
DATA_TYPE_BIT = 0x00
DATA_TYPE_WORD = 0x01

# End codes.
ERR_CODE_SUCCESS = 0x0000
ERR_CODE_LOCAL_NODE_ERROR = 0x0001
ERR_CODE_REMOTE_NODE_ERROR = 0x0002
ERR_CODE_COMM_CONTROLLER_ERR = 0x0003
ERR_CODE_RESPONSE_TIMEOUT = 0x0004
ERR_CODE_REQUEST_CANCELLED = 0x0005
ERR_CODE_NOT_EXECUTABLE = 0x0101
ERR_CODE_ADDRESS_OUT_OF_RANGE = 0x0102
ERR_CODE_ADDRESS_FORMAT = 0x0103
ERR_CODE_DATA_LENGTH_ERROR = 0x0104
ERR_CODE_DATA_NOT_WRITABLE = 0x0105
ERR_CODE_ACCESS_MODE_ERROR = 0x0106
ERR_CODE_PROTECTION_ERROR = 0x0201

# Address field defaults.
LOCAL_NETWORK = 0x00
BROADCAST_ADDR = 0x00
CPU_UNIT = 0x00
ETHERNET_PORT = 0xFE

# Header lengths.
TCP_HEADER_LENGTH = 16
UDP_HEADER_LENGTH = 10


class SIDMode(IntEnum):
    """How service IDs are chosen for outgoing requests."""

    FIXED = 0
    INCREMENT = 1


ERROR_MESSAGES: dict[int, str] = {
    ERR_CODE_SUCCESS: "成功",
    ERR_CODE_LOCAL_NODE_ERROR: "本地节点错误",
    ERR_CODE_REMOTE_NODE_ERROR: "远程节点错误",
    ERR_CODE_COMM_CONTROLLER_ERR: "通信控制器错误",
    ERR_CODE_RESPONSE_TIMEOUT: "响应超时",
    ERR_CODE_REQUEST_CANCELLED: "请求取消",
    ERR_CODE_NOT_EXECUTABLE: "命令不可执行",
    ERR_CODE_ADDRESS_OUT_OF_RANGE: "地址越界",
    ERR_CODE_ADDRESS_FORMAT: "地址格式错误",
    ERR_CODE_DATA_LENGTH_ERROR: "数据长度错误",
    ERR_CODE_DATA_NOT_WRITABLE: "数据不可写入",
    ERR_CODE_ACCESS_MODE_ERROR: "访问模式错误",
    ERR_CODE_PROTECTION_ERROR: "保护错误",
}

MEMORY_AREA_NAMES: dict[int, str] = {
    MEM_AREA_CIO: "CIO区",
    MEM_AREA_WR: "WR区",
    MEM_AREA_HR: "HR区",
    MEM_AREA_TC: "TC区",
    MEM_AREA_A: "A区",
    MEM_AREA_D: "D区",
    MEM_AREA_T: "T区",
    MEM_AREA_C: "C区",
}


def get_error_message(code: int) -> str:
    """Return the message for a FINS end code."""
    return ERROR_MESSAGES.get(code, "未知错误")


def get_memory_area_name(code: int) -> str:
    """Return the display name of a memory area code."""
    return MEMORY_AREA_NAMES.get(code, "未知区域")