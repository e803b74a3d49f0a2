"""Parsing of textual PLC addresses such as ``D100`` or ``CIO0.00``."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    MEM_AREA_A,
    MEM_AREA_C,
    MEM_AREA_CIO,
    MEM_AREA_D,
    MEM_AREA_HR,
    MEM_AREA_T,
    MEM_AREA_WR,
    get_memory_area_name,
)
from .errors import InvalidAddressError

# Longer prefixes first so that "CIO" wins over "C".
_AREA_PREFIXES = (
    ("CIO", MEM_AREA_CIO),
    ("WR", MEM_AREA_WR),
    ("HR", MEM_AREA_HR),
    ("D", MEM_AREA_D),
    ("A", MEM_AREA_A),
    ("T", MEM_AREA_T),
    ("C", MEM_AREA_C),
)

_BIT_AREAS = frozenset({MEM_AREA_CIO, MEM_AREA_WR, MEM_AREA_HR, MEM_AREA_A})


@dataclass(frozen=True)
class ParsedAddress:
    """A PLC address split into area code, word address and bit number."""

    area_code: int
    address: int
    bit_no: int
    is_bit: bool
    original: str


def _split_area(text: str) -> tuple[int, str] | None:
    for prefix, code in _AREA_PREFIXES:
        if text.startswith(prefix):
            return code, text[len(prefix):]
    return None


def _parse_decimal(text: str, maximum: int) -> int:
    if not text or not all("0" <= ch <= "9" for ch in text):
        raise ValueError(f"invalid syntax {text!r}")
    value = int(text)
    if value > maximum:
        raise ValueError(f"value out of range {text!r}")
    return value


def parse_address(s: str) -> ParsedAddress:
    """Parse a word address (``D100``, ``WR200``) or bit address (``CIO0.00``)."""
    original = s.strip()
    if not original:
        raise InvalidAddressError("empty")
    quoted = f'"{original}"'

    text = original.upper().replace(" ", "")
    split = _split_area(text)
    if split is None:
        raise InvalidAddressError(f"unknown area prefix in {quoted}")
    area_code, rest = split
    if not rest:
        raise InvalidAddressError(f"missing address in {quoted}")

    if "." in rest:
        if area_code not in _BIT_AREAS:
            raise InvalidAddressError(
                f"area {get_memory_area_name(area_code)} does not support bit address ({quoted})"
            )
        parts = rest.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise InvalidAddressError(f"invalid bit address format {quoted}")
        word_text, bit_text = parts
        try:
            address = _parse_decimal(word_text, 0xFFFF)
        except ValueError as exc:
            raise InvalidAddressError(f"invalid address number in {quoted}: {exc}") from None
        try:
            bit = _parse_decimal(bit_text, 0xFF)
        except ValueError as exc:
            raise InvalidAddressError(f"invalid bit number in {quoted}: {exc}") from None
        if bit > 15:
            raise InvalidAddressError(f"bit out of range (0-15) in {quoted}")
        return ParsedAddress(area_code, address, bit, True, original)

    try:
        address = _parse_decimal(rest, 0xFFFF)
    except ValueError as exc:
        raise InvalidAddressError(f"invalid address number in {quoted}: {exc}") from None
    return ParsedAddress(area_code, address, 0, False, original)