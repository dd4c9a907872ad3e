from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

VENDOR_ID = 0x06A3
PRODUCT_ID = 0x0762
PRODUCT_NAME = "X52 Pro"

USB_TIMEOUT_MS = 100
REQUEST_VENDOR = 0x91
CONTROL_PAYLOAD_SIZE = 1

INDEX_UPDATE_PRIMARY_CLOCK = 0xC0
INDEX_UPDATE_DATE_DAYMONTH = 0xC4
INDEX_UPDATE_DATE_YEAR = 0xC8

DELETE_LINE_INDEX: dict[int, int] = {
    1: 0xD9,
    2: 0xDA,
    3: 0xDC,
}
APPEND_LINE_INDEX: dict[int, int] = {
    1: 0xD1,
    2: 0xD2,
    3: 0xD4,
}

LINE_NUMBERS = (1, 2, 3)
MAX_CHARACTERS_PER_LINE = 16

_BYTE_MASK = 0xFF
_WORD_MASK = 0xFFFF
_CLOCK_24H_BIT = 1 << 15


class ClockTimeFormat(Enum):
    CLOCK_12_HOUR = "12h"
    CLOCK_24_HOUR = "24h"


class ClockDateFormat(Enum):
    DD_MM_YYYY = "dmy"
    MM_DD_YYYY = "mdy"
    YYYY_MM_DD = "ymd"


@dataclass(frozen=True)
class Command:
    index: int
    value: int


def _line_index(table: dict[int, int], line: int) -> int:
    # bool and float keys would hash onto 1, 2, 3
    if type(line) is not int or line not in table:
        raise ValueError(f"Invalid line number: {line!r}")
    return table[line]


def delete_index_for_line(line: int) -> int:
    return _line_index(DELETE_LINE_INDEX, line)


def append_index_for_line(line: int) -> int:
    return _line_index(APPEND_LINE_INDEX, line)


def encode_time(hour: int, minute: int, time_format: ClockTimeFormat) -> int:
    """Pack minute (low byte), hour (high byte) and the 24-hour flag (bit 15).

    The hour is always the 24-hour value; the format bit only changes how the
    device renders it.
    """
    value = minute & _BYTE_MASK
    value |= (hour & _BYTE_MASK) << 8
    value &= ~_CLOCK_24H_BIT & _WORD_MASK
    if time_format is ClockTimeFormat.CLOCK_24_HOUR:
        value |= _CLOCK_24H_BIT
    return value


def order_date(day: int, month: int, year: int, date_format: ClockDateFormat) -> tuple[int, int, int]:
    if date_format is ClockDateFormat.DD_MM_YYYY:
        return day, month, year
    if date_format is ClockDateFormat.MM_DD_YYYY:
        return month, day, year
    if date_format is ClockDateFormat.YYYY_MM_DD:
        return year, month, day
    raise ValueError(f"Unknown clock date format: {date_format!r}")


def encode_date(day: int, month: int, year: int, date_format: ClockDateFormat) -> tuple[int, int]:
    """Return ``(day_month_value, year_value)`` for the two date registers.

    The first ordered component goes into the low byte, the second into the
    high byte; the third is sent as-is in its own command.
    """
    first, second, third = order_date(day, month, year, date_format)
    day_month_value = (first & _BYTE_MASK) | ((second << 8) & _WORD_MASK)
    return day_month_value, third & _WORD_MASK


def encode_text(line: int, codes: bytes | bytearray | list[int]) -> list[Command]:
    """Build the append commands for ``codes`` on ``line``.

    Codes beyond ``MAX_CHARACTERS_PER_LINE`` are dropped. Each command carries
    two codes, the second one only when it exists.
    """
    index = append_index_for_line(line)
    bounded = list(codes)[:MAX_CHARACTERS_PER_LINE]
    commands: list[Command] = []
    for i in range(0, len(bounded), 2):
        value = bounded[i] & _BYTE_MASK
        if i + 1 < len(bounded):
            value |= (bounded[i + 1] & _BYTE_MASK) << 8
        commands.append(Command(index=index, value=value))
    return commands
