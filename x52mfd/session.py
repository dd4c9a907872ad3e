from __future__ import annotations

from datetime import datetime
import logging
from typing import Iterable, Protocol

import usb.core
import usb.util

from .charmap import encode as encode_chars
from .protocol import (
    CONTROL_PAYLOAD_SIZE,
    INDEX_UPDATE_DATE_DAYMONTH,
    INDEX_UPDATE_DATE_YEAR,
    INDEX_UPDATE_PRIMARY_CLOCK,
    LINE_NUMBERS,
    REQUEST_VENDOR,
    USB_TIMEOUT_MS,
    ClockDateFormat,
    ClockTimeFormat,
    delete_index_for_line,
    encode_date,
    encode_text,
    encode_time,
)

log = logging.getLogger(__name__)

REQUEST_TYPE_VENDOR_OUT = usb.util.build_request_type(
    usb.util.CTRL_OUT,
    usb.util.CTRL_TYPE_VENDOR,
    usb.util.CTRL_RECIPIENT_DEVICE,
)


class TransportError(Exception):
    pass


class _HasTime(Protocol):
    hour: int
    minute: int


class _HasDate(Protocol):
    day: int
    month: int
    year: int


class X52ProSession:
    """Protocol session bound to one open X52 Pro.

    The device handle is borrowed; opening and releasing it is up to the
    caller. Every control transfer completes (or times out) before the next one
    is issued, otherwise the device drops it.

    Not thread-safe: the last-written caches are plain attributes and callers
    sharing a session must serialise access themselves.
    """

    def __init__(self, device: usb.core.Device) -> None:
        if device is None:
            raise ValueError("device may not be None")
        self._device = device
        # 0 doubles as "nothing written yet", so a first value of exactly 0 is skipped.
        self.last_time_written = 0
        self.last_day_month_written = 0
        self.last_year_written = 0

    @property
    def device(self) -> usb.core.Device:
        return self._device

    def update_time(
        self,
        current: _HasTime,
        time_format: ClockTimeFormat,
        force_update: bool = False,
    ) -> bool:
        if current is None:
            raise ValueError("current time must not be None")
        time_format = _coerce(ClockTimeFormat, time_format, "clock time format")

        try:
            hour, minute = current.hour, current.minute
        except AttributeError:
            raise ValueError(f"current time needs hour and minute: {current!r}") from None

        time_value = encode_time(hour, minute, time_format)
        sent = False
        try:
            if force_update or time_value != self.last_time_written:
                self._send(INDEX_UPDATE_PRIMARY_CLOCK, time_value)
                sent = True
        finally:
            # refreshed even when the transfer failed
            self.last_time_written = time_value
        return sent

    def update_date(
        self,
        current: _HasDate,
        date_format: ClockDateFormat,
        force_update: bool = False,
    ) -> int:
        if current is None:
            raise ValueError("current date must not be None")
        date_format = _coerce(ClockDateFormat, date_format, "clock date format")

        try:
            day, month, year = current.day, current.month, current.year
        except AttributeError:
            raise ValueError(f"current date needs day, month and year: {current!r}") from None

        day_month_value, year_value = encode_date(day, month, year, date_format)
        sent = 0
        try:
            if force_update or day_month_value != self.last_day_month_written:
                self._send(INDEX_UPDATE_DATE_DAYMONTH, day_month_value)
                sent += 1
            if force_update or year_value != self.last_year_written:
                self._send(INDEX_UPDATE_DATE_YEAR, year_value)
                sent += 1
        finally:
            self.last_day_month_written = day_month_value
            self.last_year_written = year_value
        return sent

    def update_clock(
        self,
        now: datetime,
        time_format: ClockTimeFormat,
        date_format: ClockDateFormat,
        force_update: bool = False,
    ) -> None:
        self.update_date(now, date_format, force_update)
        self.update_time(now, time_format, force_update)

    def write_line(self, line: int, text: bytes | bytearray | Iterable[int] | None) -> None:
        """Replace MFD line ``line`` with raw character codes.

        The line is always cleared first; at most 16 codes are written.
        """
        delete_index = delete_index_for_line(line)
        # validate the whole command set before touching the device
        commands = encode_text(line, text) if text else []

        self._send(delete_index, 0)
        for command in commands:
            self._send(command.index, command.value)

    def write_text(self, line: int, text: str | None) -> None:
        self.write_line(line, encode_chars(text) if text else None)

    def clear_line(self, line: int) -> None:
        self.write_line(line, None)

    def clear_display(self) -> None:
        for line in LINE_NUMBERS:
            self.clear_line(line)

    def _send(self, index: int, value: int) -> None:
        log.debug("ctrl_transfer index=0x%02x value=0x%04x", index, value)
        try:
            # ctrl_transfer blocks until completion or timeout
            self._device.ctrl_transfer(
                REQUEST_TYPE_VENDOR_OUT,
                REQUEST_VENDOR,
                value,
                index,
                bytearray(CONTROL_PAYLOAD_SIZE),
                timeout=USB_TIMEOUT_MS,
            )
        except usb.core.USBError as exc:
            details = str(exc).strip()
            if details:
                raise TransportError(
                    f"Control transfer 0x{index:02x} failed ({details})."
                ) from exc
            raise TransportError(f"Control transfer 0x{index:02x} failed.") from exc


def _coerce(enum_type, value, label: str):
    if value is None:
        raise ValueError(f"{label} must not be None")
    try:
        return enum_type(value)
    except ValueError:
        raise ValueError(f"Unknown {label}: {value!r}") from None
