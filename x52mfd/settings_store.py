from __future__ import annotations

from dataclasses import dataclass, replace
import json
from pathlib import Path
from typing import Any

from .protocol import LINE_NUMBERS, MAX_CHARACTERS_PER_LINE, ClockDateFormat, ClockTimeFormat

DEFAULT_SYNC_INTERVAL_MS = 1000


@dataclass(frozen=True)
class DisplaySettings:
    time_format: ClockTimeFormat = ClockTimeFormat.CLOCK_24_HOUR
    date_format: ClockDateFormat = ClockDateFormat.DD_MM_YYYY
    lines: tuple[str, str, str] = ("", "", "")
    sync_clock: bool = False
    sync_interval_ms: int = DEFAULT_SYNC_INTERVAL_MS

    def line(self, number: int) -> str:
        return self.lines[number - 1]

    def with_line(self, number: int, text: str) -> DisplaySettings:
        lines = list(self.lines)
        lines[number - 1] = text[:MAX_CHARACTERS_PER_LINE]
        return replace(self, lines=(lines[0], lines[1], lines[2]))

    def to_json(self) -> dict[str, object]:
        return {
            "time_format": self.time_format.value,
            "date_format": self.date_format.value,
            "lines": list(self.lines),
            "sync_clock": self.sync_clock,
            "sync_interval_ms": self.sync_interval_ms,
        }

    @staticmethod
    def from_json(data: dict[str, object]) -> DisplaySettings:
        return DisplaySettings(
            time_format=_enum_value(ClockTimeFormat, data.get("time_format"), ClockTimeFormat.CLOCK_24_HOUR),
            date_format=_enum_value(ClockDateFormat, data.get("date_format"), ClockDateFormat.DD_MM_YYYY),
            lines=_lines(data.get("lines")),
            sync_clock=bool(data.get("sync_clock", False)),
            sync_interval_ms=_clamp_int(
                data.get("sync_interval_ms", DEFAULT_SYNC_INTERVAL_MS), 250, 60000, DEFAULT_SYNC_INTERVAL_MS
            ),
        )


class SettingsStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or self._resolve_path()
        self._settings = DisplaySettings()
        self._load()

    @staticmethod
    def _resolve_path() -> Path:
        config_home = Path.home() / ".config" / "x52mfd"
        return config_home / "settings.json"

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        try:
            if not self._path.exists():
                return
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                return
            self._settings = DisplaySettings.from_json(raw)
        except (OSError, json.JSONDecodeError, ValueError):
            self._settings = DisplaySettings()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._settings.to_json(), indent=2), encoding="utf-8")

    def get(self) -> DisplaySettings:
        return self._settings

    def set(self, settings: DisplaySettings) -> None:
        self._settings = settings
        self._save()


def _enum_value(enum_type, value: object, default):
    try:
        return enum_type(value)
    except (TypeError, ValueError):
        return default


def _lines(value: object) -> tuple[str, str, str]:
    if not isinstance(value, list):
        return ("", "", "")
    parsed = [str(item)[:MAX_CHARACTERS_PER_LINE] for item in value[: len(LINE_NUMBERS)]]
    while len(parsed) < len(LINE_NUMBERS):
        parsed.append("")
    return parsed[0], parsed[1], parsed[2]


def _clamp_int(value: Any, min_value: int, max_value: int, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = default
    return max(min_value, min(max_value, parsed))
