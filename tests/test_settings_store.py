"""Tests for the JSON settings store."""

import json

import pytest

from x52mfd.protocol import ClockDateFormat, ClockTimeFormat
from x52mfd.settings_store import DisplaySettings, SettingsStore


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "x52mfd" / "settings.json"


class TestDisplaySettings:

    def test_defaults(self):
        settings = DisplaySettings()
        assert settings.time_format is ClockTimeFormat.CLOCK_24_HOUR
        assert settings.date_format is ClockDateFormat.DD_MM_YYYY
        assert settings.lines == ("", "", "")
        assert settings.sync_clock is False

    def test_with_line_truncates(self):
        settings = DisplaySettings().with_line(2, "A" * 20)
        assert settings.line(2) == "A" * 16
        assert settings.line(1) == ""

    def test_from_json_falls_back_on_bad_values(self):
        settings = DisplaySettings.from_json(
            {
                "time_format": "13h",
                "date_format": ["dmy"],
                "lines": "not a list",
                "sync_interval_ms": "soon",
            }
        )
        assert settings == DisplaySettings()

    def test_from_json_pads_and_clamps(self):
        settings = DisplaySettings.from_json(
            {"time_format": "12h", "date_format": "ymd", "lines": ["TOP"], "sync_interval_ms": 5}
        )
        assert settings.time_format is ClockTimeFormat.CLOCK_12_HOUR
        assert settings.date_format is ClockDateFormat.YYYY_MM_DD
        assert settings.lines == ("TOP", "", "")
        assert settings.sync_interval_ms == 250


class TestSettingsStore:

    def test_missing_file_gives_defaults(self, settings_path):
        assert SettingsStore(settings_path).get() == DisplaySettings()

    def test_set_persists(self, settings_path):
        store = SettingsStore(settings_path)
        saved = DisplaySettings(
            time_format=ClockTimeFormat.CLOCK_12_HOUR,
            date_format=ClockDateFormat.MM_DD_YYYY,
            lines=("ONE", "TWO", "THREE"),
            sync_clock=True,
        )
        store.set(saved)

        raw = json.loads(settings_path.read_text(encoding="utf-8"))
        assert raw["time_format"] == "12h"
        assert raw["lines"] == ["ONE", "TWO", "THREE"]
        assert SettingsStore(settings_path).get() == saved

    def test_corrupt_file_gives_defaults(self, settings_path):
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("{not json", encoding="utf-8")
        assert SettingsStore(settings_path).get() == DisplaySettings()

    def test_default_path_under_home(self, tmp_path, monkeypatch):
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path)
        assert SettingsStore().path == tmp_path / ".config" / "x52mfd" / "settings.json"
