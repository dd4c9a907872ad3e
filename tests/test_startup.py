import sys

import pytest

from x52mfd import startup


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path, monkeypatch):
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path)


@pytest.fixture
def no_gui_script(monkeypatch):
    monkeypatch.setattr("x52mfd.startup.shutil.which", lambda name: None)


def _exec_line(path):
    for line in path.read_text(encoding="utf-8").splitlines():
        if line.startswith("Exec="):
            return line
    raise AssertionError("no Exec line")


def test_enable_and_disable(tmp_path, no_gui_script):
    assert not startup.is_enabled()
    startup.enable()
    path = tmp_path / ".config" / "autostart" / "x52mfd.desktop"
    assert startup.autostart_path() == path
    assert startup.is_enabled()

    startup.disable()
    assert not startup.is_enabled()
    startup.disable()


def test_exec_uses_installed_gui_script(monkeypatch):
    seen = []

    def which(name):
        seen.append(name)
        return "/opt/x52 tools/bin/x52mfd-gui"

    monkeypatch.setattr("x52mfd.startup.shutil.which", which)
    startup.enable()
    assert seen == ["x52mfd-gui"]
    assert _exec_line(startup.autostart_path()) == "Exec='/opt/x52 tools/bin/x52mfd-gui' --start-hidden"


def test_exec_falls_back_to_interpreter(monkeypatch, no_gui_script):
    monkeypatch.setattr(sys, "executable", "/usr/bin/python3")
    startup.enable()
    assert _exec_line(startup.autostart_path()) == "Exec=/usr/bin/python3 -m x52mfd gui --start-hidden"


def test_refresh_rewrites_stale_entry(monkeypatch, no_gui_script):
    assert startup.refresh() is False
    assert not startup.is_enabled()

    path = startup.autostart_path()
    path.parent.mkdir(parents=True)
    path.write_text("[Desktop Entry]\nExec=/gone/python -m x52mfd gui --start-hidden\n", encoding="utf-8")
    monkeypatch.setattr(sys, "executable", "/usr/bin/python3")
    assert startup.refresh() is True
    assert _exec_line(path) == "Exec=/usr/bin/python3 -m x52mfd gui --start-hidden"
    assert startup.refresh() is False
