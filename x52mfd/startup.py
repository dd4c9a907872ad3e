"""XDG autostart entry that starts the tray app hidden at login."""

from __future__ import annotations

from pathlib import Path
import shlex
import shutil
import sys

AUTOSTART_FILENAME = "x52mfd.desktop"
GUI_SCRIPT = "x52mfd-gui"
HIDDEN_FLAG = "--start-hidden"


def autostart_path() -> Path:
    return Path.home() / ".config" / "autostart" / AUTOSTART_FILENAME


def exec_command() -> str:
    """Prefer the installed gui script, else run the package with this interpreter."""
    script = shutil.which(GUI_SCRIPT)
    if script:
        return f"{shlex.quote(script)} {HIDDEN_FLAG}"
    return f"{shlex.quote(sys.executable)} -m x52mfd gui {HIDDEN_FLAG}"


def desktop_entry() -> str:
    lines = [
        "[Desktop Entry]",
        "Type=Application",
        "Version=1.0",
        "Name=X52 Pro MFD",
        "Comment=Keep the X52 Pro clock in sync from the tray",
        f"Exec={exec_command()}",
        "Icon=input-gaming",
        "Terminal=false",
        "StartupNotify=false",
        "X-GNOME-Autostart-enabled=true",
    ]
    return "\n".join(lines) + "\n"


def is_enabled() -> bool:
    return autostart_path().is_file()


def enable() -> None:
    path = autostart_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(desktop_entry(), encoding="utf-8")


def disable() -> None:
    autostart_path().unlink(missing_ok=True)


def refresh() -> bool:
    """Rewrite an existing entry whose command no longer matches this install."""
    path = autostart_path()
    if not path.is_file():
        return False
    expected = desktop_entry()
    if path.read_text(encoding="utf-8", errors="ignore") == expected:
        return False
    path.write_text(expected, encoding="utf-8")
    return True
