from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from .protocol import PRODUCT_ID, VENDOR_ID

RULE_FILENAME = "99-x52pro.rules"
RULE_TARGET_PATH = Path("/etc/udev/rules.d") / RULE_FILENAME

RULE_CONTENT = (
    f'SUBSYSTEM=="usb", ATTR{{idVendor}}=="{VENDOR_ID:04x}", '
    f'ATTR{{idProduct}}=="{PRODUCT_ID:04x}", MODE="0666", TAG+="uaccess"\n'
)

_UDEV_RULE_DIRS = [
    Path("/etc/udev/rules.d"),
    Path("/run/udev/rules.d"),
    Path("/usr/lib/udev/rules.d"),
    Path("/lib/udev/rules.d"),
]


def should_manage_udev() -> bool:
    return os.name == "posix" and Path("/etc/udev").exists() and os.geteuid() != 0


def rule_matches(text: str) -> bool:
    lowered = text.lower()
    return (
        f'attr{{idvendor}}=="{VENDOR_ID:04x}"' in lowered
        and f'attr{{idproduct}}=="{PRODUCT_ID:04x}"' in lowered
    )


def has_x52_udev_rule(rule_dirs: list[Path] | None = None) -> bool:
    for rules_dir in rule_dirs or _UDEV_RULE_DIRS:
        if not rules_dir.exists():
            continue

        for rule_file in rules_dir.glob("*.rules"):
            try:
                text = rule_file.read_text(encoding="utf-8", errors="ignore")
            except OSError:
                continue
            if rule_matches(text):
                return True
    return False


def install_x52_udev_rule() -> tuple[bool, str]:
    if not should_manage_udev():
        return False, "udev rule installation is not needed for this session."

    if has_x52_udev_rule():
        return True, "X52 Pro udev rule already exists."

    if shutil.which("pkexec") is None:
        return (
            False,
            "pkexec is not available. Create the rule manually:\n"
            f"{RULE_TARGET_PATH}\n"
            "Then run: sudo udevadm control --reload-rules && sudo udevadm trigger",
        )

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8") as tmp:
            tmp.write(RULE_CONTENT)
            temp_path = Path(tmp.name)

        for command in (
            ["pkexec", "install", "-m", "0644", str(temp_path), str(RULE_TARGET_PATH)],
            ["pkexec", "udevadm", "control", "--reload-rules"],
            ["pkexec", "udevadm", "trigger"],
        ):
            subprocess.run(command, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        if stderr:
            return False, f"Failed to install udev rule: {stderr}"
        return False, "Failed to install udev rule."
    finally:
        if temp_path is not None:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                pass

    return True, "udev rule installed. Replug the throttle if it was already connected."
