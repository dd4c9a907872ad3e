import ctypes
import ctypes.util
import sys

from PyQt6.QtWidgets import QApplication

from .main_window import MainWindow


def _set_process_name(name: str) -> None:
    try:
        libc_path = ctypes.util.find_library("c") or "libc.so.6"
        libc = ctypes.CDLL(libc_path)
        pr_set_name = 15
        encoded = name.encode("utf-8")[:15]
        libc.prctl(pr_set_name, ctypes.c_char_p(encoded), 0, 0, 0)
    except (OSError, AttributeError):
        pass


def run(start_hidden: bool = False) -> int:
    _set_process_name("x52mfd")
    app = QApplication(sys.argv)
    app.setApplicationName("X52 Pro MFD")
    app.setDesktopFileName("x52mfd.desktop")
    window = MainWindow(start_hidden=start_hidden)
    if not start_hidden:
        window.show()
    return app.exec()


def main() -> int:
    return run(start_hidden="--start-hidden" in sys.argv)
