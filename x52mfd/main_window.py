from __future__ import annotations

from datetime import datetime
import logging

from PyQt6.QtCore import QTimer
from PyQt6.QtGui import QAction, QCloseEvent, QIcon
from PyQt6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMenu,
    QMessageBox,
    QPushButton,
    QStyle,
    QSystemTrayIcon,
    QVBoxLayout,
    QWidget,
)

from .protocol import LINE_NUMBERS, MAX_CHARACTERS_PER_LINE, ClockDateFormat, ClockTimeFormat
from .session import TransportError, X52ProSession
from .settings_store import DisplaySettings, SettingsStore
from .startup import disable as disable_autostart
from .startup import enable as enable_autostart
from .startup import is_enabled as is_autostart_enabled
from .startup import refresh as refresh_autostart
from .udev import has_x52_udev_rule, install_x52_udev_rule, should_manage_udev
from .usb_backend import BackendError, DeviceInfo, list_devices, open_session

log = logging.getLogger(__name__)

TITLE = "X52 Pro MFD"

TIME_FORMAT_LABELS: list[tuple[str, ClockTimeFormat]] = [
    ("24-hour", ClockTimeFormat.CLOCK_24_HOUR),
    ("12-hour", ClockTimeFormat.CLOCK_12_HOUR),
]

DATE_FORMAT_LABELS: list[tuple[str, ClockDateFormat]] = [
    ("DD-MM-YYYY", ClockDateFormat.DD_MM_YYYY),
    ("MM-DD-YYYY", ClockDateFormat.MM_DD_YYYY),
    ("YYYY-MM-DD", ClockDateFormat.YYYY_MM_DD),
]


class MainWindow(QMainWindow):
    def __init__(self, start_hidden: bool = False) -> None:
        super().__init__()
        self.settings_store = SettingsStore()
        self._session: X52ProSession | None = None
        self._devices: list[DeviceInfo] = []
        self._udev_prompted = False
        self._start_hidden = start_hidden
        self._quitting = False
        self._line_edits: dict[int, QLineEdit] = {}

        self.setWindowTitle(TITLE)
        self.setMinimumWidth(480)

        self._build_ui()
        self._build_tray()
        self._load_settings_ui()
        self.refresh_devices()
        self._start_detection_poll()
        self._start_clock_timer()
        self._check_udev_rules_prompt()

    def _build_ui(self) -> None:
        root = QWidget(self)
        root_layout = QVBoxLayout(root)

        device_box = QGroupBox("Device")
        device_layout = QHBoxLayout(device_box)
        self.device_label = QLabel("Not connected")
        self.refresh_button = QPushButton("Refresh")
        self.refresh_button.clicked.connect(lambda: self.refresh_devices())
        device_layout.addWidget(self.device_label)
        device_layout.addStretch(1)
        device_layout.addWidget(self.refresh_button)
        root_layout.addWidget(device_box)

        clock_box = QGroupBox("Clock")
        clock_layout = QFormLayout(clock_box)
        self.time_format_combo = QComboBox()
        for label, time_format in TIME_FORMAT_LABELS:
            self.time_format_combo.addItem(label, userData=time_format)
        self.date_format_combo = QComboBox()
        for label, date_format in DATE_FORMAT_LABELS:
            self.date_format_combo.addItem(label, userData=date_format)
        self.sync_checkbox = QCheckBox("Keep clock synced")
        self.sync_checkbox.toggled.connect(self._on_sync_toggled)
        self.sync_button = QPushButton("Sync Now")
        self.sync_button.clicked.connect(lambda: self.sync_clock_now(force_update=True))

        clock_layout.addRow("Time format", self.time_format_combo)
        clock_layout.addRow("Date format", self.date_format_combo)
        clock_layout.addRow(self.sync_checkbox, self.sync_button)
        root_layout.addWidget(clock_box)

        display_box = QGroupBox("Display")
        display_layout = QFormLayout(display_box)
        for number in LINE_NUMBERS:
            edit = QLineEdit()
            edit.setMaxLength(MAX_CHARACTERS_PER_LINE)
            edit.returnPressed.connect(lambda n=number: self.write_line(n))
            display_layout.addRow(f"Line {number}", edit)
            self._line_edits[number] = edit

        buttons = QHBoxLayout()
        self.apply_button = QPushButton("Apply")
        self.apply_button.clicked.connect(self.apply_lines)
        self.clear_button = QPushButton("Clear")
        self.clear_button.clicked.connect(self.clear_display)
        self.save_button = QPushButton("Save as Default")
        self.save_button.clicked.connect(self.save_settings)
        buttons.addWidget(self.apply_button)
        buttons.addWidget(self.clear_button)
        buttons.addStretch(1)
        buttons.addWidget(self.save_button)
        display_layout.addRow(buttons)
        root_layout.addWidget(display_box)

        self.status_label = QLabel("")
        root_layout.addWidget(self.status_label)

        self.setCentralWidget(root)

    def _load_settings_ui(self) -> None:
        settings = self.settings_store.get()
        self._select_data(self.time_format_combo, settings.time_format)
        self._select_data(self.date_format_combo, settings.date_format)
        for number, edit in self._line_edits.items():
            edit.setText(settings.line(number))
        self.sync_checkbox.setChecked(settings.sync_clock)

    @staticmethod
    def _select_data(combo: QComboBox, value: object) -> None:
        index = combo.findData(value)
        if index >= 0:
            combo.setCurrentIndex(index)

    def _current_settings(self) -> DisplaySettings:
        previous = self.settings_store.get()
        settings = DisplaySettings(
            time_format=self.time_format_combo.currentData(),
            date_format=self.date_format_combo.currentData(),
            sync_clock=self.sync_checkbox.isChecked(),
            sync_interval_ms=previous.sync_interval_ms,
        )
        for number, edit in self._line_edits.items():
            settings = settings.with_line(number, edit.text())
        return settings

    def save_settings(self) -> None:
        try:
            self.settings_store.set(self._current_settings())
        except OSError as exc:
            self._show_error(f"Failed to save settings: {exc}")
            return
        self.status_label.setText(f"Saved defaults to {self.settings_store.path}.")

    def refresh_devices(self, show_errors: bool = True) -> None:
        try:
            self._devices = list_devices()
        except BackendError as exc:
            self._session = None
            if show_errors:
                self._show_error(str(exc))
            return

        if not self._devices:
            self._session = None
            self.device_label.setText("Not connected")
            self.status_label.setText("No X52 Pro found.")
            return

        self.device_label.setText(self._devices[0].label)
        if self._session is not None:
            return

        try:
            self._session = open_session()
        except BackendError as exc:
            if show_errors:
                self._show_error(str(exc))
            return

        self.status_label.setText("X52 Pro connected.")
        self._push_defaults()

    def _push_defaults(self) -> None:
        self.sync_clock_now(force_update=True)
        self.apply_lines()

    def _require_session(self) -> X52ProSession | None:
        if self._session is None:
            self._show_error("No X52 Pro connected. Connect the throttle and refresh.")
        return self._session

    def _run_transfer(self, action) -> bool:
        try:
            action()
        except TransportError as exc:
            # the device probably went away; reopen on the next poll
            self._session = None
            self.status_label.setText(str(exc))
            self._tray_message(TITLE, str(exc), QSystemTrayIcon.MessageIcon.Warning)
            return False
        return True

    def sync_clock_now(self, force_update: bool = False) -> None:
        session = self._session
        if session is None:
            return
        time_format = self.time_format_combo.currentData()
        date_format = self.date_format_combo.currentData()
        if self._run_transfer(lambda: session.update_clock(datetime.now(), time_format, date_format, force_update)):
            if force_update:
                self.status_label.setText("Clock synced.")

    def write_line(self, number: int) -> None:
        session = self._require_session()
        if session is None:
            return
        text = self._line_edits[number].text()
        if self._run_transfer(lambda: session.write_text(number, text)):
            self.status_label.setText(f"Line {number} updated.")

    def apply_lines(self) -> None:
        session = self._require_session()
        if session is None:
            return

        def write_all() -> None:
            for number, edit in self._line_edits.items():
                session.write_text(number, edit.text())

        if self._run_transfer(write_all):
            self.status_label.setText("Display updated.")

    def clear_display(self) -> None:
        session = self._require_session()
        if session is None:
            return
        if self._run_transfer(session.clear_display):
            self.status_label.setText("Display cleared.")

    def _show_error(self, message: str) -> None:
        self.status_label.setText(message)
        QMessageBox.critical(self, TITLE, message)

    def closeEvent(self, event: QCloseEvent) -> None:
        if self._quitting:
            event.accept()
            return
        if getattr(self, "tray", None) is not None and self.tray.isVisible():
            self.hide()
            event.ignore()
            self.status_label.setText("Running in tray.")
            return
        event.accept()

    def _build_tray(self) -> None:
        if not QSystemTrayIcon.isSystemTrayAvailable():
            if self._start_hidden:
                self.show()
            return

        tray_icon = QIcon.fromTheme("input-gaming")
        if tray_icon.isNull():
            tray_icon = self.style().standardIcon(QStyle.StandardPixmap.SP_ComputerIcon)

        self.tray = QSystemTrayIcon(tray_icon, self)
        menu = QMenu(self)

        show_action = QAction("Show/Hide", self)
        show_action.triggered.connect(self._toggle_window_visibility)
        menu.addAction(show_action)

        sync_action = QAction("Sync Clock Now", self)
        sync_action.triggered.connect(lambda: self.sync_clock_now(force_update=True))
        menu.addAction(sync_action)

        self.autostart_action = QAction("Start on login", self)
        self.autostart_action.setCheckable(True)
        self.autostart_action.setChecked(is_autostart_enabled())
        self._refresh_autostart_entry()
        self.autostart_action.triggered.connect(self._toggle_autostart)
        menu.addAction(self.autostart_action)

        menu.addSeparator()

        quit_action = QAction("Quit", self)
        quit_action.triggered.connect(self._quit_from_tray)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)
        self.tray.activated.connect(self._on_tray_activated)
        self.tray.show()

        if self._start_hidden:
            self.hide()
            self.status_label.setText("Started hidden in tray.")

    def _toggle_window_visibility(self) -> None:
        if self.isVisible():
            self.hide()
        else:
            self.show()
            self.raise_()
            self.activateWindow()

    def _tray_message(
        self,
        title: str,
        message: str,
        icon: QSystemTrayIcon.MessageIcon = QSystemTrayIcon.MessageIcon.Information,
    ) -> None:
        tray = getattr(self, "tray", None)
        if tray is not None and tray.isVisible():
            tray.showMessage(title, message, icon, 4000)

    def _on_tray_activated(self, reason: QSystemTrayIcon.ActivationReason) -> None:
        if reason == QSystemTrayIcon.ActivationReason.Trigger:
            self._toggle_window_visibility()

    def _quit_from_tray(self) -> None:
        self._quitting = True
        self.clock_timer.stop()
        if getattr(self, "tray", None) is not None:
            self.tray.hide()
        self.close()

    def _toggle_autostart(self, checked: bool) -> None:
        try:
            if checked:
                enable_autostart()
                self.status_label.setText("Start on login enabled.")
            else:
                disable_autostart()
                self.status_label.setText("Start on login disabled.")
        except OSError as exc:
            self._show_error(f"Failed to update autostart: {exc}")
            if hasattr(self, "autostart_action"):
                self.autostart_action.setChecked(is_autostart_enabled())

    def _refresh_autostart_entry(self) -> None:
        try:
            if refresh_autostart():
                log.info("Rewrote autostart entry for the current install.")
        except OSError as exc:
            log.warning("Failed to refresh autostart entry: %s", exc)

    def _start_detection_poll(self) -> None:
        self.poll_timer = QTimer(self)
        self.poll_timer.setInterval(4000)
        self.poll_timer.timeout.connect(lambda: self.refresh_devices(show_errors=False))
        self.poll_timer.start()

    def _start_clock_timer(self) -> None:
        self.clock_timer = QTimer(self)
        self.clock_timer.setInterval(self.settings_store.get().sync_interval_ms)
        self.clock_timer.timeout.connect(self._clock_tick)
        if self.sync_checkbox.isChecked():
            self.clock_timer.start()

    def _on_sync_toggled(self, checked: bool) -> None:
        timer = getattr(self, "clock_timer", None)
        if timer is None:
            return
        if checked:
            timer.start()
            self.status_label.setText("Clock sync on.")
        else:
            timer.stop()
            self.status_label.setText("Clock sync off.")

    def _clock_tick(self) -> None:
        # unchanged values are suppressed by the session, so ticking often is cheap
        self.sync_clock_now(force_update=False)

    def _check_udev_rules_prompt(self) -> None:
        if self._udev_prompted:
            return
        if not should_manage_udev():
            return
        if has_x52_udev_rule():
            return

        self._udev_prompted = True
        reply = QMessageBox.question(
            self,
            "X52 Pro udev Rule",
            "No X52 Pro udev rule was detected.\n"
            "Install it now so the display can be driven without sudo?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.Yes,
        )
        if reply != QMessageBox.StandardButton.Yes:
            self.status_label.setText("udev rule not installed. You may need sudo for USB access.")
            return

        success, message = install_x52_udev_rule()
        if success:
            self.status_label.setText(message)
            QMessageBox.information(self, "X52 Pro udev Rule", message)
        else:
            self.status_label.setText(message)
            QMessageBox.warning(self, "X52 Pro udev Rule", message)
