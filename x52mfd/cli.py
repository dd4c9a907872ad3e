"""Command line entry point for the X52 Pro MFD utility."""

from __future__ import annotations

import argparse
from datetime import datetime
import logging
import sys

from . import __version__
from .charmap import parse_hex_codes
from .protocol import LINE_NUMBERS, ClockDateFormat, ClockTimeFormat
from .session import TransportError
from .settings_store import SettingsStore
from .udev import has_x52_udev_rule, install_x52_udev_rule, should_manage_udev
from .usb_backend import BackendError, list_devices, open_session

log = logging.getLogger(__name__)

_DATE_FORMAT_CHOICES = [fmt.value for fmt in ClockDateFormat]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="x52mfd",
        description="Set the clock and display text of a Saitek X52 Pro throttle.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    x52mfd detect                 List attached X52 Pro devices
    x52mfd clock --24h            Set clock and date from local time
    x52mfd line 1 "HELLO PILOT"   Write the first display line
    x52mfd line 2 --raw 41 42 43  Write raw character codes
    x52mfd clear                  Clear all display lines
    x52mfd show                   Push saved lines and clock
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("detect", help="List attached X52 Pro devices")

    clock_parser = subparsers.add_parser("clock", help="Set clock and date from local time")
    hour_group = clock_parser.add_mutually_exclusive_group()
    hour_group.add_argument(
        "--12h", dest="time_format", action="store_const", const=ClockTimeFormat.CLOCK_12_HOUR,
        help="Show the clock in 12-hour format",
    )
    hour_group.add_argument(
        "--24h", dest="time_format", action="store_const", const=ClockTimeFormat.CLOCK_24_HOUR,
        help="Show the clock in 24-hour format",
    )
    clock_parser.add_argument(
        "--date-format", choices=_DATE_FORMAT_CHOICES, default=None,
        help="Date order: day-month-year, month-day-year or year-month-day",
    )
    clock_parser.add_argument("--force", action="store_true", help="Send even unchanged values")

    line_parser = subparsers.add_parser("line", help="Write or clear one display line")
    line_parser.add_argument("number", type=int, choices=LINE_NUMBERS, help="Line number (1-3)")
    line_parser.add_argument("text", nargs="?", default="", help="Text to show; empty clears the line")
    line_parser.add_argument("--raw", nargs="+", metavar="HEX", help="Raw character codes in hex")
    line_parser.add_argument("--save", action="store_true", help="Also store the text as the default")

    subparsers.add_parser("clear", help="Clear all display lines")
    subparsers.add_parser("show", help="Push the saved display lines and clock")

    udev_parser = subparsers.add_parser("udev", help="Check or install the udev rule")
    udev_parser.add_argument("--install", action="store_true", help="Install the rule through pkexec")

    gui_parser = subparsers.add_parser("gui", help="Launch the tray application")
    gui_parser.add_argument("--start-hidden", action="store_true", help="Start minimised to the tray")

    return parser


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def cmd_detect(args: argparse.Namespace) -> int:
    devices = list_devices()
    if not devices:
        print("No X52 Pro devices found.")
        return 1
    for info in devices:
        print(info.label)
    return 0


def cmd_clock(args: argparse.Namespace) -> int:
    settings = SettingsStore().get()
    time_format = args.time_format or settings.time_format
    if args.date_format:
        date_format = ClockDateFormat(args.date_format)
    else:
        date_format = settings.date_format

    session = open_session()
    session.update_clock(datetime.now(), time_format, date_format, args.force)
    print(f"Clock set ({time_format.value}, {date_format.value}).")
    return 0


def cmd_line(args: argparse.Namespace) -> int:
    session = open_session()
    if args.raw:
        session.write_line(args.number, parse_hex_codes(args.raw))
    else:
        session.write_text(args.number, args.text)
        if args.save:
            store = SettingsStore()
            store.set(store.get().with_line(args.number, args.text))
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    open_session().clear_display()
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    settings = SettingsStore().get()
    session = open_session()
    session.update_clock(datetime.now(), settings.time_format, settings.date_format, force_update=True)
    for number in LINE_NUMBERS:
        session.write_text(number, settings.line(number))
    return 0


def cmd_udev(args: argparse.Namespace) -> int:
    if args.install:
        success, message = install_x52_udev_rule()
        print(message)
        return 0 if success else 1
    if not should_manage_udev():
        print("udev rule management is not needed for this session.")
        return 0
    if has_x52_udev_rule():
        print("X52 Pro udev rule is installed.")
        return 0
    print("No X52 Pro udev rule found. Run 'x52mfd udev --install'.")
    return 1


def cmd_gui(args: argparse.Namespace) -> int:
    from .app import run

    return run(start_hidden=args.start_hidden)


COMMANDS = {
    "detect": cmd_detect,
    "clock": cmd_clock,
    "line": cmd_line,
    "clear": cmd_clear,
    "show": cmd_show,
    "udev": cmd_udev,
    "gui": cmd_gui,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "line" and args.raw:
        if args.text:
            parser.error("line: TEXT and --raw cannot be combined")
        if args.save:
            parser.error("line: --save stores TEXT and cannot be combined with --raw")
    _configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return COMMANDS[args.command](args)
    except (BackendError, TransportError, ValueError) as exc:
        log.debug("%s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
