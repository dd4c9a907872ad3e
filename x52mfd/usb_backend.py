from __future__ import annotations

from dataclasses import dataclass
import errno
import logging
from typing import Callable, Iterable, Iterator, TypeVar

import usb.core

from .protocol import PRODUCT_ID, PRODUCT_NAME, VENDOR_ID
from .session import X52ProSession

log = logging.getLogger(__name__)

T = TypeVar("T")

_HUB_CLASS = 0x09


class BackendError(Exception):
    pass


@dataclass(frozen=True)
class DeviceInfo:
    id: int
    name: str
    bus: int
    address: int
    port_path: tuple[int, ...]

    @property
    def label(self) -> str:
        path = ".".join(str(port) for port in self.port_path) or "-"
        return f"{self.id}: {self.name} (bus {self.bus}, device {self.address}, port {path})"


def walk_device_tree(roots: Iterable[T], children_of: Callable[[T], Iterable[T]]) -> Iterator[T]:
    """Yield every node depth first, a hub before the devices behind it."""
    stack = list(reversed(list(roots)))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(list(children_of(node))))


def _device_key(dev: usb.core.Device) -> tuple[int, int]:
    return int(getattr(dev, "bus", 0) or 0), int(getattr(dev, "address", 0) or 0)


def _port_number(dev: usb.core.Device) -> int:
    return int(getattr(dev, "port_number", 0) or 0)


def _port_path(dev: usb.core.Device) -> tuple[int, ...]:
    try:
        ports = getattr(dev, "port_numbers", None)
    except (NotImplementedError, usb.core.USBError):
        ports = None
    return tuple(int(port) for port in ports or ())


def _is_hub(dev: usb.core.Device) -> bool:
    return int(getattr(dev, "bDeviceClass", 0) or 0) == _HUB_CLASS


def _build_tree(
    devices: list[usb.core.Device],
) -> tuple[list[usb.core.Device], dict[tuple[int, int], list[usb.core.Device]]]:
    known = {_device_key(dev) for dev in devices}
    children: dict[tuple[int, int], list[usb.core.Device]] = {}
    roots: list[usb.core.Device] = []
    for dev in devices:
        parent = getattr(dev, "parent", None)
        if parent is None or _device_key(parent) not in known:
            roots.append(dev)
        else:
            children.setdefault(_device_key(parent), []).append(dev)

    roots.sort(key=lambda dev: (_device_key(dev), _port_number(dev)))
    for siblings in children.values():
        siblings.sort(key=_port_number)
    return roots, children


def _iter_devices() -> Iterator[usb.core.Device]:
    try:
        discovered = usb.core.find(find_all=True)
        devices = list(discovered or [])
    except usb.core.NoBackendError as exc:
        raise BackendError("No libusb backend available.") from exc
    except usb.core.USBError as exc:
        raise BackendError(f"USB enumeration failed ({exc}).") from exc

    roots, children = _build_tree(devices)
    log.debug("Enumerated %d USB device(s), %d root(s)", len(devices), len(roots))

    def children_of(dev: usb.core.Device) -> list[usb.core.Device]:
        if not _is_hub(dev):
            return []
        return children.get(_device_key(dev), [])

    return walk_device_tree(roots, children_of)


def _matches(dev: usb.core.Device, vendor_id: int, product_id: int) -> bool:
    return (
        int(getattr(dev, "idVendor", -1)) == vendor_id
        and int(getattr(dev, "idProduct", -1)) == product_id
    )


def find_device(vendor_id: int = VENDOR_ID, product_id: int = PRODUCT_ID) -> usb.core.Device | None:
    for dev in _iter_devices():
        if _matches(dev, vendor_id, product_id):
            log.info("Found %04x:%04x on bus %d address %d", vendor_id, product_id, *_device_key(dev))
            return dev
    log.info("No %04x:%04x device attached", vendor_id, product_id)
    return None


def list_devices() -> list[DeviceInfo]:
    infos: list[DeviceInfo] = []
    for dev in _iter_devices():
        if not _matches(dev, VENDOR_ID, PRODUCT_ID):
            continue
        bus, address = _device_key(dev)
        infos.append(
            DeviceInfo(
                id=len(infos) + 1,
                name=PRODUCT_NAME,
                bus=bus,
                address=address,
                port_path=_port_path(dev),
            )
        )
    return infos


def open_session(device: usb.core.Device | None = None) -> X52ProSession:
    if device is None:
        device = find_device()
    if device is None:
        raise BackendError("No X52 Pro device found.")

    try:
        device.set_configuration()
    except usb.core.USBError as exc:
        if getattr(exc, "errno", None) == errno.EACCES:
            raise BackendError(
                "Permission denied opening the X52 Pro. Install the udev rule or run as root."
            ) from exc
        # already configured by the HID driver; vendor requests still go through
        log.debug("set_configuration: %s", exc)
    return X52ProSession(device)
