"""Tests for USB discovery and session opening (usb.core.find is patched)."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import usb.core

from x52mfd.protocol import PRODUCT_ID, VENDOR_ID
from x52mfd.session import X52ProSession
from x52mfd.usb_backend import (
    BackendError,
    DeviceInfo,
    find_device,
    list_devices,
    open_session,
    walk_device_tree,
)

HUB = 0x09


def _dev(bus, address, vendor=0x1D6B, product=0x0002, parent=None, port=0, hub=False, ports=()):
    return SimpleNamespace(
        bus=bus,
        address=address,
        idVendor=vendor,
        idProduct=product,
        parent=parent,
        port_number=port,
        port_numbers=ports,
        bDeviceClass=HUB if hub else 0,
    )


def _ref(bus, address):
    """A separate object standing for a parent, as pyusb hands out."""
    return SimpleNamespace(bus=bus, address=address)


@pytest.fixture
def topology():
    root1 = _dev(1, 1, hub=True)
    hub = _dev(1, 2, vendor=0x05E3, product=0x0610, parent=_ref(1, 1), port=1, hub=True, ports=(1,))
    mouse = _dev(1, 3, vendor=0x046D, product=0xC077, parent=_ref(1, 1), port=2, ports=(2,))
    nested = _dev(1, 4, vendor=VENDOR_ID, product=PRODUCT_ID, parent=_ref(1, 2), port=3, ports=(1, 3))
    root2 = _dev(2, 1, hub=True)
    second = _dev(2, 5, vendor=VENDOR_ID, product=PRODUCT_ID, parent=_ref(2, 1), port=1, ports=(1,))
    # enumeration order from libusb is not tree order
    return [second, mouse, nested, root2, hub, root1]


class TestWalkDeviceTree:

    def test_depth_first_order(self):
        tree = {"a": ["b", "e"], "b": ["c", "d"], "e": ["f"]}
        order = list(walk_device_tree(["a", "g"], lambda node: tree.get(node, [])))
        assert order == ["a", "b", "c", "d", "e", "f", "g"]

    def test_empty(self):
        assert list(walk_device_tree([], lambda node: [])) == []


class TestFindDevice:

    def test_finds_nested_device_first(self, topology):
        with patch("x52mfd.usb_backend.usb.core.find", return_value=iter(topology)):
            dev = find_device()
        assert (dev.bus, dev.address) == (1, 4)

    def test_not_found(self, topology):
        with patch("x52mfd.usb_backend.usb.core.find", return_value=iter(topology)):
            assert find_device(0x1234, 0x5678) is None

    def test_orphan_device_treated_as_root(self):
        orphan = _dev(3, 7, vendor=VENDOR_ID, product=PRODUCT_ID, parent=_ref(3, 1))
        with patch("x52mfd.usb_backend.usb.core.find", return_value=[orphan]):
            assert find_device() is orphan

    def test_no_backend(self):
        with patch(
            "x52mfd.usb_backend.usb.core.find",
            side_effect=usb.core.NoBackendError("No backend available"),
        ):
            with pytest.raises(BackendError):
                find_device()


class TestListDevices:

    def test_lists_every_x52(self, topology):
        with patch("x52mfd.usb_backend.usb.core.find", return_value=iter(topology)):
            infos = list_devices()
        assert infos == [
            DeviceInfo(id=1, name="X52 Pro", bus=1, address=4, port_path=(1, 3)),
            DeviceInfo(id=2, name="X52 Pro", bus=2, address=5, port_path=(1,)),
        ]
        assert infos[0].label == "1: X52 Pro (bus 1, device 4, port 1.3)"


class TestOpenSession:

    def test_wraps_given_device(self):
        device = MagicMock()
        session = open_session(device)
        assert isinstance(session, X52ProSession)
        assert session.device is device
        device.set_configuration.assert_called_once()

    def test_busy_configuration_is_ignored(self):
        device = MagicMock()
        device.set_configuration.side_effect = usb.core.USBError("Resource busy", errno=16)
        assert open_session(device).device is device

    def test_permission_denied(self):
        device = MagicMock()
        device.set_configuration.side_effect = usb.core.USBError("Access denied", errno=13)
        with pytest.raises(BackendError, match="udev"):
            open_session(device)

    def test_no_device(self):
        with patch("x52mfd.usb_backend.find_device", return_value=None):
            with pytest.raises(BackendError, match="No X52 Pro"):
                open_session()
