"""
Shared fixtures: templates, profiles, fake USB/serial devices and synthetic
calibration frames.
"""

import numpy as np
import pytest

from label_forge.models import (
    BarcodeElement, ElementKind, FontConfig, LabelSize, LabelTemplate, PrinterProfile,
    TextElement,
)
from label_forge.symbology import Symbology

# =============================================================================
# Labels
# =============================================================================


@pytest.fixture
def label_size():
    return LabelSize(width=50, height=30)


@pytest.fixture
def template(label_size):
    return LabelTemplate(
        size=label_size,
        name='Shelf',
        elements=[
            BarcodeElement(id='bc', x=5, y=5, width=40, height=10, order=0,
                           symbology=Symbology.CODE128),
            TextElement(id='name', kind=ElementKind.PRODUCT_NAME, x=5, y=17, order=1,
                        font=FontConfig(size=10, bold=True)),
            TextElement(id='price', kind=ElementKind.PRICE, x=30, y=22, order=2,
                        font=FontConfig(size=14), currency_symbol='$'),
        ],
    )


@pytest.fixture
def record():
    return {'name': 'Green Tea', 'price': '4.50', 'sku': 'GT-100'}


@pytest.fixture
def profile():
    return PrinterProfile(id='P1', name='Desk', vendor='zebra', dialect='zpl', dpi=203,
                          label_width_mm=50, label_height_mm=30)


# =============================================================================
# Fake devices
# =============================================================================


class FakeEndpoint:
    def __init__(self, address=0x01, attributes=0x02):
        self.bEndpointAddress = address
        self.bmAttributes = attributes


class FakeInterface:
    def __init__(self, number=0, interface_class=7, endpoints=None):
        self.bInterfaceNumber = number
        self.bInterfaceClass = interface_class
        self.endpoints = endpoints if endpoints is not None else [FakeEndpoint()]

    def __iter__(self):
        return iter(self.endpoints)


class FakeUsbDevice:
    def __init__(self, vendor_id=0x0a5f, product_id=0x0100, interfaces=None,
                 configured=True, kernel_driver=True):
        self.idVendor = vendor_id
        self.idProduct = product_id
        self.interfaces = interfaces if interfaces is not None else [FakeInterface()]
        self.configured = configured
        self.kernel_driver = kernel_driver
        self.detached = []
        self.written = []
        self.write_timeouts = []
        self.write_error = None

    def get_active_configuration(self):
        import usb.core
        if not self.configured:
            raise usb.core.USBError('Configuration not set')
        return self.interfaces

    def set_configuration(self):
        self.configured = True

    def is_kernel_driver_active(self, number):
        return self.kernel_driver

    def detach_kernel_driver(self, number):
        self.detached.append(number)

    def write(self, endpoint, data, timeout=None):
        self.write_timeouts.append(timeout)
        if self.write_error is not None:
            raise self.write_error
        self.written.append((endpoint, bytes(data)))
        return len(data)


class FakeSerial:
    instances = []

    def __init__(self, port, baudrate, timeout=None, write_timeout=None):
        self.port = port
        self.baudrate = baudrate
        self.written = []
        self.closed = False
        FakeSerial.instances.append(self)

    def write(self, data):
        self.written.append(bytes(data))
        return len(data)

    def flush(self):
        pass

    def close(self):
        self.closed = True


class FakePortInfo:
    def __init__(self, device):
        self.device = device


@pytest.fixture
def usb_env(monkeypatch):
    """
    Patch pyusb so a list of FakeUsbDevice is what the host sees.

    Yields the mutable device list and a dict of claim/release/dispose calls.
    """
    import usb.core
    import usb.util

    devices = []
    calls = {'claim': [], 'release': [], 'dispose': []}

    def find(find_all=False, **kwargs):
        if find_all:
            return iter(devices)
        return devices[0] if devices else None

    monkeypatch.setattr(usb.core, 'find', find)
    monkeypatch.setattr(usb.util, 'claim_interface',
                        lambda device, number: calls['claim'].append(number))
    monkeypatch.setattr(usb.util, 'release_interface',
                        lambda device, number: calls['release'].append(number))
    monkeypatch.setattr(usb.util, 'dispose_resources',
                        lambda device: calls['dispose'].append(device))
    return devices, calls


@pytest.fixture
def no_usb(monkeypatch):
    """Host without a libusb backend."""
    import usb.core

    def find(*args, **kwargs):
        raise usb.core.NoBackendError('No backend available')

    monkeypatch.setattr(usb.core, 'find', find)


@pytest.fixture
def serial_env(monkeypatch):
    """Patch pyserial; returns the mutable list of port names."""
    import serial
    import serial.tools.list_ports

    ports = []
    FakeSerial.instances = []
    monkeypatch.setattr(serial, 'Serial', FakeSerial)
    monkeypatch.setattr(serial.tools.list_ports, 'comports',
                        lambda: [FakePortInfo(p) for p in ports])
    return ports


# =============================================================================
# Calibration frames
# =============================================================================

# 50x30 mm label photographed at 20 px/mm
FRAME_WIDTH = 1000
FRAME_HEIGHT = 600
CROSS_HALF = 40
CROSS_THICKNESS = 6


def draw_frame(centers, width=FRAME_WIDTH, height=FRAME_HEIGHT):
    """White RGB frame with black crosshairs centered on ``centers``."""
    frame = np.full((height, width, 3), 255, dtype=np.uint8)
    half_t = CROSS_THICKNESS // 2
    for cx, cy in centers:
        frame[cy - half_t:cy + half_t, cx - CROSS_HALF:cx + CROSS_HALF] = 0
        frame[cy - CROSS_HALF:cy + CROSS_HALF, cx - half_t:cx + half_t] = 0
    return frame


def shifted_centers(dx, dy, width=FRAME_WIDTH, height=FRAME_HEIGHT):
    """Mark centers displaced by (dx, dy) px from their expected positions."""
    fractions = ((0.1, 0.1), (0.9, 0.1), (0.1, 0.9), (0.9, 0.9), (0.5, 0.5))
    return [(round(fx * width) + dx, round(fy * height) + dy) for fx, fy in fractions]


@pytest.fixture
def shifted_frame():
    """Pattern printed 13 px left and 8 px up of where it should be."""
    return draw_frame(shifted_centers(-13, -8))
