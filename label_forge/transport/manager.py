"""
Transport Manager
=================

Owns one printer connection over USB (pyusb) or serial (pyserial) and
exposes a uniform async send contract.

One manager per physical device. ``connect()`` and writes are not guarded
against concurrent use; callers serialize access to an instance. Blocking
pyusb/pyserial calls run in a worker thread so the event loop stays free.
There is no implicit timeout: wrap calls in ``asyncio.wait_for`` and call
``disconnect()`` to abandon a hung device.
"""

import asyncio
import errno
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, List, Union

import serial
import serial.tools.list_ports
import usb.core
import usb.util

from ..config import (
    PRINTER_VENDORS, KNOWN_PRINTERS, UNKNOWN_PRINTER, USB_PRINTER_CLASS,
    SERIAL_PORT, SERIAL_BAUD, DEFAULT_LABEL_WIDTH_MM, DEFAULT_LABEL_HEIGHT_MM,
    DEFAULT_DARKNESS, DEFAULT_SPEED, VENDORS,
)
from ..dialects import calibration_pattern
from ..errors import (
    TransportError, NotConnectedError, DeviceNotFoundError,
    PermissionDeniedError, NoTransportAvailableError,
)
from ..models import PrinterProfile

logger = logging.getLogger(__name__)

# Empty ZPL format: feeds one blank label
FEED_LABEL_COMMAND = '^XA^XZ'

# ZPL media auto-calibration
MEDIA_CALIBRATE_COMMAND = '~JC'

# libusb treats 0 as no timeout
USB_WRITE_TIMEOUT = 0

SERIAL_DETECTED = {'name': 'Serial', 'model': 'Serial Printer', 'dialect': 'zpl', 'dpi': 203}


class ConnectionState(str, Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'


class ConnectionKind(str, Enum):
    USB = 'usb'
    SERIAL = 'serial'


@dataclass
class DetectedPrinter:
    """Printer identified on connect."""

    vendor_id: int
    product_id: int
    vendor_name: str
    model: str
    dialect: str
    dpi: int
    kind: ConnectionKind
    port: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vendorId': self.vendor_id,
            'productId': self.product_id,
            'vendorName': self.vendor_name,
            'model': self.model,
            'language': self.dialect,
            'dpi': self.dpi,
            'connection': self.kind.value,
            'port': self.port,
        }

    def to_profile(self, label_width_mm: float = DEFAULT_LABEL_WIDTH_MM,
                   label_height_mm: float = DEFAULT_LABEL_HEIGHT_MM) -> PrinterProfile:
        """Default profile for a freshly detected printer."""
        vendor = self.vendor_name.lower()
        return PrinterProfile(
            id=f'{self.vendor_id:x}-{self.product_id:x}-{str(uuid.uuid4())[:8].upper()}',
            name=self.model,
            model=self.model,
            vendor=vendor if vendor in VENDORS else 'generic',
            dialect=self.dialect,
            dpi=self.dpi,
            label_width_mm=label_width_mm,
            label_height_mm=label_height_mm,
            darkness=DEFAULT_DARKNESS,
            speed=DEFAULT_SPEED,
        )


@dataclass
class PrinterStatus:
    """Connection snapshot."""

    connected: bool
    state: ConnectionState
    kind: Optional[ConnectionKind] = None
    vendor_name: Optional[str] = None
    model: Optional[str] = None
    dpi: Optional[int] = None
    port: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'connected': self.connected,
            'state': self.state.value,
            'connectionType': self.kind.value if self.kind else 'none',
            'vendorName': self.vendor_name,
            'model': self.model,
            'dpi': self.dpi,
            'port': self.port,
        }


# =============================================================================
# Host discovery
# =============================================================================

def usb_available() -> bool:
    """True when pyusb has a working backend (libusb) on this host."""
    try:
        usb.core.find()
    except usb.core.NoBackendError:
        return False
    return True


def serial_ports() -> List[str]:
    return [port.device for port in serial.tools.list_ports.comports()]


def find_usb_printers() -> list:
    """USB devices whose vendor is in the printer vendor table."""
    return [d for d in usb.core.find(find_all=True) if d.idVendor in PRINTER_VENDORS]


def identify(vendor_id: int, product_id: int, kind: ConnectionKind = ConnectionKind.USB,
             port: Optional[str] = None) -> DetectedPrinter:
    vendor = PRINTER_VENDORS.get(vendor_id, {'name': 'Unknown', 'dialect': 'zpl'})
    known = KNOWN_PRINTERS.get(product_id, UNKNOWN_PRINTER)
    return DetectedPrinter(
        vendor_id=vendor_id,
        product_id=product_id,
        vendor_name=vendor['name'],
        model=known['model'],
        dialect=vendor['dialect'],
        dpi=known['dpi'],
        kind=kind,
        port=port,
    )


def discover() -> Dict[str, Any]:
    """List attached USB printers and serial ports without opening them."""
    has_usb = usb_available()
    printers = []
    if has_usb:
        printers = [identify(d.idVendor, d.idProduct).to_dict() for d in find_usb_printers()]
    return {
        'usb_available': has_usb,
        'usb_printers': printers,
        'serial_ports': serial_ports(),
    }


def _is_bulk_out(endpoint) -> bool:
    return (usb.util.endpoint_direction(endpoint.bEndpointAddress) == usb.util.ENDPOINT_OUT
            and usb.util.endpoint_type(endpoint.bmAttributes) == usb.util.ENDPOINT_TYPE_BULK)


def find_printer_interface(config):
    """
    Pick the interface to print through.

    Prefers a printer-class interface with a bulk OUT endpoint, then any
    interface with one.

    Returns:
        (interface, endpoint) tuple
    """
    candidates = []
    for interface in config:
        endpoint = usb.util.find_descriptor(interface, custom_match=_is_bulk_out)
        if endpoint is not None:
            candidates.append((interface, endpoint))

    for interface, endpoint in candidates:
        if interface.bInterfaceClass == USB_PRINTER_CLASS:
            return interface, endpoint
    if candidates:
        return candidates[0]

    raise TransportError('No bulk OUT endpoint found on printer')


# =============================================================================
# Manager
# =============================================================================

class TransportManager:
    """Connection to one label printer."""

    def __init__(self, serial_port: Optional[str] = None, baud_rate: int = SERIAL_BAUD):
        self.serial_port = serial_port or SERIAL_PORT
        self.baud_rate = baud_rate

        self.state = ConnectionState.DISCONNECTED
        self.kind: Optional[ConnectionKind] = None
        self.detected: Optional[DetectedPrinter] = None

        self._device = None
        self._interface: Optional[int] = None
        self._endpoint: Optional[int] = None
        self._serial = None

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def status(self) -> PrinterStatus:
        detected = self.detected if self.connected else None
        return PrinterStatus(
            connected=self.connected,
            state=self.state,
            kind=self.kind if self.connected else None,
            vendor_name=detected.vendor_name if detected else None,
            model=detected.model if detected else None,
            dpi=detected.dpi if detected else None,
            port=detected.port if detected else None,
        )

    # =========================================================================
    # Connect
    # =========================================================================

    async def connect(self) -> DetectedPrinter:
        """
        Connect over USB, falling back to serial.

        Raises:
            NoTransportAvailableError: Neither transport exists on this host
            TransportError: Serial connect failed
        """
        usb_error = None
        if await asyncio.to_thread(usb_available):
            try:
                return await self.connect_usb()
            except TransportError as e:
                logger.info('USB connect failed (%s), trying serial', e)
                usb_error = e

        if self.serial_port or await asyncio.to_thread(serial_ports):
            return await self.connect_serial(self.baud_rate)

        raise NoTransportAvailableError('No USB printer or serial port available') from usb_error

    async def connect_usb(self) -> DetectedPrinter:
        """Open the first attached USB printer from the vendor table."""
        self._begin_connect()
        try:
            detected = await asyncio.to_thread(self._open_usb)
        except BaseException:
            self._reset()
            raise

        self._finish_connect(ConnectionKind.USB, detected)
        return detected

    async def connect_serial(self, baud_rate: int = SERIAL_BAUD,
                             port: Optional[str] = None) -> DetectedPrinter:
        """
        Open a serial port.

        Args:
            baud_rate: Line speed
            port: Device path; defaults to the configured port, then the first one found
        """
        self._begin_connect()
        try:
            detected = await asyncio.to_thread(self._open_serial, baud_rate, port)
        except BaseException:
            self._reset()
            raise

        self._finish_connect(ConnectionKind.SERIAL, detected)
        return detected

    def _begin_connect(self):
        if self.state != ConnectionState.DISCONNECTED:
            raise TransportError(f'Cannot connect while {self.state.value}; disconnect first')
        self.state = ConnectionState.CONNECTING

    def _finish_connect(self, kind: ConnectionKind, detected: DetectedPrinter):
        self.kind = kind
        self.detected = detected
        self.state = ConnectionState.CONNECTED
        logger.info('Connected to %s %s over %s', detected.vendor_name, detected.model, kind.value)

    def _open_usb(self) -> DetectedPrinter:
        try:
            devices = find_usb_printers()
        except usb.core.NoBackendError as e:
            raise NoTransportAvailableError('No USB backend available') from e

        if not devices:
            raise DeviceNotFoundError('No supported USB label printer found')

        device = devices[0]
        try:
            try:
                config = device.get_active_configuration()
            except usb.core.USBError:
                # Unconfigured device
                device.set_configuration()
                config = device.get_active_configuration()

            interface, endpoint = find_printer_interface(config)
            number = interface.bInterfaceNumber

            try:
                if device.is_kernel_driver_active(number):
                    device.detach_kernel_driver(number)
            except NotImplementedError:
                pass  # Windows and macOS backends

            usb.util.claim_interface(device, number)
        except usb.core.USBError as e:
            usb.util.dispose_resources(device)
            if e.errno == errno.EACCES:
                raise PermissionDeniedError(
                    f'Permission denied opening USB device {device.idVendor:04x}:{device.idProduct:04x}'
                ) from e
            raise TransportError(f'USB connect failed: {e}') from e
        except TransportError:
            usb.util.dispose_resources(device)
            raise

        self._device = device
        self._interface = number
        self._endpoint = endpoint.bEndpointAddress
        return identify(device.idVendor, device.idProduct)

    def _open_serial(self, baud_rate: int, port: Optional[str]) -> DetectedPrinter:
        if port is None:
            port = self.serial_port
        if port is None:
            ports = serial_ports()
            if not ports:
                raise DeviceNotFoundError('No serial port found')
            port = ports[0]

        try:
            handle = serial.Serial(port, baud_rate, timeout=None, write_timeout=None)
        except serial.SerialException as e:
            if getattr(e, 'errno', None) == errno.EACCES:
                raise PermissionDeniedError(f'Permission denied opening {port}') from e
            if getattr(e, 'errno', None) == errno.ENOENT:
                raise DeviceNotFoundError(f'Serial port {port} not found') from e
            raise TransportError(f'Serial connect failed on {port}: {e}') from e

        self._serial = handle
        return DetectedPrinter(
            vendor_id=0,
            product_id=0,
            vendor_name=SERIAL_DETECTED['name'],
            model=SERIAL_DETECTED['model'],
            dialect=SERIAL_DETECTED['dialect'],
            dpi=SERIAL_DETECTED['dpi'],
            kind=ConnectionKind.SERIAL,
            port=port,
        )

    # =========================================================================
    # Send
    # =========================================================================

    async def send_raw(self, data: bytes) -> int:
        """
        Write bytes to the printer.

        Returns:
            Number of bytes written

        Raises:
            NotConnectedError: No open connection
            TransportError: Write failed (the connection is closed)
        """
        if not self.connected:
            raise NotConnectedError('Printer not connected')

        try:
            written = await asyncio.to_thread(self._write, bytes(data))
        except TransportError:
            await self.disconnect()
            raise

        logger.debug('Sent %d bytes over %s', written, self.kind.value)
        return written

    async def send_command(self, command: str) -> int:
        """Write a text command, UTF-8 encoded."""
        return await self.send_raw(command.encode('utf-8'))

    async def send(self, payload: Union[str, bytes]) -> int:
        """Write compiled output of either dialect kind."""
        if isinstance(payload, str):
            return await self.send_command(payload)
        return await self.send_raw(payload)

    def _write(self, data: bytes) -> int:
        if self.kind == ConnectionKind.USB:
            try:
                return self._device.write(self._endpoint, data, timeout=USB_WRITE_TIMEOUT)
            except usb.core.USBError as e:
                raise TransportError(f'USB write failed: {e}') from e

        try:
            written = self._serial.write(data)
            self._serial.flush()
        except serial.SerialException as e:
            raise TransportError(f'Serial write failed: {e}') from e
        return written if written is not None else len(data)

    async def print_calibration_pattern(self, profile: PrinterProfile) -> int:
        return await self.send(calibration_pattern(profile))

    async def feed_label(self) -> int:
        return await self.send_command(FEED_LABEL_COMMAND)

    async def auto_calibrate_media(self) -> int:
        return await self.send_command(MEDIA_CALIBRATE_COMMAND)

    # =========================================================================
    # Disconnect
    # =========================================================================

    async def disconnect(self):
        """Release the connection. Safe to call in any state."""
        if self._serial is None and self._device is None:
            self._reset()
            return

        try:
            await asyncio.to_thread(self._release)
        finally:
            was = self.kind
            self._reset()
            logger.info('Disconnected (%s)', was.value if was else 'none')

    def _release(self):
        if self._serial is not None:
            try:
                self._serial.flush()
            except serial.SerialException as e:
                logger.warning('Serial flush failed on disconnect: %s', e)
            finally:
                self._serial.close()

        if self._device is not None:
            try:
                if self._interface is not None:
                    usb.util.release_interface(self._device, self._interface)
            except usb.core.USBError as e:
                logger.warning('USB interface release failed: %s', e)
            finally:
                usb.util.dispose_resources(self._device)

    def _reset(self):
        self.state = ConnectionState.DISCONNECTED
        self.kind = None
        self.detected = None
        self._device = None
        self._interface = None
        self._endpoint = None
        self._serial = None
