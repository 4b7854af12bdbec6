"""
Label Forge Transport
=====================

USB and serial printer connections.
"""

from .manager import (
    ConnectionState, ConnectionKind, DetectedPrinter, PrinterStatus, TransportManager,
    discover, identify, usb_available, serial_ports, find_usb_printers,
)

__all__ = [
    'ConnectionState', 'ConnectionKind', 'DetectedPrinter', 'PrinterStatus',
    'TransportManager', 'discover', 'identify', 'usb_available', 'serial_ports',
    'find_usb_printers',
]
