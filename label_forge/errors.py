"""
Errors
======

Exception hierarchy. Validation and calibration problems are reported as
structured results instead; only hardware, configuration and malformed input
raise.
"""


class LabelForgeError(Exception):
    """Base class for all Label Forge errors."""


class TemplateError(LabelForgeError):
    """Malformed label template or element."""


class ProfileError(LabelForgeError):
    """Malformed or unsupported printer profile."""


class UnsupportedDialectError(LabelForgeError):
    """Dialect unknown, or operation not available for the dialect."""


class BarcodeRenderError(LabelForgeError):
    """Barcode image could not be generated for the payload."""


class TransportError(LabelForgeError):
    """Printer connection or transfer failed."""


class NotConnectedError(TransportError):
    """Send attempted without an open connection."""


class DeviceNotFoundError(TransportError):
    """No matching printer device found on the host."""


class PermissionDeniedError(TransportError):
    """Host refused access to the device."""


class NoTransportAvailableError(TransportError):
    """Neither USB nor serial transport exists on this host."""
