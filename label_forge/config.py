"""
Label Forge Configuration
"""

import os

# =============================================================================
# Server Configuration
# =============================================================================

PORT = int(os.environ.get('LABEL_FORGE_PORT', 5200))
HOST = os.environ.get('LABEL_FORGE_HOST', '0.0.0.0')
DEBUG = os.environ.get('LABEL_FORGE_DEBUG', 'false').lower() == 'true'

# API Key for authentication
API_KEY = os.environ.get('LABEL_FORGE_API_KEY', 'label-forge-2026')

LOG_LEVEL = os.environ.get('LABEL_FORGE_LOG_LEVEL', 'INFO').upper()

# =============================================================================
# Transport Defaults
# =============================================================================

# Serial port used when the caller does not pick one (e.g. /dev/ttyUSB0, COM3)
SERIAL_PORT = os.environ.get('LABEL_FORGE_SERIAL_PORT') or None
SERIAL_BAUD = int(os.environ.get('LABEL_FORGE_SERIAL_BAUD', 9600))

# USB interface class for printers
USB_PRINTER_CLASS = 7

# =============================================================================
# Label Defaults
# =============================================================================

DEFAULT_DPI = 203
DEFAULT_DARKNESS = 15
DEFAULT_SPEED = 4
DEFAULT_LABEL_WIDTH_MM = 50
DEFAULT_LABEL_HEIGHT_MM = 30

# Unprintable edge on most thermal printers
SAFE_MARGIN_MM = 2

DEFAULT_CURRENCY_SYMBOL = os.environ.get('LABEL_FORGE_CURRENCY', '₹')

# =============================================================================
# Calibration
# =============================================================================

# 'hough' (OpenCV line detection) or 'density' (numpy dark-pixel scan)
VISION_DETECTOR = os.environ.get('LABEL_FORGE_VISION_DETECTOR', 'hough').lower()

# =============================================================================
# Printer Dialects
# =============================================================================

DIALECTS = {
    'zpl': {
        'name': 'Zebra Programming Language',
        'letter': 'A',
        'binary': False,
        'supports_calibration_pattern': True,
    },
    'epl': {
        'name': 'Eltron Programming Language (EPL2)',
        'letter': 'B',
        'binary': False,
        'supports_calibration_pattern': False,
    },
    'tspl': {
        'name': 'TSC Printer Language',
        'letter': 'C',
        'binary': False,
        'supports_calibration_pattern': False,
    },
    'dymo': {
        'name': 'Dymo DieCutLabel XML',
        'letter': 'D',
        'binary': False,
        'supports_calibration_pattern': False,
    },
    'bplc': {
        'name': 'Brother P-touch Command (ESC/P)',
        'letter': 'E',
        'binary': True,
        'supports_calibration_pattern': False,
    },
}

VENDORS = ('zebra', 'tsc', 'godex', 'brother', 'dymo', 'generic')
SUPPORTED_DPI = (203, 300, 600)

# =============================================================================
# USB Identification
# =============================================================================

PRINTER_VENDORS = {
    0x0a5f: {'name': 'Zebra', 'dialect': 'zpl'},
    0x0dd4: {'name': 'TSC', 'dialect': 'tspl'},
    0x195d: {'name': 'Godex', 'dialect': 'zpl'},
    0x04f9: {'name': 'Brother', 'dialect': 'bplc'},
    0x0922: {'name': 'Dymo', 'dialect': 'dymo'},
    0x0c2e: {'name': 'Honeywell', 'dialect': 'zpl'},
    0x0828: {'name': 'Sato', 'dialect': 'zpl'},
}

KNOWN_PRINTERS = {
    # Zebra
    0x0100: {'model': 'Zebra ZD420', 'dpi': 203},
    0x0101: {'model': 'Zebra ZD420', 'dpi': 300},
    0x0200: {'model': 'Zebra ZD620', 'dpi': 203},
    0x0201: {'model': 'Zebra ZD620', 'dpi': 300},
    0x0300: {'model': 'Zebra ZT410', 'dpi': 203},
    0x0301: {'model': 'Zebra ZT410', 'dpi': 300},
    0x0302: {'model': 'Zebra ZT410', 'dpi': 600},
    # TSC
    0x0001: {'model': 'TSC TE200', 'dpi': 203},
    0x0002: {'model': 'TSC TE300', 'dpi': 300},
    0x0003: {'model': 'TSC TTP-244', 'dpi': 203},
    # Dymo
    0x1001: {'model': 'Dymo LabelWriter 450', 'dpi': 300},
    0x1002: {'model': 'Dymo LabelWriter 550', 'dpi': 300},
}

UNKNOWN_PRINTER = {'model': 'Unknown', 'dpi': 203}

# =============================================================================
# Storage Configuration
# =============================================================================

# Where to store printer profiles and correction history
DATA_DIR = os.environ.get('LABEL_FORGE_DATA_DIR', os.path.expanduser('~/.label_forge'))

# Job history kept in memory
JOB_HISTORY_LIMIT = 500
