"""
Label Forge
===========

Label printer command generation, connection management and calibration.

Supports:
- Zebra/Godex label printers (via ZPL)
- Eltron label printers (via EPL2)
- TSC label printers (via TSPL)
- Dymo LabelWriter printers (via DieCutLabel XML)
- Brother P-touch printers (via ESC/P raster commands)

Usage:
    python -m label_forge

API Endpoints:
    GET  /api/printer-profiles              - List printer profiles
    POST /api/compile                       - Compile a label template
    POST /api/printer-profiles/{id}/print   - Compile and send to printer
    POST /api/printer-profiles/{id}/calibrate - Analyze calibration photo
    POST /api/barcode/validate              - Barcode payload suggestions
    POST /api/layout/suggestions            - Layout advice
"""

__version__ = '1.0.0'
__author__ = 'Label Forge Contributors'
