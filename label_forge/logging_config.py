"""
Logging setup for the service entry points.
"""

import logging
import sys

from .config import LOG_LEVEL

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure the root logger once; repeated calls only change the level."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # pyusb is chatty at DEBUG
    logging.getLogger('usb').setLevel(logging.WARNING)
