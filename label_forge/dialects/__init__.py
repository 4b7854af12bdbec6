"""
Label Forge Dialects
====================

Command-language compilers for the supported printer families.
"""

import logging
from typing import Optional, Dict, Any, Type

from .base import BaseDialect
from .zpl import ZPLDialect
from .epl import EPLDialect
from .tspl import TSPLDialect
from .dymo import DymoDialect
from .bplc import BPLCDialect
from ..errors import UnsupportedDialectError, ProfileError
from ..models import Dialect, LabelTemplate, PrinterProfile

logger = logging.getLogger(__name__)

__all__ = [
    'BaseDialect', 'ZPLDialect', 'EPLDialect', 'TSPLDialect', 'DymoDialect', 'BPLCDialect',
    'DIALECT_COMPILERS', 'get_dialect', 'compile_label', 'calibration_pattern',
]

# Dialect registry
DIALECT_COMPILERS = {
    Dialect.ZPL: ZPLDialect,
    Dialect.EPL: EPLDialect,
    Dialect.TSPL: TSPLDialect,
    Dialect.DYMO: DymoDialect,
    Dialect.BPLC: BPLCDialect,
}


def get_dialect(dialect) -> Type[BaseDialect]:
    """Get compiler class by dialect name or letter."""
    try:
        return DIALECT_COMPILERS[Dialect.parse(dialect)]
    except (ProfileError, KeyError) as e:
        raise UnsupportedDialectError(f'Unsupported dialect: {dialect!r}') from e


def compile_label(template: LabelTemplate, profile: PrinterProfile,
                  data: Optional[Dict[str, Any]] = None):
    """
    Compile a template and data record for the profile's printer.

    Returns:
        str for text dialects, bytes for binary ones
    """
    compiler = get_dialect(profile.dialect)(profile)
    output = compiler.compile(template, data)
    logger.debug('Compiled %d elements to %s (%d %s)', len(template.elements),
                 profile.dialect.value, len(output), 'bytes' if compiler.binary else 'chars')
    return output


def calibration_pattern(profile: PrinterProfile):
    """Calibration mark pattern for the profile's printer (ZPL only)."""
    return get_dialect(profile.dialect)(profile).calibration_pattern()
