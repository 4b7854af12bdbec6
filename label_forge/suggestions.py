"""
Barcode Suggestions
===================

Forgiving barcode payload validation. Instead of rejecting a payload, every
check returns a BarcodeSuggestion describing what is wrong and, where
possible, a concrete fix with a confidence score. Nothing here raises; the
caller decides whether to apply, prompt or ignore.
"""

from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Iterable

from .symbology import (
    Symbology, REQUIRED_LENGTH, QR_MAX_CHARS, CODE128_MAX_CHARS,
    checksum_digit, verify_checksum,
)

_NAMES = {
    Symbology.CODE128: 'Code 128',
    Symbology.EAN13: 'EAN-13',
    Symbology.EAN8: 'EAN-8',
    Symbology.UPCA: 'UPC-A',
    Symbology.QRCODE: 'QR Code',
}


class SuggestionAction(str, Enum):
    NONE = 'none'
    PAD = 'pad'
    TRIM = 'trim'
    ADD_CHECKDIGIT = 'add_checkdigit'
    CHANGE_TYPE = 'change_type'


@dataclass
class BarcodeSuggestion:
    """Validation outcome with an optional proposed fix."""

    valid: bool
    original: str
    reason: str
    confidence: float
    action: SuggestionAction = SuggestionAction.NONE
    suggested_payload: Optional[str] = None
    suggested_symbology: Optional[Symbology] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'valid': self.valid,
            'original': self.original,
            'action': self.action.value,
            'reason': self.reason,
            'confidence': self.confidence,
            'severity': suggestion_severity(self),
        }
        if self.suggested_payload is not None:
            data['suggested'] = self.suggested_payload
        if self.suggested_symbology is not None:
            data['newType'] = self.suggested_symbology.value
        return data


def _is_ascii(text: str) -> bool:
    return all(ord(c) < 128 for c in text)


def _with_check_digit(body: str, symbology: Symbology) -> str:
    return body + str(checksum_digit(body, symbology))


def _fit_to(payload: str, symbology: Symbology) -> Optional[str]:
    """Payload completed or corrected for a fixed-length symbology, if possible."""
    length = REQUIRED_LENGTH[symbology]
    if len(payload) == length - 1:
        return _with_check_digit(payload, symbology)
    if len(payload) == length:
        return _with_check_digit(payload[:-1], symbology)
    return None


def _switch(original: str, target: Symbology, reason: str, confidence: float,
            valid: bool = False, payload: Optional[str] = None) -> BarcodeSuggestion:
    return BarcodeSuggestion(
        valid=valid,
        original=original,
        reason=reason,
        confidence=confidence,
        action=SuggestionAction.CHANGE_TYPE,
        suggested_payload=payload,
        suggested_symbology=target,
    )


def _check_numeric(cleaned: str, symbology: Symbology) -> BarcodeSuggestion:
    name = _NAMES[symbology]
    length = REQUIRED_LENGTH[symbology]
    size = len(cleaned)

    if not cleaned.isdigit() or not _is_ascii(cleaned):
        if not _is_ascii(cleaned):
            return _switch(cleaned, Symbology.QRCODE,
                           f'{name} only supports digits. Use QR Code for Unicode text?',
                           0.9, payload=cleaned)
        return _switch(cleaned, Symbology.CODE128,
                       f'{name} only supports digits. Switch to Code 128 for alphanumeric data?',
                       0.95, payload=cleaned)

    if size == length - 1:
        check = checksum_digit(cleaned, symbology)
        return BarcodeSuggestion(
            valid=False,
            original=cleaned,
            reason=f'{name} needs {length} digits. Add check digit "{check}"?',
            confidence=0.98,
            action=SuggestionAction.ADD_CHECKDIGIT,
            suggested_payload=cleaned + str(check),
        )

    if size == length:
        if verify_checksum(cleaned, symbology):
            return BarcodeSuggestion(valid=True, original=cleaned,
                                     reason=f'Valid {name}', confidence=1.0)
        correct = _with_check_digit(cleaned[:-1], symbology)
        return BarcodeSuggestion(
            valid=False,
            original=cleaned,
            reason=f'Check digit incorrect. Should be "{correct[-1]}" not "{cleaned[-1]}"',
            confidence=0.99,
            action=SuggestionAction.ADD_CHECKDIGIT,
            suggested_payload=correct,
        )

    # Length belongs to another symbology
    if symbology == Symbology.EAN13 and size in (7, 8):
        return _switch(cleaned, Symbology.EAN8, f'Only {size} digits. Did you mean EAN-8?',
                       0.9, payload=_fit_to(cleaned, Symbology.EAN8))
    if symbology == Symbology.EAN8 and size >= 12:
        return _switch(cleaned, Symbology.EAN13,
                       f'{size} digits is too many for EAN-8. Use EAN-13?',
                       0.9, payload=_fit_to(cleaned, Symbology.EAN13))
    if symbology == Symbology.UPCA and size == 13:
        return _switch(cleaned, Symbology.EAN13, '13 digits is an EAN-13, not a UPC-A. Switch?',
                       0.9, payload=_fit_to(cleaned, Symbology.EAN13))

    if symbology == Symbology.UPCA:
        # Spreadsheets drop the leading number-system zero of UPC-A codes
        if size == length - 2:
            fixed = _with_check_digit('0' + cleaned, symbology)
            return BarcodeSuggestion(
                valid=False,
                original=cleaned,
                reason=f'UPC-A needs 12 digits. Restore the leading zero and add check digit "{fixed[-1]}"?',
                confidence=0.95,
                action=SuggestionAction.ADD_CHECKDIGIT,
                suggested_payload=fixed,
            )
        if size < length - 1:
            padded = cleaned.zfill(length - 1)
            fixed = _with_check_digit(padded, symbology)
            return BarcodeSuggestion(
                valid=False,
                original=cleaned,
                reason=f'UPC-A needs 12 digits. Pad with zeros to "{fixed}"?',
                confidence=0.7,
                action=SuggestionAction.PAD,
                suggested_payload=fixed,
            )
        return _switch(cleaned, Symbology.CODE128,
                       'Too many digits for UPC-A (max 12). Use Code 128 instead?',
                       0.85, payload=cleaned)

    return BarcodeSuggestion(
        valid=False,
        original=cleaned,
        reason=f'{name} requires {length - 1}-{length} digits, got {size}',
        confidence=0.8,
    )


def _check_code128(cleaned: str) -> BarcodeSuggestion:
    if not _is_ascii(cleaned):
        return _switch(cleaned, Symbology.QRCODE,
                       'Code 128 only supports ASCII. Use QR Code for Unicode?', 0.9,
                       payload=cleaned)

    if len(cleaned) > CODE128_MAX_CHARS:
        return _switch(cleaned, Symbology.QRCODE,
                       f'Data too long for Code 128 (max ~{CODE128_MAX_CHARS} chars). Use QR Code?',
                       0.95, payload=cleaned)

    # Retail scanners read UPC/EAN more reliably than digit-only Code 128
    if cleaned.isdigit():
        if len(cleaned) in (11, 12):
            return _switch(cleaned, Symbology.UPCA,
                           'This looks like a UPC-A. Switch for better scanning?', 0.7,
                           valid=True, payload=_fit_to(cleaned, Symbology.UPCA))
        if len(cleaned) == 13:
            return _switch(cleaned, Symbology.EAN13,
                           'This looks like an EAN-13. Switch for better scanning?', 0.7,
                           valid=True, payload=_fit_to(cleaned, Symbology.EAN13))

    return BarcodeSuggestion(valid=True, original=cleaned, reason='Valid Code 128', confidence=1.0)


def _check_qr(cleaned: str) -> BarcodeSuggestion:
    if len(cleaned) > QR_MAX_CHARS:
        return BarcodeSuggestion(
            valid=False,
            original=cleaned,
            reason=f'QR Code capacity is {QR_MAX_CHARS} characters. Trim the data?',
            confidence=1.0,
            action=SuggestionAction.TRIM,
            suggested_payload=cleaned[:QR_MAX_CHARS],
        )
    return BarcodeSuggestion(valid=True, original=cleaned, reason='Valid QR Code data', confidence=1.0)


def suggest_barcode_fix(payload: str, symbology) -> BarcodeSuggestion:
    """
    Validate a barcode payload and propose a fix.

    Args:
        payload: Raw payload as typed or scanned (surrounding whitespace ignored)
        symbology: Selected symbology (Symbology or its name)

    Returns:
        BarcodeSuggestion; ``valid`` may be True with a non-blocking
        suggestion attached
    """
    cleaned = (payload or '').strip()

    if not cleaned:
        return BarcodeSuggestion(valid=False, original=payload or '',
                                 reason='Barcode data is empty', confidence=1.0)

    try:
        symbology = Symbology.parse(symbology)
    except ValueError:
        return BarcodeSuggestion(valid=False, original=cleaned,
                                 reason=f'Unknown barcode type: {symbology!r}', confidence=1.0,
                                 action=SuggestionAction.CHANGE_TYPE,
                                 suggested_payload=cleaned,
                                 suggested_symbology=auto_detect_symbology(cleaned))

    if symbology in REQUIRED_LENGTH:
        return _check_numeric(cleaned, symbology)
    if symbology == Symbology.CODE128:
        return _check_code128(cleaned)
    return _check_qr(cleaned)


def auto_detect_symbology(payload: str) -> Symbology:
    """Best-guess symbology for a payload."""
    cleaned = (payload or '').strip()

    if cleaned.startswith('http') or len(cleaned) > 50 or not _is_ascii(cleaned):
        return Symbology.QRCODE

    if cleaned.isdigit():
        if len(cleaned) in (7, 8):
            return Symbology.EAN8
        if len(cleaned) in (11, 12):
            return Symbology.UPCA
        if len(cleaned) == 13:
            return Symbology.EAN13

    return Symbology.CODE128


def suggestion_severity(suggestion: BarcodeSuggestion) -> str:
    """UI severity: success, info, warning or error."""
    if suggestion.valid and suggestion.action == SuggestionAction.NONE:
        return 'success'
    if suggestion.valid and suggestion.action == SuggestionAction.CHANGE_TYPE:
        return 'info'
    if suggestion.suggested_payload and suggestion.confidence > 0.8:
        return 'warning'
    return 'error'


def apply_suggestion(suggestion: BarcodeSuggestion) -> Dict[str, Any]:
    """
    Resolve an accepted suggestion to the payload and symbology to print.

    Returns:
        Dict with 'payload' and 'symbology'
    """
    if suggestion.action == SuggestionAction.CHANGE_TYPE and suggestion.suggested_symbology:
        return {
            'payload': suggestion.suggested_payload or suggestion.original,
            'symbology': suggestion.suggested_symbology,
        }

    if suggestion.suggested_payload:
        return {
            'payload': suggestion.suggested_payload,
            'symbology': suggestion.suggested_symbology
                         or auto_detect_symbology(suggestion.suggested_payload),
        }

    return {
        'payload': suggestion.original,
        'symbology': auto_detect_symbology(suggestion.original),
    }


# =============================================================================
# Correction History
# =============================================================================

@dataclass
class CorrectionRecord:
    """An operator's response to a suggestion."""

    original_data: str
    corrected_data: str
    symbology_used: str
    symbology_suggested: Optional[str] = None
    user_accepted: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['created_at'] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CorrectionRecord':
        data = dict(data)
        if isinstance(data.get('created_at'), str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        return cls(**data)


def correction_patterns(records: Iterable[CorrectionRecord], limit: int = 20) -> List[Dict[str, Any]]:
    """
    Aggregate corrections into (used, suggested) symbology pairs.

    Returns:
        Most frequent pairs first, each with count and accepted_count
    """
    counts = defaultdict(lambda: {'count': 0, 'accepted_count': 0})
    for record in records:
        if not record.symbology_suggested:
            continue
        entry = counts[(record.symbology_used, record.symbology_suggested)]
        entry['count'] += 1
        if record.user_accepted:
            entry['accepted_count'] += 1

    patterns = [
        {'symbology_used': used, 'symbology_suggested': suggested, **entry}
        for (used, suggested), entry in counts.items()
    ]
    patterns.sort(key=lambda p: p['count'], reverse=True)
    return patterns[:limit]
