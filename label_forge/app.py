"""
Label Forge - Main Application
==============================

Label printing service: printer profiles, label compilation, barcode and
layout advice, printing over USB/serial and camera calibration.

Run: python -m label_forge
"""

import sys
import json
import base64
import asyncio
import logging
import threading
from collections import deque
from datetime import datetime
from pathlib import Path
from flask import Flask, request, jsonify
from flask_cors import CORS

from . import __version__
from .config import PORT, HOST, DEBUG, API_KEY, DATA_DIR, DIALECTS, JOB_HISTORY_LIMIT
from .dialects import compile_label, calibration_pattern
from .errors import LabelForgeError, TemplateError, TransportError, BarcodeRenderError
from .layout import (
    CATEGORIES, suggest_layout, align_elements, auto_space, category_layout, check_density,
)
from .models import (
    CalibrationResult, LabelSize, LabelTemplate, PrinterProfile, PrintJob, element_from_dict,
)
from .rendering import render_barcode_png, render_barcode_svg
from .suggestions import CorrectionRecord, suggest_barcode_fix, correction_patterns
from .symbology import Symbology
from .transport import TransportManager, discover
from .vision import analyze_frame, default_detector, load_frame

logger = logging.getLogger(__name__)

# =============================================================================
# Application Setup
# =============================================================================

app = Flask(__name__)
CORS(app)

_profiles: dict = {}
_corrections: list = []
_jobs: deque = deque(maxlen=JOB_HISTORY_LIMIT)

# One connection per profile, opened on first print. Flask serves requests on
# several threads; each profile lock serializes connect and writes.
_transports: dict = {}
_transport_locks: dict = {}
_transports_guard = threading.Lock()

# =============================================================================
# Storage Functions
# =============================================================================

def _get_data_file(name: str) -> Path:
    """Get path to data file."""
    data_dir = Path(DATA_DIR)
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / f'{name}.json'


def _load_profiles():
    """Load printer profiles from storage."""
    global _profiles
    try:
        path = _get_data_file('printer_profiles')
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                _profiles = {k: PrinterProfile.from_dict(v) for k, v in data.items()}
    except (OSError, ValueError, LabelForgeError) as e:
        logger.warning('Failed to load printer profiles: %s', e)


def _save_profiles():
    """Save printer profiles to storage."""
    try:
        path = _get_data_file('printer_profiles')
        with open(path, 'w', encoding='utf-8') as f:
            json.dump({k: v.to_dict() for k, v in _profiles.items()}, f, indent=2,
                      ensure_ascii=False)
    except OSError as e:
        logger.warning('Failed to save printer profiles: %s', e)


def _load_corrections():
    """Load barcode correction history from storage."""
    global _corrections
    try:
        path = _get_data_file('barcode_corrections')
        if path.exists():
            with open(path, 'r', encoding='utf-8') as f:
                _corrections = [CorrectionRecord.from_dict(r) for r in json.load(f)]
    except (OSError, ValueError, TypeError) as e:
        logger.warning('Failed to load barcode corrections: %s', e)


def _save_corrections():
    """Save barcode correction history to storage."""
    try:
        path = _get_data_file('barcode_corrections')
        with open(path, 'w', encoding='utf-8') as f:
            json.dump([r.to_dict() for r in _corrections], f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.warning('Failed to save barcode corrections: %s', e)


def load_storage():
    """Load all persisted state."""
    _load_profiles()
    _load_corrections()


def _check_api_key():
    """Validate API key from request."""
    data = request.get_json(silent=True) or {}
    auth_header = request.headers.get('Authorization', '')

    # Check body
    if data.get('api_key') == API_KEY:
        return True

    # Check header (Bearer token)
    if auth_header.startswith('Bearer ') and auth_header[7:] == API_KEY:
        return True

    return False


def _set_default(profile_id: str):
    """Make one profile the default, clearing the flag on all others."""
    for profile in _profiles.values():
        profile.is_default = profile.id == profile_id


def _transport_for(profile_id: str):
    """The profile's TransportManager and the lock that serializes its use."""
    with _transports_guard:
        if profile_id not in _transports:
            _transports[profile_id] = TransportManager()
            _transport_locks[profile_id] = threading.Lock()
        manager, lock = _transports[profile_id], _transport_locks[profile_id]
    return manager, lock


def _encode_commands(commands) -> dict:
    """JSON form of compiled output; binary dialects are base64 encoded."""
    if isinstance(commands, bytes):
        return {'commands': base64.b64encode(commands).decode('ascii'), 'encoding': 'base64'}
    return {'commands': commands, 'encoding': 'text'}


def _label_size(data: dict) -> LabelSize:
    return LabelSize.from_dict(data.get('size') or data.get('labelSize') or {})


def _elements(data: dict) -> list:
    elements = data.get('elements')
    if not isinstance(elements, list):
        raise TemplateError('elements list required')
    return [element_from_dict(e) for e in elements]


async def _send_to_printer(manager: TransportManager, commands, copies: int) -> int:
    """Connect if needed and send the compiled label ``copies`` times."""
    if not manager.connected:
        await manager.connect()
    total = 0
    for _ in range(copies):
        total += await manager.send(commands)
    return total


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.route('/api', methods=['GET'])
def api_info():
    """API info (JSON)."""
    return jsonify({
        'service': 'Label Forge',
        'version': __version__,
        'status': 'running',
        'dialects': DIALECTS,
        'endpoints': {
            'health': '/health',
            'profiles': '/api/printer-profiles',
            'compile': '/api/compile',
            'barcode': '/api/barcode/validate',
            'layout': '/api/layout/suggestions',
            'jobs': '/api/jobs',
            'discover': '/api/discover',
        }
    })


@app.route('/health', methods=['GET'])
def health():
    """Health check with system info."""
    import platform
    import socket as sock

    return jsonify({
        'status': 'online',
        'version': __version__,
        'hostname': sock.gethostname(),
        'platform': platform.system(),
        'python': sys.version.split()[0],
        'profiles_registered': len(_profiles),
        'timestamp': datetime.now().isoformat(),
    })


# =============================================================================
# Printer Profiles API
# =============================================================================

@app.route('/api/printer-profiles', methods=['GET'])
def list_profiles():
    """List all printer profiles."""
    return jsonify({
        'success': True,
        'profiles': [p.to_dict() for p in _profiles.values()],
        'count': len(_profiles)
    })


@app.route('/api/printer-profiles', methods=['POST'])
def add_profile():
    """Add a printer profile."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'Request body required'}), 400
    if not data.get('name'):
        return jsonify({'success': False, 'error': 'Profile name required'}), 400

    data = {k: v for k, v in data.items()
            if k not in ('api_key', 'id', 'createdAt', 'updatedAt', 'lastCalibrated')}
    try:
        profile = PrinterProfile.from_dict(data)
    except (LabelForgeError, TypeError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    _profiles[profile.id] = profile
    # First profile becomes the default
    if profile.is_default or len(_profiles) == 1:
        _set_default(profile.id)
    _save_profiles()

    logger.info('Added printer profile %s (%s, %s)', profile.id, profile.name,
                profile.dialect.value)
    return jsonify({
        'success': True,
        'profile': profile.to_dict(),
        'message': 'Printer profile added successfully'
    }), 201


@app.route('/api/printer-profiles/default', methods=['GET'])
def get_default_profile():
    """Get the default printer profile."""
    for profile in _profiles.values():
        if profile.is_default:
            return jsonify({'success': True, 'profile': profile.to_dict()})
    return jsonify({'success': False, 'error': 'No default printer profile'}), 404


@app.route('/api/printer-profiles/<profile_id>', methods=['GET'])
def get_profile(profile_id):
    """Get printer profile details."""
    profile = _profiles.get(profile_id)
    if not profile:
        return jsonify({'success': False, 'error': 'Printer profile not found'}), 404

    return jsonify({
        'success': True,
        'profile': profile.to_dict()
    })


@app.route('/api/printer-profiles/<profile_id>', methods=['PUT'])
def update_profile(profile_id):
    """Update printer profile settings."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    profile = _profiles.get(profile_id)
    if not profile:
        return jsonify({'success': False, 'error': 'Printer profile not found'}), 404

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'Request body required'}), 400

    merged = profile.to_dict()
    merged.update({k: v for k, v in data.items()
                   if k not in ('api_key', 'id', 'createdAt', 'created_at')})
    try:
        updated = PrinterProfile.from_dict(merged)
    except (LabelForgeError, TypeError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    updated.updated_at = datetime.now()
    _profiles[profile_id] = updated
    if updated.is_default:
        _set_default(profile_id)
    _save_profiles()

    return jsonify({
        'success': True,
        'profile': updated.to_dict()
    })


@app.route('/api/printer-profiles/<profile_id>', methods=['DELETE'])
def delete_profile(profile_id):
    """Delete a printer profile and close its connection."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    if profile_id not in _profiles:
        return jsonify({'success': False, 'error': 'Printer profile not found'}), 404

    with _transports_guard:
        manager = _transports.pop(profile_id, None)
        lock = _transport_locks.pop(profile_id, None)
    if manager is not None:
        with lock:
            asyncio.run(manager.disconnect())

    del _profiles[profile_id]
    _save_profiles()

    return jsonify({
        'success': True,
        'message': 'Printer profile deleted'
    })


@app.route('/api/printer-profiles/<profile_id>/set-default', methods=['POST'])
def set_default_profile(profile_id):
    """Make a profile the default."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    profile = _profiles.get(profile_id)
    if not profile:
        return jsonify({'success': False, 'error': 'Printer profile not found'}), 404

    _set_default(profile_id)
    profile.updated_at = datetime.now()
    _save_profiles()

    return jsonify({'success': True, 'profile': profile.to_dict()})


# =============================================================================
# Compile & Print
# =============================================================================

@app.route('/api/compile', methods=['POST'])
def compile_template():
    """Compile a template and data record into printer commands."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'Request body required'}), 400
    if not data.get('template'):
        return jsonify({'success': False, 'error': 'template required'}), 400

    if data.get('profile_id'):
        profile = _profiles.get(data['profile_id'])
        if not profile:
            return jsonify({'success': False, 'error': 'Printer profile not found'}), 404
    elif data.get('profile'):
        try:
            profile = PrinterProfile.from_dict(data['profile'])
        except (LabelForgeError, TypeError) as e:
            return jsonify({'success': False, 'error': str(e)}), 400
    else:
        return jsonify({'success': False, 'error': 'profile_id or profile required'}), 400

    try:
        template = LabelTemplate.from_dict(data['template'])
        commands = compile_label(template, profile, data.get('data') or {})
    except LabelForgeError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    return jsonify({
        'success': True,
        'language': profile.dialect.value,
        **_encode_commands(commands),
    })


@app.route('/api/printer-profiles/<profile_id>/print', methods=['POST'])
def print_label(profile_id):
    """Compile a label and send it to the profile's printer."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    profile = _profiles.get(profile_id)
    if not profile:
        return jsonify({'success': False, 'error': 'Printer profile not found'}), 404

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'Request body required'}), 400
    if not data.get('template'):
        return jsonify({'success': False, 'error': 'template required'}), 400

    try:
        copies = max(1, int(data.get('copies', 1)))
        template = LabelTemplate.from_dict(data['template'])
        commands = compile_label(template, profile, data.get('data') or {})
    except (TypeError, ValueError, LabelForgeError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    # Create job
    job = PrintJob(
        printer_id=profile_id,
        document_name=data.get('document_name') or template.name or 'Label',
        dialect=profile.dialect.value,
        copies=copies,
    )
    job.start()
    _jobs.append(job)

    manager, lock = _transport_for(profile_id)
    try:
        with lock:
            sent = asyncio.run(_send_to_printer(manager, commands, job.copies))
    except TransportError as e:
        job.fail(str(e))
        logger.error('Print job %s failed: %s', job.id, e)
        return jsonify({'success': False, 'error': str(e), 'job': job.to_dict()}), 500

    job.complete(sent)
    logger.info('Print job %s sent %d bytes to %s', job.id, sent, profile.name)
    return jsonify({'success': True, 'job': job.to_dict()})


# =============================================================================
# Calibration
# =============================================================================

@app.route('/api/printer-profiles/<profile_id>/calibration-pattern', methods=['GET'])
def get_calibration_pattern(profile_id):
    """Printer commands for the calibration mark pattern."""
    profile = _profiles.get(profile_id)
    if not profile:
        return jsonify({'success': False, 'error': 'Printer profile not found'}), 404

    try:
        commands = calibration_pattern(profile)
    except LabelForgeError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    return jsonify({'success': True, 'language': profile.dialect.value,
                    **_encode_commands(commands)})


@app.route('/api/printer-profiles/<profile_id>/calibrate', methods=['POST'])
def calibrate(profile_id):
    """Analyze a photo of the printed pattern. The result is not saved."""
    profile = _profiles.get(profile_id)
    if not profile:
        return jsonify({'success': False, 'error': 'Printer profile not found'}), 404

    data = request.get_json(silent=True)
    if not data or not data.get('image_base64'):
        return jsonify({'success': False, 'error': 'image_base64 required'}), 400

    try:
        detector = default_detector(data.get('detector'))
        frame = load_frame(base64.b64decode(data['image_base64']))
    except (ValueError, OSError) as e:
        return jsonify({'success': False, 'error': f'Invalid calibration image: {e}'}), 400

    result = analyze_frame(frame, profile.label_width_mm, profile.label_height_mm,
                           profile.dpi, detector)
    return jsonify({'success': result.success, 'result': result.to_dict()})


@app.route('/api/printer-profiles/<profile_id>/calibration', methods=['POST'])
def accept_calibration(profile_id):
    """Store an accepted calibration offset on the profile."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    profile = _profiles.get(profile_id)
    if not profile:
        return jsonify({'success': False, 'error': 'Printer profile not found'}), 404

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'Request body required'}), 400

    try:
        result = CalibrationResult(
            success=True,
            offset_x=int(data.get('offsetX', data.get('offset_x', 0))),
            offset_y=int(data.get('offsetY', data.get('offset_y', 0))),
        )
        profile.apply_calibration(result, darkness=data.get('darkness'), speed=data.get('speed'))
    except (TypeError, ValueError, LabelForgeError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    _save_profiles()
    logger.info('Calibrated %s: offset %d,%d dots', profile.id, profile.offset_x,
                profile.offset_y)
    return jsonify({'success': True, 'profile': profile.to_dict()})


# =============================================================================
# Barcode API
# =============================================================================

@app.route('/api/barcode/validate', methods=['POST'])
def validate_barcode():
    """Validate a payload for a symbology and suggest a fix."""
    data = request.get_json(silent=True)
    if not data or 'data' not in data:
        return jsonify({'success': False, 'error': 'data required'}), 400

    suggestion = suggest_barcode_fix(str(data['data']), data.get('type', 'code128'))
    return jsonify({'success': True, 'suggestion': suggestion.to_dict()})


@app.route('/api/barcode/density', methods=['POST'])
def barcode_density():
    """Check whether a barcode scans reliably at a printed width."""
    data = request.get_json(silent=True)
    if not data or 'data' not in data or 'width' not in data:
        return jsonify({'success': False, 'error': 'data and width required'}), 400

    try:
        check = check_density(str(data['data']), data.get('type', 'code128'), float(data['width']))
    except (TypeError, ValueError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    return jsonify({'success': True, 'density': check.to_dict()})


@app.route('/api/barcode/render', methods=['POST'])
def render_barcode():
    """Render a barcode image (PNG as base64, or SVG)."""
    data = request.get_json(silent=True)
    if not data or 'data' not in data:
        return jsonify({'success': False, 'error': 'data required'}), 400

    output = data.get('format', 'png').lower()
    try:
        symbology = Symbology.parse(data.get('type', 'code128'))
        if output == 'svg':
            return jsonify({'success': True, 'format': 'svg',
                            'svg': render_barcode_svg(symbology, str(data['data']))})
        if output != 'png':
            return jsonify({'success': False, 'error': f'Unknown format: {output}'}), 400

        image = render_barcode_png(symbology, str(data['data']), dpi=int(data.get('dpi', 203)))
    except (ValueError, BarcodeRenderError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    return jsonify({'success': True, 'format': 'png',
                    'image_base64': base64.b64encode(image).decode('ascii')})


@app.route('/api/barcode-corrections', methods=['POST'])
def record_correction():
    """Record how the operator answered a barcode suggestion."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    data = request.get_json(silent=True)
    if not data or not data.get('original_data') or not data.get('symbology_used'):
        return jsonify({'success': False,
                        'error': 'original_data and symbology_used required'}), 400

    record = CorrectionRecord(
        original_data=str(data['original_data']),
        corrected_data=str(data.get('corrected_data') or data['original_data']),
        symbology_used=str(data['symbology_used']),
        symbology_suggested=data.get('symbology_suggested'),
        user_accepted=bool(data.get('user_accepted', False)),
    )
    _corrections.append(record)
    _save_corrections()

    return jsonify({'success': True, 'correction': record.to_dict()}), 201


@app.route('/api/barcode-corrections/patterns', methods=['GET'])
def list_correction_patterns():
    """Most common symbology corrections."""
    limit = request.args.get('limit', 20, type=int)
    patterns = correction_patterns(_corrections, limit)
    return jsonify({'success': True, 'patterns': patterns, 'count': len(patterns)})


# =============================================================================
# Layout API
# =============================================================================

@app.route('/api/layout/suggestions', methods=['POST'])
def layout_suggestions():
    """Advisory fixes for a template's elements."""
    data = request.get_json(silent=True)
    if not data or not data.get('template'):
        return jsonify({'success': False, 'error': 'template required'}), 400

    try:
        template = LabelTemplate.from_dict(data['template'])
    except TemplateError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    suggestions = suggest_layout(template.elements, template.size)
    return jsonify({
        'success': True,
        'suggestions': [s.to_dict() for s in suggestions],
        'count': len(suggestions)
    })


@app.route('/api/layout/align', methods=['POST'])
def layout_align():
    """Align elements to a shared edge or center line."""
    data = request.get_json(silent=True)
    if not data or not data.get('alignment'):
        return jsonify({'success': False, 'error': 'elements and alignment required'}), 400

    try:
        elements = align_elements(_elements(data), data['alignment'])
    except (TemplateError, ValueError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    return jsonify({'success': True, 'elements': [e.to_dict() for e in elements]})


@app.route('/api/layout/auto-space', methods=['POST'])
def layout_auto_space():
    """Distribute elements evenly within the label's safe zone."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'Request body required'}), 400

    try:
        elements = auto_space(_elements(data), _label_size(data),
                              data.get('direction', 'vertical'))
    except (TemplateError, ValueError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    return jsonify({'success': True, 'elements': [e.to_dict() for e in elements]})


@app.route('/api/layout/category/<name>', methods=['GET'])
def layout_category(name):
    """Starter layout for a product category."""
    width = request.args.get('width', 50, type=float)
    height = request.args.get('height', 30, type=float)

    elements = category_layout(name, LabelSize(width=width, height=height))
    return jsonify({
        'success': True,
        'category': name if name in CATEGORIES else 'product',
        'elements': [e.to_dict() for e in elements],
    })


# =============================================================================
# Job History
# =============================================================================

@app.route('/api/jobs', methods=['GET'])
def list_jobs():
    """List recent jobs."""
    limit = request.args.get('limit', 50, type=int)
    printer_id = request.args.get('printer_id')

    jobs = list(_jobs)
    if printer_id:
        jobs = [j for j in jobs if j.printer_id == printer_id]

    # Most recent first
    jobs = sorted(jobs, key=lambda j: j.created_at, reverse=True)[:limit]

    return jsonify({
        'success': True,
        'jobs': [j.to_dict() for j in jobs],
        'count': len(jobs)
    })


# =============================================================================
# Auto-discover Printers
# =============================================================================

@app.route('/api/discover', methods=['GET'])
def discover_printers():
    """List attached USB label printers and serial ports."""
    found = discover()
    return jsonify({
        'success': True,
        **found,
        'count': len(found['usb_printers']) + len(found['serial_ports'])
    })


# =============================================================================
# Main
# =============================================================================

def main():
    """Run the service."""
    from .logging_config import setup_logging

    setup_logging()
    load_storage()

    logger.info('Label Forge %s on %s:%d (data: %s)', __version__, HOST, PORT, DATA_DIR)
    logger.info('Loaded %d printer profile(s), %d barcode correction(s)',
                len(_profiles), len(_corrections))

    app.run(host=HOST, port=PORT, debug=DEBUG)


if __name__ == '__main__':
    main()
