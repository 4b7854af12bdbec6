"""
Label Forge Client
==================

Python SDK for the Label Forge service.

Usage:
    from label_forge.client import LabelForgeClient

    client = LabelForgeClient('http://localhost:5200', api_key='your-key')

    # Register a printer
    result = client.add_profile('Front desk', dialect='zpl', vendor='zebra')
    profile_id = result['profile']['id']

    # Print a label
    job = client.print_label(profile_id, template, {'productName': 'Tea', 'price': '120'})

    # Check a barcode before printing
    client.validate_barcode('590123412345', 'ean13')
"""

import base64
import requests
from typing import Dict, Any, Optional, List


class LabelForgeClient:
    """Client for the Label Forge service."""

    def __init__(self, base_url: str = 'http://localhost:5200', api_key: str = None):
        """
        Initialize client.

        Args:
            base_url: Base URL of the service
            api_key: API key for authentication
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        """Get request headers."""
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        return headers

    def _request(self, method: str, endpoint: str, data: Dict = None,
                 params: Dict = None) -> Dict[str, Any]:
        """Make API request."""
        url = f'{self.base_url}{endpoint}'

        if data is not None and self.api_key:
            data['api_key'] = self.api_key

        try:
            if method == 'GET':
                response = requests.get(url, params=params, headers=self._headers(), timeout=30)
            elif method == 'POST':
                response = requests.post(url, json=data, headers=self._headers(), timeout=60)
            elif method == 'PUT':
                response = requests.put(url, json=data, headers=self._headers(), timeout=30)
            elif method == 'DELETE':
                response = requests.delete(url, headers=self._headers(), timeout=30)
            else:
                raise ValueError(f'Unknown method: {method}')

            return response.json()

        except requests.exceptions.Timeout:
            return {'success': False, 'error': 'Request timeout'}
        except requests.exceptions.ConnectionError:
            return {'success': False, 'error': f'Cannot connect to {self.base_url}'}
        except ValueError as e:
            return {'success': False, 'error': str(e)}

    # =========================================================================
    # Health
    # =========================================================================

    def health(self) -> Dict[str, Any]:
        """Check service health."""
        return self._request('GET', '/health')

    def is_online(self) -> bool:
        """Check if service is online."""
        result = self.health()
        return result.get('status') == 'online'

    # =========================================================================
    # Printer Profiles
    # =========================================================================

    def list_profiles(self) -> List[Dict[str, Any]]:
        """List all printer profiles."""
        result = self._request('GET', '/api/printer-profiles')
        return result.get('profiles', [])

    def get_profile(self, profile_id: str) -> Optional[Dict[str, Any]]:
        """Get printer profile by ID."""
        result = self._request('GET', f'/api/printer-profiles/{profile_id}')
        return result.get('profile') if result.get('success') else None

    def get_default_profile(self) -> Optional[Dict[str, Any]]:
        """Get the default printer profile, if any."""
        result = self._request('GET', '/api/printer-profiles/default')
        return result.get('profile') if result.get('success') else None

    def add_profile(self, name: str, dialect: str = 'zpl', **kwargs) -> Dict[str, Any]:
        """
        Add a printer profile.

        Args:
            name: Display name
            dialect: zpl, epl, tspl, dymo or bplc (or A-E)
            **kwargs: Other profile fields (vendor, dpi, labelWidthMm, ...)
        """
        data = {
            'name': name,
            'language': dialect,
            **kwargs
        }
        return self._request('POST', '/api/printer-profiles', data)

    def update_profile(self, profile_id: str, **kwargs) -> Dict[str, Any]:
        """Update printer profile fields."""
        return self._request('PUT', f'/api/printer-profiles/{profile_id}', kwargs)

    def delete_profile(self, profile_id: str) -> Dict[str, Any]:
        """Delete a printer profile."""
        return self._request('DELETE', f'/api/printer-profiles/{profile_id}')

    def set_default_profile(self, profile_id: str) -> Dict[str, Any]:
        """Make a profile the default."""
        return self._request('POST', f'/api/printer-profiles/{profile_id}/set-default', {})

    # =========================================================================
    # Compile & Print
    # =========================================================================

    def compile(self, template: Dict[str, Any], data: Dict[str, Any] = None,
                profile_id: str = None, profile: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Compile a template without printing.

        Pass either a stored ``profile_id`` or an inline ``profile``.
        """
        body = {'template': template, 'data': data or {}}
        if profile_id:
            body['profile_id'] = profile_id
        else:
            body['profile'] = profile
        return self._request('POST', '/api/compile', body)

    def print_label(self, profile_id: str, template: Dict[str, Any],
                    data: Dict[str, Any] = None, copies: int = 1,
                    document_name: str = None) -> Dict[str, Any]:
        """Compile a label and send it to the profile's printer."""
        body = {'template': template, 'data': data or {}, 'copies': copies}
        if document_name:
            body['document_name'] = document_name
        return self._request('POST', f'/api/printer-profiles/{profile_id}/print', body)

    # =========================================================================
    # Calibration
    # =========================================================================

    def calibration_pattern(self, profile_id: str) -> Dict[str, Any]:
        """Get the calibration pattern commands for a profile."""
        return self._request('GET', f'/api/printer-profiles/{profile_id}/calibration-pattern')

    def calibrate(self, profile_id: str, image_data: bytes, detector: str = None) -> Dict[str, Any]:
        """
        Analyze a photo of the printed calibration pattern.

        Args:
            profile_id: Printer profile ID
            image_data: PNG/JPEG bytes, cropped to the label
            detector: 'hough' or 'density' (optional)
        """
        body = {'image_base64': base64.b64encode(image_data).decode('utf-8')}
        if detector:
            body['detector'] = detector
        return self._request('POST', f'/api/printer-profiles/{profile_id}/calibrate', body)

    def accept_calibration(self, profile_id: str, offset_x: int, offset_y: int,
                           darkness: int = None, speed: int = None) -> Dict[str, Any]:
        """Save a calibration offset on the profile."""
        body = {'offsetX': offset_x, 'offsetY': offset_y}
        if darkness is not None:
            body['darkness'] = darkness
        if speed is not None:
            body['speed'] = speed
        return self._request('POST', f'/api/printer-profiles/{profile_id}/calibration', body)

    # =========================================================================
    # Barcodes
    # =========================================================================

    def validate_barcode(self, payload: str, symbology: str = 'code128') -> Dict[str, Any]:
        """Validate a barcode payload and get a suggested fix."""
        return self._request('POST', '/api/barcode/validate', {'data': payload, 'type': symbology})

    def check_density(self, payload: str, symbology: str, width_mm: float) -> Dict[str, Any]:
        """Check barcode scannability at a printed width."""
        return self._request('POST', '/api/barcode/density',
                             {'data': payload, 'type': symbology, 'width': width_mm})

    def render_barcode(self, payload: str, symbology: str = 'code128',
                       output: str = 'png') -> Optional[bytes]:
        """Render a barcode. Returns PNG or SVG bytes, or None on error."""
        result = self._request('POST', '/api/barcode/render',
                               {'data': payload, 'type': symbology, 'format': output})
        if not result.get('success'):
            return None
        if output == 'svg':
            return result['svg'].encode('utf-8')
        return base64.b64decode(result['image_base64'])

    def record_correction(self, original_data: str, symbology_used: str,
                          corrected_data: str = None, symbology_suggested: str = None,
                          user_accepted: bool = False) -> Dict[str, Any]:
        """Record the operator's answer to a barcode suggestion."""
        return self._request('POST', '/api/barcode-corrections', {
            'original_data': original_data,
            'corrected_data': corrected_data or original_data,
            'symbology_used': symbology_used,
            'symbology_suggested': symbology_suggested,
            'user_accepted': user_accepted,
        })

    def correction_patterns(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most common symbology corrections."""
        result = self._request('GET', '/api/barcode-corrections/patterns', params={'limit': limit})
        return result.get('patterns', [])

    # =========================================================================
    # Layout
    # =========================================================================

    def layout_suggestions(self, template: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Get layout fixes for a template."""
        result = self._request('POST', '/api/layout/suggestions', {'template': template})
        return result.get('suggestions', [])

    def align(self, elements: List[Dict[str, Any]], alignment: str) -> Dict[str, Any]:
        """Align elements (left, center, right, top, middle, bottom)."""
        return self._request('POST', '/api/layout/align',
                             {'elements': elements, 'alignment': alignment})

    def auto_space(self, elements: List[Dict[str, Any]], size: Dict[str, float],
                   direction: str = 'vertical') -> Dict[str, Any]:
        """Distribute elements evenly across the label."""
        return self._request('POST', '/api/layout/auto-space',
                             {'elements': elements, 'size': size, 'direction': direction})

    def category_layout(self, category: str, width: float = 50,
                        height: float = 30) -> List[Dict[str, Any]]:
        """Starter elements for a product category."""
        result = self._request('GET', f'/api/layout/category/{category}',
                               params={'width': width, 'height': height})
        return result.get('elements', [])

    # =========================================================================
    # Jobs & Discovery
    # =========================================================================

    def list_jobs(self, printer_id: str = None, limit: int = 50) -> List[Dict[str, Any]]:
        """List recent print jobs."""
        params = {'limit': limit}
        if printer_id:
            params['printer_id'] = printer_id
        result = self._request('GET', '/api/jobs', params=params)
        return result.get('jobs', [])

    def discover(self) -> Dict[str, Any]:
        """List attached USB printers and serial ports on the service host."""
        return self._request('GET', '/api/discover')
