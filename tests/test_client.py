import base64

import pytest
import requests

from label_forge.client import LabelForgeClient


class FakeResponse:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error

    def json(self):
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def calls(monkeypatch):
    """Record outgoing requests; each returns the next queued payload."""
    log = {'requests': [], 'responses': []}

    def fake(method):
        def send(url, **kwargs):
            log['requests'].append((method, url, kwargs))
            return log['responses'].pop(0) if log['responses'] else FakeResponse({'success': True})
        return send

    for method in ('get', 'post', 'put', 'delete'):
        monkeypatch.setattr(requests, method, fake(method))
    return log


def test_headers_and_api_key(calls):
    client = LabelForgeClient('http://printer-host:5200/', api_key='secret')
    client.add_profile('Desk', dialect='B', vendor='zebra')

    method, url, kwargs = calls['requests'][0]
    assert (method, url) == ('post', 'http://printer-host:5200/api/printer-profiles')
    assert kwargs['headers']['Authorization'] == 'Bearer secret'
    assert kwargs['json'] == {'name': 'Desk', 'language': 'B', 'vendor': 'zebra',
                              'api_key': 'secret'}


def test_get_has_no_body(calls):
    client = LabelForgeClient(api_key='secret')
    client.list_jobs(printer_id='P1', limit=5)

    method, url, kwargs = calls['requests'][0]
    assert url == 'http://localhost:5200/api/jobs'
    assert kwargs['params'] == {'limit': 5, 'printer_id': 'P1'}
    assert 'json' not in kwargs


def test_compile_inline_profile(calls):
    LabelForgeClient().compile({'size': {'width': 50, 'height': 30}}, profile={'language': 'zpl'})
    body = calls['requests'][0][2]['json']
    assert body['profile'] == {'language': 'zpl'}
    assert 'profile_id' not in body


def test_calibrate_encodes_image(calls):
    LabelForgeClient().calibrate('P1', b'\x89PNG', detector='density')
    method, url, kwargs = calls['requests'][0]
    assert url.endswith('/api/printer-profiles/P1/calibrate')
    assert base64.b64decode(kwargs['json']['image_base64']) == b'\x89PNG'
    assert kwargs['json']['detector'] == 'density'


def test_render_barcode_decodes_png(calls):
    calls['responses'].append(FakeResponse({
        'success': True, 'image_base64': base64.b64encode(b'png-bytes').decode(),
    }))
    assert LabelForgeClient().render_barcode('GT-100') == b'png-bytes'


def test_render_barcode_failure(calls):
    calls['responses'].append(FakeResponse({'success': False, 'error': 'bad'}))
    assert LabelForgeClient().render_barcode('123', 'ean13') is None


def test_unwraps_lists(calls):
    calls['responses'].append(FakeResponse({'success': True, 'profiles': [{'id': 'P1'}]}))
    assert LabelForgeClient().list_profiles() == [{'id': 'P1'}]


def test_missing_profile_is_none(calls):
    calls['responses'].append(FakeResponse({'success': False, 'error': 'not found'}))
    assert LabelForgeClient().get_profile('NOPE') is None


def test_connection_error(monkeypatch):
    def refuse(url, **kwargs):
        raise requests.exceptions.ConnectionError()

    monkeypatch.setattr(requests, 'get', refuse)
    client = LabelForgeClient('http://offline:5200')
    assert client.health() == {'success': False, 'error': 'Cannot connect to http://offline:5200'}
    assert client.is_online() is False


def test_timeout(monkeypatch):
    def slow(url, **kwargs):
        raise requests.exceptions.Timeout()

    monkeypatch.setattr(requests, 'post', slow)
    assert LabelForgeClient().validate_barcode('123')['error'] == 'Request timeout'


def test_invalid_json(calls):
    calls['responses'].append(FakeResponse(error=ValueError('Expecting value')))
    assert LabelForgeClient().health() == {'success': False, 'error': 'Expecting value'}
