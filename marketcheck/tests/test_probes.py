import asyncio
import time
from unittest.mock import MagicMock

import requests

from marketcheck.probes.http import HttpImageProbe
from marketcheck.probes.static import StaticImageProbe
from marketcheck.probes.browser import BrowserImageProbe
from marketcheck.utils.images import DEFAULT_PLACEHOLDER


def _session(status=200, content_type='image/jpeg', exc=None):
    session = MagicMock()
    session.headers = {}
    if exc is not None:
        session.get.side_effect = exc
    else:
        resp = MagicMock()
        resp.status_code = status
        resp.ok = 200 <= status < 300
        resp.headers = {'content-type': content_type}
        session.get.return_value = resp
    return session


class TestHttpProbe:

    def test_image_response_loads(self):
        probe = HttpImageProbe(session=_session(content_type='image/png; charset=binary'))
        assert asyncio.run(probe.probe('https://img.example/a.png')) is True

    def test_non_image_response_fails(self):
        probe = HttpImageProbe(session=_session(content_type='text/html'))
        assert asyncio.run(probe.probe('https://img.example/a.png')) is False

    def test_http_error_fails(self):
        probe = HttpImageProbe(session=_session(status=404))
        assert asyncio.run(probe.probe('https://img.example/missing.png')) is False

    def test_network_error_fails(self):
        probe = HttpImageProbe(session=_session(exc=requests.ConnectionError('down')))
        assert asyncio.run(probe.probe('https://img.example/a.png')) is False

    def test_data_uri_checked_locally(self):
        session = _session()
        probe = HttpImageProbe(session=session)
        assert asyncio.run(probe.probe(DEFAULT_PLACEHOLDER)) is True
        assert asyncio.run(probe.probe('data:text/plain,hi')) is False
        session.get.assert_not_called()

    def test_non_http_string_fails(self):
        session = _session()
        probe = HttpImageProbe(session=session)
        assert asyncio.run(probe.probe('ftp://x/a.png')) is False
        session.get.assert_not_called()

    def test_slow_server_times_out(self):
        session = _session()

        def slow(*args, **kwargs):
            time.sleep(0.5)
            return MagicMock(ok=True, headers={'content-type': 'image/png'})

        session.get.side_effect = slow
        probe = HttpImageProbe(timeout=0.05, session=session)
        assert asyncio.run(probe.probe('https://slow.example/a.png')) is False

    def test_sets_user_agent(self):
        session = _session()
        HttpImageProbe(session=session)
        assert session.headers['User-Agent'].startswith('marketcheck-probe/')


def test_static_probe_records_calls():
    probe = StaticImageProbe(['https://ok.example/1.png'])
    assert asyncio.run(probe('https://ok.example/1.png')) is True
    assert asyncio.run(probe('https://nope.example/1.png')) is False
    assert probe.calls == ['https://ok.example/1.png', 'https://nope.example/1.png']


class _FakePage:
    def __init__(self, result=True, exc=None):
        self.result = result
        self.exc = exc
        self.args = None

    async def evaluate(self, js, arg=None):
        self.args = arg
        if self.exc:
            raise self.exc
        return self.result


def test_browser_probe_passes_timeout_in_ms():
    probe = BrowserImageProbe(timeout=2.5)
    probe._page = _FakePage(result=True)
    assert asyncio.run(probe.probe('https://img.example/a.png')) is True
    assert probe._page.args == ['https://img.example/a.png', 2500]


def test_browser_probe_swallows_page_errors():
    probe = BrowserImageProbe()
    probe._page = _FakePage(exc=RuntimeError('target closed'))
    assert asyncio.run(probe.probe('https://img.example/a.png')) is False
