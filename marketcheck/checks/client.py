import time
import logging
from typing import Any, Dict, Optional, Tuple

import requests

from .. import config
from ..schemas import SearchResult

logger = logging.getLogger(__name__)


class SearchApiClient:
    """Thin requests wrapper around the marketplace search API."""

    def __init__(self, base_url: str = None, timeout: float = None, session: requests.Session = None):
        self.base_url = (base_url or config.API_URL).rstrip('/')
        self.timeout = config.HTTP_TIMEOUT if timeout is None else timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'User-Agent': f'marketcheck-verifier/{config.VERSION}',
        })

    def url(self, path: str) -> str:
        if path.startswith(('http://', 'https://')):
            return path
        return self.base_url + path

    def request(self, method: str, path: str, **kwargs) -> Tuple[requests.Response, int]:
        """Issue a request; returns the response and the elapsed time in ms."""
        kwargs.setdefault('timeout', self.timeout)
        start = time.monotonic()
        resp = self.session.request(method, self.url(path), **kwargs)
        elapsed_ms = int(round((time.monotonic() - start) * 1000))
        logger.debug('%s %s -> %s in %dms', method, path, resp.status_code, elapsed_ms)
        return resp, elapsed_ms

    def health(self) -> Dict[str, Any]:
        resp, _ = self.request('GET', '/api/health')
        resp.raise_for_status()
        return resp.json()

    def search(self, q: str = '', category: Optional[str] = None, min_price: Optional[float] = None,
               max_price: Optional[float] = None, sort_by: Optional[str] = None,
               sort_order: Optional[str] = None) -> SearchResult:
        params = {'q': q}
        for key, value in (('category', category), ('min_price', min_price), ('max_price', max_price),
                           ('sort_by', sort_by), ('sort_order', sort_order)):
            if value is not None:
                params[key] = value
        resp, _ = self.request('GET', '/api/search', params=params)
        resp.raise_for_status()
        return SearchResult(**resp.json())

    def categories(self) -> Dict[str, Any]:
        resp, _ = self.request('GET', '/api/categories')
        resp.raise_for_status()
        return resp.json()

    def voice_search(self, transcript: str) -> Dict[str, Any]:
        resp, _ = self.request('POST', '/api/voice-search', json={'transcript': transcript})
        resp.raise_for_status()
        return resp.json()
