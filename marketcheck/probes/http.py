import asyncio
import logging

import requests

from .. import config
from ..utils.images import is_image_data_uri
from .base import ImageProbe

logger = logging.getLogger(__name__)


class HttpImageProbe(ImageProbe):
    """Probe a URL with a streamed GET; it loads if the server answers 2xx
    with an image content type.

    The request runs in a worker thread. On timeout the thread is left to
    finish on its own and its answer is discarded.
    """

    def __init__(self, timeout: float = None, session: requests.Session = None):
        self.timeout = config.PROBE_TIMEOUT if timeout is None else timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', f'marketcheck-probe/{config.VERSION}')

    def _fetch(self, url: str) -> bool:
        resp = self.session.get(url, stream=True, timeout=self.timeout, allow_redirects=True)
        try:
            if not resp.ok:
                logger.debug('probe got HTTP %s for %s', resp.status_code, url)
                return False
            content_type = (resp.headers.get('content-type') or '').split(';')[0].strip().lower()
            return content_type.startswith('image/')
        finally:
            resp.close()

    async def probe(self, url: str) -> bool:
        if url.startswith('data:'):
            return is_image_data_uri(url)
        if not url.startswith(('http://', 'https://')):
            logger.debug('not an http(s) url: %r', url)
            return False

        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(loop.run_in_executor(None, self._fetch, url), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug('probe timed out: %s', url)
        except requests.RequestException as exc:
            logger.debug('probe request failed for %s: %s', url, exc)
        return False
