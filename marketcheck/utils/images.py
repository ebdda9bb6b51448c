"""Image URL helpers for reliable product image loading.

`ImageResolver` picks the first loadable URL out of a preferred URL and an
ordered list of fallback templates. The rest of the module is small pure
helpers used by the service and the UI: candidate URL builders, the inline
SVG placeholder and responsive size/format variants.
"""
import asyncio
import base64
import binascii
import logging
import re
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Awaitable, Callable, Dict, Iterable, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, unquote_to_bytes, urlsplit
from xml.sax.saxutils import escape

import requests

from .. import config
from .cache import SimpleTTLCache

logger = logging.getLogger(__name__)

PRIMARY_TEMPLATE = 'https://picsum.photos/400/300?random='
SECONDARY_TEMPLATE = 'https://via.placeholder.com/400x300/e2e8f0/64748b?text=Product+'

DEFAULT_PLACEHOLDER_TEXT = 'Product Image'
DEFAULT_PLACEHOLDER = (
    'data:image/svg+xml;base64,PHN2ZyB3aWR0aD0iNDAwIiBoZWlnaHQ9IjMwMCIgdmlld0JveD0iMCAwIDQwMCAzMDAiIGZpbGw9Im5vbmUiIHht'
    'bG5zPSJodHRwOi8vd3d3LnczLm9yZy8yMDAwL3N2ZyI+CjxyZWN0IHdpZHRoPSI0MDAiIGhlaWdodD0iMzAwIiBmaWxsPSIjZjFmNWY5Ii8+Cjx0'
    'ZXh0IHg9IjIwMCIgeT0iMTUwIiB0ZXh0LWFuY2hvcj0ibWlkZGxlIiBmaWxsPSIjNjQ3NDhiIiBmb250LWZhbWlseT0ic2Fucy1zZXJpZiIgZm9u'
    'dC1zaXplPSIxNiI+UHJvZHVjdCBJbWFnZTwvdGV4dD4KPC9zdmc+'
)

DEFAULT_CANDIDATES = (PRIMARY_TEMPLATE, SECONDARY_TEMPLATE, DEFAULT_PLACEHOLDER)

SVG_TEMPLATE = '\n'.join([
    '<svg width="400" height="300" viewBox="0 0 400 300" fill="none" xmlns="http://www.w3.org/2000/svg">',
    '<rect width="400" height="300" fill="#f1f5f9"/>',
    '<text x="200" y="150" text-anchor="middle" fill="#64748b" font-family="sans-serif" font-size="16">{text}</text>',
    '</svg>',
])

Probe = Callable[[str], Awaitable[bool]]

# code points XML 1.0 forbids, plus lone surrogates that cannot be UTF-8 encoded
INVALID_XML_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]')


def generate_image_url(index: int = 1) -> str:
    return f'{PRIMARY_TEMPLATE}{index}'


def generate_fallback_image_url(index: int = 1) -> str:
    return f'{SECONDARY_TEMPLATE}{index}'


def generate_svg_placeholder(text: str = DEFAULT_PLACEHOLDER_TEXT) -> str:
    """Return a base64 SVG data URI with `text` centered on a neutral card.

    Characters XML cannot carry are dropped and the rest is escaped, so any
    string yields a well-formed image.
    """
    caption = INVALID_XML_CHARS.sub('', text or '')
    svg = SVG_TEMPLATE.format(text=escape(caption, {'"': '&quot;', "'": '&apos;'}))
    return 'data:image/svg+xml;base64,' + base64.b64encode(svg.encode('utf-8')).decode('ascii')


def _with_format(url: str, fmt: str) -> str:
    if ('format', fmt) in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        return url
    return url + f'&format={fmt}'


def generate_responsive_image_urls(base_url: str) -> Dict[str, str]:
    """Size and format variants of a 400x300 image URL.

    URLs without the `400/300` segment come back unchanged for small/large.
    """
    return {
        'small': base_url.replace('400/300', '200/150'),
        'medium': base_url,
        'large': base_url.replace('400/300', '800/600'),
        'webp': _with_format(base_url, 'webp'),
        'avif': _with_format(base_url, 'avif'),
    }


def decode_data_uri(uri: str) -> Optional[Tuple[str, bytes]]:
    """Split a `data:` URI into (media type, payload bytes); None if malformed."""
    if not uri or not uri.startswith('data:'):
        return None
    header, sep, payload = uri[5:].partition(',')
    if not sep:
        return None
    params = header.split(';')
    media_type = (params[0] or 'text/plain').strip().lower()
    if 'base64' in params[1:]:
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            return None
    else:
        data = unquote_to_bytes(payload)
    return media_type, data


def is_image_data_uri(uri: str) -> bool:
    decoded = decode_data_uri(uri)
    if decoded is None:
        return False
    media_type, data = decoded
    return media_type.startswith('image/') and len(data) > 0


class FallbackCandidates:
    """Ordered fallback templates; the last one must always load."""

    def __init__(self, templates: Iterable[str] = DEFAULT_CANDIDATES):
        self.templates: Tuple[str, ...] = tuple(templates)
        if not self.templates:
            raise ValueError('at least one fallback candidate is required')
        if not is_image_data_uri(self.templates[-1]):
            raise ValueError('the last fallback candidate must be an inline image data URI')

    @property
    def terminal(self) -> str:
        return self.templates[-1]

    def urls(self, index: int = 1) -> Sequence[str]:
        """Non-terminal candidate URLs for `index`, in preference order."""
        return [f'{t}{index}' for t in self.templates[:-1]]

    def __len__(self) -> int:
        return len(self.templates)


class ImageResolver:
    """Resolve a preferred image URL to one that loads.

    `probe` is an async callable returning True when a URL loads. Probes run
    one at a time in candidate order; a probe that raises or runs past
    `timeout` seconds counts as a failure.
    """

    def __init__(self, probe: Probe, candidates: Optional[FallbackCandidates] = None,
                 timeout: float = None):
        self.probe = probe
        self.candidates = candidates if candidates is not None else FallbackCandidates()
        self.timeout = config.PROBE_TIMEOUT if timeout is None else timeout

    async def check(self, url: str) -> bool:
        try:
            return bool(await asyncio.wait_for(self.probe(url), timeout=self.timeout))
        except asyncio.TimeoutError:
            logger.debug('probe timed out after %ss: %s', self.timeout, url)
        except Exception:
            logger.debug('probe failed: %s', url, exc_info=True)
        return False

    async def resolve(self, preferred_url: str, index: int = 1) -> str:
        if await self.check(preferred_url):
            return preferred_url

        for url in self.candidates.urls(index):
            if await self.check(url):
                logger.info('using fallback image %s for %s', url, preferred_url)
                return url

        logger.info('no candidate loaded for %s; using inline placeholder', preferred_url)
        return self.candidates.terminal


# preloaded image bytes keyed by URL
PRELOAD_CACHE = SimpleTTLCache(ttl=config.PRELOAD_TTL, max_entries=config.CACHE_MAX_ENTRIES)

_preload_executor: Optional[ThreadPoolExecutor] = None


def fetch_image_bytes(url: str) -> bytes:
    resp = requests.get(url, timeout=config.HTTP_TIMEOUT)
    resp.raise_for_status()
    return resp.content


def _preload_one(url: str, store: SimpleTTLCache, fetch: Callable[[str], bytes]):
    try:
        if url.startswith('data:'):
            decoded = decode_data_uri(url)
            if decoded is None:
                return
            data = decoded[1]
        else:
            data = fetch(url)
        store.set(url, data)
    except Exception:
        logger.debug('preload failed: %s', url, exc_info=True)


def preload_images(urls: Iterable[str], store: SimpleTTLCache = None,
                   fetch: Callable[[str], bytes] = None, executor: Executor = None) -> None:
    """Warm `store` with the given images in the background. Never raises."""
    global _preload_executor
    store = PRELOAD_CACHE if store is None else store
    fetch = fetch or fetch_image_bytes
    if executor is None:
        if _preload_executor is None:
            _preload_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='preload')
        executor = _preload_executor
    for url in urls:
        try:
            executor.submit(_preload_one, url, store, fetch)
        except RuntimeError:
            logger.warning('preload executor unavailable; skipping %s', url)
