import asyncio
import base64
import time
from concurrent.futures import ThreadPoolExecutor
from xml.etree import ElementTree

import pytest

import marketcheck.utils.images as images
from marketcheck.probes.static import StaticImageProbe
from marketcheck.utils.cache import SimpleTTLCache


def _svg_text(uri):
    assert uri.startswith('data:image/svg+xml;base64,')
    svg = base64.b64decode(uri.split(',', 1)[1]).decode('utf-8')
    root = ElementTree.fromstring(svg)
    return root.find('{http://www.w3.org/2000/svg}text').text


def test_candidate_url_builders():
    assert images.generate_image_url(3) == 'https://picsum.photos/400/300?random=3'
    assert images.generate_image_url() == 'https://picsum.photos/400/300?random=1'
    assert images.generate_fallback_image_url(7) == 'https://via.placeholder.com/400x300/e2e8f0/64748b?text=Product+7'


def test_default_placeholder_matches_rendered_caption():
    assert images.generate_svg_placeholder() == images.DEFAULT_PLACEHOLDER
    assert images.is_image_data_uri(images.DEFAULT_PLACEHOLDER)


@pytest.mark.parametrize('caption', ['', 'Nike <Air> & "Max"', "it's", 'Café ☕', '</text></svg>'])
def test_placeholder_is_valid_svg_for_any_caption(caption):
    uri = images.generate_svg_placeholder(caption)
    assert (_svg_text(uri) or '') == caption


@pytest.mark.parametrize('caption,shown', [
    ('bell\x07', 'bell'),
    ('esc\x1b[0m', 'esc[0m'),
    ('nul\x00', 'nul'),
    ('bad \ud800 text', 'bad  text'),
    ('tab\tand\nnewline', 'tab\tand\nnewline'),
    ('\ufffe\uffff', ''),
])
def test_placeholder_drops_characters_xml_cannot_hold(caption, shown):
    uri = images.generate_svg_placeholder(caption)
    assert images.is_image_data_uri(uri)
    assert (_svg_text(uri) or '') == shown


def test_responsive_urls():
    urls = images.generate_responsive_image_urls('https://picsum.photos/400/300?random=2')
    assert urls['small'] == 'https://picsum.photos/200/150?random=2'
    assert urls['medium'] == 'https://picsum.photos/400/300?random=2'
    assert urls['large'] == 'https://picsum.photos/800/600?random=2'
    assert urls['webp'] == 'https://picsum.photos/400/300?random=2&format=webp'
    assert urls['avif'] == 'https://picsum.photos/400/300?random=2&format=avif'


def test_responsive_urls_pass_through_without_size_segment():
    base = 'https://cdn.example/item.png?v=1'
    urls = images.generate_responsive_image_urls(base)
    assert urls['small'] == base
    assert urls['large'] == base


def test_responsive_urls_idempotent():
    small = images.generate_responsive_image_urls('https://picsum.photos/200/150?random=1')['small']
    assert small == 'https://picsum.photos/200/150?random=1'
    webp = 'https://picsum.photos/400/300?random=1&format=webp'
    assert images.generate_responsive_image_urls(webp)['webp'] == webp


def test_responsive_format_already_in_middle_of_query():
    url = 'https://picsum.photos/400/300?x=1&format=webp&random=1'
    urls = images.generate_responsive_image_urls(url)
    assert urls['webp'] == url
    assert urls['avif'] == url + '&format=avif'
    assert images.generate_responsive_image_urls(urls['avif'])['avif'] == urls['avif']


def test_decode_data_uri():
    assert images.decode_data_uri('data:image/png;base64,iVBORw0K') == ('image/png', base64.b64decode('iVBORw0K'))
    assert images.decode_data_uri('data:image/svg+xml,%3Csvg%2F%3E') == ('image/svg+xml', b'<svg/>')
    assert images.decode_data_uri('data:image/png;base64,@@@') is None
    assert images.decode_data_uri('data:no-comma') is None
    assert images.decode_data_uri('https://x.example/a.png') is None
    assert not images.is_image_data_uri('data:text/plain,hello')


def test_candidates_require_terminal_placeholder():
    with pytest.raises(ValueError):
        images.FallbackCandidates([])
    with pytest.raises(ValueError):
        images.FallbackCandidates(['https://a.example/?i='])
    c = images.FallbackCandidates()
    assert c.terminal == images.DEFAULT_PLACEHOLDER
    assert c.urls(4) == [images.generate_image_url(4), images.generate_fallback_image_url(4)]


class TestResolver:

    def test_working_preferred_url_returned_unchanged(self):
        probe = StaticImageProbe(['https://good.example/img.png'])
        resolver = images.ImageResolver(probe)
        assert asyncio.run(resolver.resolve('https://good.example/img.png', 3)) == 'https://good.example/img.png'
        assert probe.calls == ['https://good.example/img.png']

    def test_first_fallback_with_index(self):
        probe = StaticImageProbe([images.generate_image_url(3), images.generate_fallback_image_url(3)])
        resolver = images.ImageResolver(probe)
        result = asyncio.run(resolver.resolve('https://broken.example/img.png', 3))
        assert result == 'https://picsum.photos/400/300?random=3'

    def test_second_fallback_when_first_fails(self):
        probe = StaticImageProbe([images.generate_fallback_image_url(2)])
        resolver = images.ImageResolver(probe)
        result = asyncio.run(resolver.resolve('https://broken.example/img.png', 2))
        assert result == images.generate_fallback_image_url(2)
        assert probe.calls == [
            'https://broken.example/img.png',
            images.generate_image_url(2),
            images.generate_fallback_image_url(2),
        ]

    def test_all_fail_returns_placeholder_without_probing_it(self):
        probe = StaticImageProbe()
        resolver = images.ImageResolver(probe)
        assert asyncio.run(resolver.resolve('not a url')) == images.DEFAULT_PLACEHOLDER
        assert images.DEFAULT_PLACEHOLDER not in probe.calls
        assert len(probe.calls) == 3

    def test_raising_probe_counts_as_failure(self):
        async def probe(url):
            raise ConnectionError('boom')

        resolver = images.ImageResolver(probe)
        assert asyncio.run(resolver.resolve('https://x.example/a.png')) == images.DEFAULT_PLACEHOLDER

    def test_hanging_probe_times_out(self):
        async def probe(url):
            await asyncio.sleep(10)
            return True

        resolver = images.ImageResolver(probe, timeout=0.05)
        start = time.monotonic()
        assert asyncio.run(resolver.resolve('https://slow.example/a.png')) == images.DEFAULT_PLACEHOLDER
        assert time.monotonic() - start < 3 * 0.05 + 1

    def test_custom_candidates(self):
        candidates = images.FallbackCandidates([
            'https://cdn.example/p/',
            images.generate_svg_placeholder('No image'),
        ])
        probe = StaticImageProbe(['https://cdn.example/p/9'])
        resolver = images.ImageResolver(probe, candidates)
        assert asyncio.run(resolver.resolve('https://x.example/a.png', 9)) == 'https://cdn.example/p/9'
        assert asyncio.run(resolver.resolve('https://x.example/a.png', 1)) == candidates.terminal

    def test_probes_run_sequentially(self):
        active = []
        peak = []

        async def probe(url):
            active.append(url)
            peak.append(len(active))
            await asyncio.sleep(0.01)
            active.remove(url)
            return False

        asyncio.run(images.ImageResolver(probe).resolve('https://x.example/a.png'))
        assert max(peak) == 1


def test_preload_images_fills_store():
    store = SimpleTTLCache(ttl=60)
    fetched = []

    def fetch(url):
        fetched.append(url)
        if 'bad' in url:
            raise IOError('nope')
        return b'img:' + url.encode()

    executor = ThreadPoolExecutor(max_workers=2)
    result = images.preload_images(
        ['https://a.example/1.png', 'https://bad.example/2.png', images.DEFAULT_PLACEHOLDER],
        store=store, fetch=fetch, executor=executor,
    )
    executor.shutdown(wait=True)

    assert result is None
    assert store.get('https://a.example/1.png') == b'img:https://a.example/1.png'
    assert 'https://bad.example/2.png' not in store
    assert store.get(images.DEFAULT_PLACEHOLDER).startswith(b'<svg')
    assert images.DEFAULT_PLACEHOLDER not in fetched
