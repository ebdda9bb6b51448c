import pytest
from fastapi.testclient import TestClient

from marketcheck import config
from marketcheck.main import app, render_placeholder_cached
from marketcheck.probes.static import StaticImageProbe
from marketcheck.utils.images import DEFAULT_PLACEHOLDER, ImageResolver, generate_image_url


@pytest.fixture
def client():
    original = app.state.resolver
    app.state.resolver = ImageResolver(StaticImageProbe(['https://good.example/img.png', generate_image_url(5)]))
    try:
        yield TestClient(app)
    finally:
        app.state.resolver = original


@pytest.mark.parametrize('path', ['/health', '/api/health'])
def test_health(client, path):
    resp = client.get(path)
    assert resp.status_code == 200
    data = resp.json()
    assert data['status'] == 'ok'
    assert {'timestamp', 'version'} <= set(data)


def test_resolve_working_url(client):
    resp = client.get('/api/images/resolve', params={'url': 'https://good.example/img.png', 'index': 3})
    assert resp.json() == {
        'url': 'https://good.example/img.png',
        'index': 3,
        'resolved': 'https://good.example/img.png',
        'fallback_used': False,
    }


def test_resolve_falls_back(client):
    data = client.get('/api/images/resolve', params={'url': 'https://bad.example/x.png', 'index': 5}).json()
    assert data['resolved'] == generate_image_url(5)
    assert data['fallback_used'] is True

    data = client.get('/api/images/resolve', params={'url': 'https://bad.example/x.png'}).json()
    assert data['index'] == 1
    assert data['resolved'] == DEFAULT_PLACEHOLDER


def test_resolve_rejects_negative_index(client):
    resp = client.get('/api/images/resolve', params={'url': 'https://x.example/a.png', 'index': -1})
    assert resp.status_code == 422


def test_placeholder_svg(client):
    resp = client.get('/api/images/placeholder', params={'text': 'Shoes & <Socks>'})
    assert resp.status_code == 200
    assert resp.headers['content-type'].startswith('image/svg+xml')
    assert b'Shoes &amp; &lt;Socks&gt;' in resp.content


def test_responsive(client):
    data = client.get('/api/images/responsive', params={'url': 'https://picsum.photos/400/300?random=1'}).json()
    assert data['large'] == 'https://picsum.photos/800/600?random=1'
    assert data['avif'].endswith('&format=avif')


def test_placeholder_cache_stays_bounded(client):
    render_placeholder_cached.cache.clear()
    for i in range(config.CACHE_MAX_ENTRIES + 50):
        assert client.get('/api/images/placeholder', params={'text': f'caption-{i}'}).status_code == 200
    assert len(render_placeholder_cached.cache.store) == config.CACHE_MAX_ENTRIES
