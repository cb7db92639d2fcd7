import pytest

from middleware.static_middleware import StaticFilesMiddleware
from models.module_model import RouteBinding


@pytest.mark.asyncio
async def test_root_serves_index(make_client):
    client = make_client([])
    r = await client.get('/')
    assert r.status_code == 200
    assert 'cloudmusic-gateway' in r.text
    assert r.headers['content-type'].startswith('text/html')


@pytest.mark.asyncio
async def test_static_file_served_before_modules(make_client):
    async def handler(query, request):
        return {'status': 200, 'body': {'module': True}}

    client = make_client([RouteBinding('/index.html', handler)])
    r = await client.get('/index.html')
    assert r.headers['content-type'].startswith('text/html')


@pytest.mark.asyncio
async def test_post_falls_through_to_routing(make_client):
    client = make_client([])
    r = await client.post('/index.html')
    assert r.status_code == 404


def test_resolve_refuses_traversal(tmp_path):
    public = tmp_path / 'public'
    public.mkdir()
    (public / 'index.html').write_text('<p>hi</p>', encoding='utf-8')
    (tmp_path / 'secret.txt').write_text('secret', encoding='utf-8')
    (public / 'docs').mkdir()
    (public / 'docs' / 'index.html').write_text('<p>docs</p>', encoding='utf-8')

    static = StaticFilesMiddleware(app=None, directory=str(public))
    assert static._resolve('/../secret.txt') is None
    assert static._resolve('/missing.css') is None
    assert static._resolve('/') == (public / 'index.html').resolve()
    assert static._resolve('/docs') == (public / 'docs' / 'index.html').resolve()
