import pytest

from models.module_model import RouteBinding
from models.response_model import ModuleResponse
from services.dispatch_service import DispatchService
from utils.error_util import ModuleError


def _capture_outbound(captured):
    async def outbound(method, url, data=None, options=None):
        captured.append({'method': method, 'url': url, 'data': data, 'options': options})
        return ModuleResponse(status=200, body={'code': 200}, cookie=[])

    return outbound


def _calling_binding(route='/user/detail'):
    async def handler(query, request):
        return await request('POST', '/api/x', {'k': 'v'}, {'cookie': query['cookie']})

    return RouteBinding(route=route, handler=handler, identifier='caller')


@pytest.mark.asyncio
async def test_ipv4_mapped_address_is_injected_plain(make_client):
    captured = []
    client = make_client([_calling_binding()], outbound=_capture_outbound(captured))
    r = await client.get('/user/detail', headers={'Cookie': 'MUSIC_U=abc'})
    assert r.status_code == 200
    assert captured[0]['options'] == {'cookie': {'MUSIC_U': 'abc'}, 'ip': '127.0.0.1'}
    assert captured[0]['data'] == {'k': 'v'}


@pytest.mark.asyncio
async def test_forwarded_for_ip_is_injected(make_client):
    captured = []
    client = make_client([_calling_binding()], outbound=_capture_outbound(captured))
    await client.get('/user/detail', headers={'X-Forwarded-For': '203.0.113.9, 10.0.0.1'})
    assert captured[0]['options']['ip'] == '203.0.113.9'


@pytest.mark.asyncio
async def test_outbound_wrapper_pads_missing_options():
    captured = []
    service = DispatchService(outbound=_capture_outbound(captured))
    call = service.make_outbound_call('10.0.0.2')
    await call('POST', '/api/x')
    assert captured[0]['options'] == {'ip': '10.0.0.2'}
    await call('POST', '/api/x', {}, options={'ua': 'pc'})
    assert captured[1]['options'] == {'ua': 'pc', 'ip': '10.0.0.2'}


@pytest.mark.asyncio
async def test_success_sets_status_body_and_cookies(make_client):
    async def handler(query, request):
        return {'status': 200, 'body': {'code': 200, 'data': [1]}, 'cookie': ['MUSIC_U=x; Path=/', 'os=pc']}

    client = make_client([RouteBinding('/login/status', handler)])
    r = await client.get('/login/status')
    assert r.status_code == 200
    assert r.json() == {'code': 200, 'data': [1]}
    assert r.headers.get_list('set-cookie') == ['MUSIC_U=x; Path=/', 'os=pc']


@pytest.mark.asyncio
async def test_https_cookies_get_samesite_none(make_client):
    async def handler(query, request):
        return {'status': 200, 'body': {'code': 200}, 'cookie': ['MUSIC_U=x; Path=/']}

    client = make_client([RouteBinding('/login/status', handler)], base_url='https://testserver')
    r = await client.get('/login/status')
    assert r.headers.get_list('set-cookie') == ['MUSIC_U=x; Path=/; SameSite=None; Secure']


@pytest.mark.asyncio
async def test_forwarded_proto_https_marks_cookies(make_client):
    async def handler(query, request):
        return {'status': 200, 'body': {'code': 200}, 'cookie': ['a=1']}

    client = make_client([RouteBinding('/login/status', handler)])
    r = await client.get('/login/status', headers={'X-Forwarded-Proto': 'https'})
    assert r.headers.get_list('set-cookie') == ['a=1; SameSite=None; Secure']


@pytest.mark.asyncio
async def test_failure_without_body_is_404_envelope(make_client):
    async def handler(query, request):
        raise ModuleError(500)

    client = make_client([RouteBinding('/song/detail', handler)])
    r = await client.get('/song/detail')
    assert r.status_code == 404
    assert r.json() == {'code': 404, 'data': None, 'msg': 'Not Found'}


@pytest.mark.asyncio
async def test_unexpected_exception_is_404_envelope(make_client):
    async def handler(query, request):
        raise RuntimeError('boom')

    client = make_client([RouteBinding('/song/detail', handler)])
    r = await client.get('/song/detail')
    assert r.status_code == 404
    assert r.json()['msg'] == 'Not Found'


@pytest.mark.asyncio
@pytest.mark.parametrize('code', [301, '301'])
async def test_login_required_message(make_client, code):
    async def handler(query, request):
        raise ModuleError(301, {'code': code, 'msg': 'original'})

    client = make_client([RouteBinding('/user/account', handler)])
    r = await client.get('/user/account')
    assert r.status_code == 301
    assert r.json() == {'code': code, 'msg': '需要登录'}


@pytest.mark.asyncio
async def test_failure_keeps_status_body_and_cookies(make_client):
    async def handler(query, request):
        raise ModuleError(502, {'code': 502, 'msg': 'bad gateway'}, ['a=1'])

    client = make_client([RouteBinding('/song/url', handler)])
    r = await client.get('/song/url')
    assert r.status_code == 502
    assert r.json() == {'code': 502, 'msg': 'bad gateway'}
    assert r.headers.get_list('set-cookie') == ['a=1']


@pytest.mark.asyncio
async def test_failure_dict_without_status_is_500(make_client):
    class Failure(Exception):
        body = {'code': -460, 'msg': 'cheating'}

    async def handler(query, request):
        raise Failure()

    client = make_client([RouteBinding('/song/url', handler)])
    r = await client.get('/song/url')
    assert r.status_code == 500
    assert r.json() == {'code': -460, 'msg': 'cheating'}


@pytest.mark.asyncio
async def test_more_specific_module_wins(make_client):
    async def general(query, request):
        return {'status': 200, 'body': {'module': 'song_url'}}

    async def specific(query, request):
        return {'status': 200, 'body': {'module': 'song_url_v1'}}

    client = make_client([
        RouteBinding('/song/url/v1', specific, 'song_url_v1'),
        RouteBinding('/song/url', general, 'song_url'),
    ])
    assert (await client.get('/song/url/v1')).json() == {'module': 'song_url_v1'}
    assert (await client.get('/song/url')).json() == {'module': 'song_url'}
    assert (await client.get('/song/url/extra')).json() == {'module': 'song_url'}


@pytest.mark.asyncio
async def test_unknown_route_is_json_404(make_client):
    client = make_client([])
    r = await client.get('/nothing/here')
    assert r.status_code == 404
    assert r.json() == {'code': 404, 'data': None, 'msg': 'Not Found'}


@pytest.mark.asyncio
async def test_failure_cookies_not_marked_secure_over_https(make_client):
    async def handler(query, request):
        raise ModuleError(502, {'code': 502, 'msg': 'bad gateway'}, ['a=1'])

    client = make_client([RouteBinding('/song/url', handler)], base_url='https://testserver')
    r = await client.get('/song/url')
    assert r.status_code == 502
    assert r.headers.get_list('set-cookie') == ['a=1']

    r2 = await client.get('/song/url', headers={'X-Forwarded-Proto': 'https'})
    assert r2.headers.get_list('set-cookie') == ['a=1']
