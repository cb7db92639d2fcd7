"""
Outbound HTTP client used by handler modules.

Usage:
    answer = await upstream_request(
        'POST', '/api/nuser/account/get', {},
        {'cookie': query['cookie'], 'ip': '1.2.3.4'},
    )

Resolves to a ``ModuleResponse`` when the upstream reports success and raises
``ModuleError`` otherwise, including transport failures (status 502).
"""

from __future__ import annotations

import json
import logging
import random
import re
from typing import Any
from urllib.parse import urljoin

import httpx

from models.response_model import ModuleResponse
from utils.config_util import get_settings
from utils.constants import UpstreamCodes
from utils.cookie_util import cookie_to_header
from utils.error_util import ModuleError

logger = logging.getLogger('cloudmusic.gateway')

_USER_AGENTS = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) '
    'Chrome/124.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) '
    'Version/17.4 Safari/605.1.15',
    'Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0',
)

_DOMAIN_ATTR_RE = re.compile(r'\s*Domain=[^(;|$)]+;*')

_http_client: httpx.AsyncClient | None = None
_proxy_clients: dict[str, httpx.AsyncClient] = {}


def _build_timeout() -> httpx.Timeout:
    settings = get_settings()
    return httpx.Timeout(
        connect=settings.http_connect_timeout,
        read=settings.http_read_timeout,
        write=settings.http_write_timeout,
        pool=settings.http_timeout,
    )


def get_http_client(proxy: str | None = None) -> httpx.AsyncClient:
    """Return a pooled AsyncClient, one per distinct proxy."""
    global _http_client
    if proxy:
        client = _proxy_clients.get(proxy)
        if client is None:
            client = httpx.AsyncClient(timeout=_build_timeout(), proxy=proxy)
            _proxy_clients[proxy] = client
        return client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=_build_timeout())
    return _http_client


async def aclose_http_client() -> None:
    global _http_client
    clients = list(_proxy_clients.values())
    if _http_client is not None:
        clients.append(_http_client)
    _http_client = None
    _proxy_clients.clear()
    for client in clients:
        await client.aclose()


def strip_cookie_domain(cookie: str) -> str:
    return _DOMAIN_ATTR_RE.sub('', cookie, count=1)


def _build_headers(options: dict[str, Any]) -> dict[str, str]:
    settings = get_settings()
    headers = {
        'User-Agent': options.get('ua') or random.choice(_USER_AGENTS),
        'Referer': settings.upstream_base_url,
    }
    ip = options.get('realIP') or options.get('ip')
    if ip:
        headers['X-Real-IP'] = ip
        headers['X-Forwarded-For'] = ip
    cookie = cookie_to_header(options.get('cookie'))
    if cookie:
        headers['Cookie'] = cookie
    headers.update(options.get('headers') or {})
    return headers


def _parse_body(response: httpx.Response) -> Any:
    try:
        return json.loads(response.content)
    except ValueError:
        return response.text


def _business_code(body: Any) -> int | None:
    if not isinstance(body, dict):
        return None
    try:
        return int(body.get('code'))
    except (TypeError, ValueError):
        return None


def build_answer(response: httpx.Response) -> ModuleResponse:
    body = _parse_body(response)
    code = _business_code(body)
    status = code or response.status_code
    if code in UpstreamCodes.TREATED_AS_OK:
        status = 200
    if not 100 < status < 600:
        status = 400
    return ModuleResponse(
        status=status,
        body=body,
        cookie=[strip_cookie_domain(c) for c in response.headers.get_list('set-cookie')],
    )


async def upstream_request(
    method: str,
    url: str,
    data: dict[str, Any] | None = None,
    options: dict[str, Any] | None = None,
) -> ModuleResponse:
    options = options or {}
    method = (method or 'POST').upper()
    target = urljoin(get_settings().upstream_base_url, url)
    headers = _build_headers(options)
    client = get_http_client(options.get('proxy'))
    try:
        if method == 'GET':
            response = await client.request(method, target, headers=headers, params=data or None)
        else:
            response = await client.request(method, target, headers=headers, data=data or {})
    except httpx.HTTPError as e:
        logger.error(f'Upstream request to {target} failed: {e}')
        raise ModuleError(502, {'code': 502, 'msg': str(e) or e.__class__.__name__}) from e

    answer = build_answer(response)
    if answer.status != 200:
        raise ModuleError(answer.status, answer.body, answer.cookie)
    return answer


def create_options(query: dict[str, Any], **extra) -> dict[str, Any]:
    """Outbound options a module forwards from its parameters."""
    options = {
        'cookie': query.get('cookie') or {},
        'ua': query.get('ua') or '',
        'proxy': query.get('proxy'),
        'realIP': query.get('realIP'),
    }
    options.update(extra)
    return options
