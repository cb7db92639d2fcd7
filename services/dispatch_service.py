"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import Response

from models.module_model import OutboundCall, RouteBinding
from models.response_model import ModuleResponse
from utils.constants import Defaults, Headers, Messages, UpstreamCodes
from utils.cookie_util import parse_cookie_header, safe_decode
from utils.error_util import ModuleError, error_envelope
from utils.ip_util import get_client_ip, get_request_protocol, normalize_ip
from utils.params_util import assemble_params, collect_body, collect_query
from utils.request_util import upstream_request
from utils.response_cache_util import ResponseCache
from utils.response_util import build_response, replay_response

logger = logging.getLogger('cloudmusic.gateway')


def _coerce_answer(result: Any) -> ModuleResponse:
    if isinstance(result, ModuleResponse):
        return result
    if isinstance(result, dict):
        cookie = result.get('cookie')
        return ModuleResponse(
            status=result.get('status', 200),
            body=result.get('body'),
            cookie=cookie if isinstance(cookie, list) else [],
        )
    return ModuleResponse(status=200, body=result)


def _is_missing(body: Any) -> bool:
    # Empty containers still count as a body
    if body is None:
        return True
    return not isinstance(body, (dict, list, bytes, bytearray)) and not body


class DispatchService:

    def __init__(
        self,
        cache: ResponseCache | None = None,
        outbound: OutboundCall = upstream_request,
        trust_proxy: bool = True,
    ):
        self.cache = cache
        self.outbound = outbound
        self.trust_proxy = trust_proxy

    def make_outbound_call(self, ip: str) -> OutboundCall:
        """Wrap the outbound client so every call carries the caller's IP.

        The IP is merged into the fourth positional argument (the options dict).
        """
        async def outbound_call(*params, **kwargs):
            args = list(params)
            while len(args) < 4:
                args.append(None)
            if 'options' in kwargs:
                args[3] = kwargs.pop('options')
            args[3] = {**(args[3] if isinstance(args[3], dict) else {}), 'ip': ip}
            return await self.outbound(*args, **kwargs)

        return outbound_call

    async def handle(self, binding: RouteBinding, request: Request) -> Response:
        """Serve a module request, answering from the response cache when possible."""
        if self.cache is None:
            return await self.dispatch(binding, request)

        key = self.cache.make_key(request)
        bypass = any(request.headers.get(h) for h in Headers.CACHE_BYPASS)
        if not bypass:
            entry = await self.cache.get(key)
            if entry is not None:
                logger.debug(f'Cache hit: {key}')
                response = replay_response(entry.status, entry.body, entry.headers)
                response.headers['Cache-Control'] = f'max-age={self.cache.remaining_seconds(entry)}'
                return response

        response = await self.dispatch(binding, request)
        if response.status_code == 200:
            await self.cache.set(key, response.status_code, bytes(response.body), response.headers.items())
            response.headers['Cache-Control'] = f'max-age={self.cache.ttl_seconds}'
        return response

    async def dispatch(self, binding: RouteBinding, request: Request) -> Response:
        cookies = parse_cookie_header(request.headers.get('cookie'))
        query = collect_query(request)
        body, files = await collect_body(request)
        params = assemble_params(cookies, query, body, files)

        ip = normalize_ip(get_client_ip(request, self.trust_proxy))
        original_url = request.url.path + (f'?{request.url.query}' if request.url.query else '')
        try:
            answer = _coerce_answer(await binding.handler(params, self.make_outbound_call(ip)))
        except Exception as e:
            return self.failure_response(e, original_url)

        logger.info(f'[OK] {safe_decode(original_url)}')
        cookies_out = answer.cookie
        if cookies_out and get_request_protocol(request, self.trust_proxy) == 'https':
            cookies_out = [cookie + Defaults.SECURE_COOKIE_SUFFIX for cookie in cookies_out]
        return build_response(answer.status, answer.body, cookies_out)

    def failure_response(self, exc: Exception, original_url: str) -> Response:
        status = getattr(exc, 'status', None)
        body = getattr(exc, 'body', None)
        cookie = getattr(exc, 'cookie', None)
        logger.error(
            f"[ERR] {safe_decode(original_url)} {{'status': {status}, 'body': {body!r}}}",
            exc_info=None if isinstance(exc, ModuleError) else exc,
        )

        if _is_missing(body):
            return build_response(404, error_envelope(404, Messages.NOT_FOUND))
        if isinstance(body, dict) and str(body.get('code')) == UpstreamCodes.LOGIN_REQUIRED:
            body['msg'] = Messages.LOGIN_REQUIRED
        if isinstance(cookie, str):
            cookie = [cookie]
        return build_response(
            status if isinstance(status, int) else 500,
            body,
            cookie if isinstance(cookie, list) else [],
        )
