import json
from typing import Any

from fastapi.responses import Response

from utils.constants import Headers


def render_body(body: Any) -> bytes:
    if body is None:
        return b''
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode('utf-8')
    return json.dumps(body, ensure_ascii=False, separators=(',', ':')).encode('utf-8')


def build_response(status: int, body: Any, cookies: list[str] | None = None) -> Response:
    """Write a module outcome as an HTTP response, one Set-Cookie header per cookie."""
    resp = Response(content=render_body(body), status_code=status, media_type=Headers.JSON_CONTENT_TYPE)
    for cookie in cookies or []:
        resp.headers.append('set-cookie', cookie)
    return resp


def replay_response(status: int, body: bytes, headers: list[tuple[str, str]]) -> Response:
    resp = Response(content=body, status_code=status)
    for key, value in headers:
        if key.lower() == 'content-length':
            continue
        resp.headers.append(key, value)
    return resp
