"""
Per-request parameter assembly.

Handlers receive a single dict built from the request cookies, the query
string, the body and any uploaded files. Later sources override earlier ones:
cookie < query < body < files.
"""

import json
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile

from models.module_model import UploadedFile
from utils.cookie_util import cookie_to_json, safe_decode
from utils.error_util import BodyParseError


def _multi_items_to_dict(items) -> dict[str, Any]:
    # Repeated keys collapse into a list, single keys stay scalar
    out: dict[str, Any] = {}
    for key, value in items:
        if key in out:
            prev = out[key]
            out[key] = prev + [value] if isinstance(prev, list) else [prev, value]
        else:
            out[key] = value
    return out


def normalize_cookie_field(source: dict[str, Any]) -> dict[str, Any]:
    if isinstance(source.get('cookie'), str):
        source['cookie'] = cookie_to_json(safe_decode(source['cookie']))
    return source


def assemble_params(
    cookies: dict[str, str],
    query: dict[str, Any] | None = None,
    body: dict[str, Any] | None = None,
    files: dict[str, Any] | None = None,
) -> dict[str, Any]:
    query = normalize_cookie_field(dict(query or {}))
    body = normalize_cookie_field(dict(body or {}))
    return {'cookie': cookies, **query, **body, **(files or {})}


def collect_query(request: Request) -> dict[str, Any]:
    return _multi_items_to_dict(request.query_params.multi_items())


async def collect_body(request: Request) -> tuple[dict[str, Any], dict[str, Any]]:
    """Read the request body into ``(fields, files)``.

    JSON objects are used as-is, urlencoded and multipart forms are flattened.
    Repeated keys, file fields included, become lists.
    Any other content type contributes nothing.

    Raises:
        BodyParseError: The body claims to be JSON but does not parse.
    """
    content_type = (request.headers.get('content-type') or '').split(';', 1)[0].strip().lower()
    if content_type == 'application/json' or content_type.endswith('+json'):
        raw = await request.body()
        if not raw.strip():
            return {}, {}
        try:
            payload = json.loads(raw)
        except ValueError as e:
            raise BodyParseError(f'Invalid JSON body: {e}') from e
        return (payload if isinstance(payload, dict) else {}), {}

    if content_type in ('application/x-www-form-urlencoded', 'multipart/form-data'):
        form = await request.form()
        fields = []
        uploads = []
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                data = await value.read()
                uploads.append((key, UploadedFile(
                    name=value.filename or key,
                    data=data,
                    mimetype=value.content_type or 'application/octet-stream',
                )))
            else:
                fields.append((key, value))
        return _multi_items_to_dict(fields), _multi_items_to_dict(uploads)

    return {}, {}
