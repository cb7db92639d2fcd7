from fastapi import Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

from utils.constants import Headers


def _is_api_path(path: str) -> bool:
    return path != '/' and '.' not in path


def cors_headers(request: Request) -> dict[str, str]:
    return {
        'Access-Control-Allow-Credentials': 'true',
        'Access-Control-Allow-Origin': request.headers.get('origin') or '*',
        'Access-Control-Allow-Headers': 'X-Requested-With,Content-Type',
        'Access-Control-Allow-Methods': 'PUT,POST,GET,DELETE,OPTIONS',
        'Content-Type': Headers.JSON_CONTENT_TYPE,
    }


class CORSPreflightMiddleware(BaseHTTPMiddleware):
    """Open CORS on API paths and answer every preflight with 204.

    Paths that are ``/`` or contain a dot (static assets) keep their own
    headers.
    """

    async def dispatch(self, request: Request, call_next):
        headers = cors_headers(request) if _is_api_path(request.url.path) else {}
        if request.method.upper() == 'OPTIONS':
            return Response(status_code=204, headers=headers)
        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response
