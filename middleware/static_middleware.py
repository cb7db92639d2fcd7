import logging
from pathlib import Path

from fastapi import Request
from fastapi.responses import FileResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger('cloudmusic.gateway')


class StaticFilesMiddleware(BaseHTTPMiddleware):
    """Serve files from the public directory ahead of the module routes.

    Anything that is not an existing file under the directory falls through.
    """

    def __init__(self, app: ASGIApp, directory: str, index: str = 'index.html'):
        super().__init__(app)
        self.directory = Path(directory).resolve()
        self.index = index

    def _resolve(self, path: str) -> Path | None:
        relative = path.lstrip('/')
        candidate = (self.directory / relative).resolve()
        if not candidate.is_relative_to(self.directory):
            return None
        if candidate.is_dir():
            candidate = candidate / self.index
        return candidate if candidate.is_file() else None

    async def dispatch(self, request: Request, call_next):
        if request.method.upper() in ('GET', 'HEAD') and self.directory.is_dir():
            target = self._resolve(request.url.path)
            if target is not None:
                return FileResponse(target)
        return await call_next(request)
