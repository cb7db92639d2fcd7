"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv
import asyncio
import logging
import json
import re
import os
import sys
import uvicorn

load_dotenv()

from models.module_model import OutboundCall, RouteBinding
from middleware.cors_middleware import CORSPreflightMiddleware
from middleware.logging_middleware import GlobalLoggingMiddleware
from middleware.static_middleware import StaticFilesMiddleware
from routes.module_routes import build_module_router
from services.dispatch_service import DispatchService
from utils.config_util import GatewaySettings, get_settings, load_route_overrides
from utils.constants import Messages
from utils.correlation_util import get_correlation_id
from utils.error_util import BodyParseError, create_error_response
from utils.module_util import SPECIAL_ROUTES, get_module_definitions
from utils.request_util import aclose_http_client, upstream_request
from utils.response_cache_util import ResponseCache
from utils.version_util import VersionCheckStatus, check_version

_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'time': self.formatTime(record, '%Y-%m-%dT%H:%M:%S'),
            'name': record.name,
            'level': record.levelname,
            'request_id': get_correlation_id(),
            'message': record.getMessage(),
        }
        try:
            return json.dumps(payload, ensure_ascii=False)
        except Exception:
            return f'{payload}'


class RedactFilter(logging.Filter):
    """Mask session cookies and credentials in log lines.

    Handler parameters carry the caller's upstream session (``MUSIC_U``) and
    login modules receive passwords, so both end up in ``[ERR]`` lines.
    """

    PATTERNS = [
        re.compile(r'(?i)(cookie\s*[:=]\s*)([^;\r\n]+)'),
        re.compile(r'(?i)(set-cookie\s*[:=]\s*)([^;\r\n]+)'),
        re.compile(r'(?i)(MUSIC_U\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s]+)(["\']?)'),
        re.compile(r'(?i)(MUSIC_A\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s]+)(["\']?)'),
        re.compile(r'(?i)(__csrf\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s]+)(["\']?)'),
        re.compile(r'(?i)(password\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n]+)(["\']?)'),
        re.compile(r'(?i)(md5_password\s*["\']?\s*[:=]\s*["\']?)([^"\';\r\n\s]+)(["\']?)'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = str(record.getMessage())
            red = msg
            for pat in self.PATTERNS:
                red = pat.sub(lambda m: (
                    m.group(1) +
                    '[REDACTED]' +
                    (m.group(3) if m.lastindex and m.lastindex >= 3 else '')
                ), red)
            if red != msg:
                record.msg = red
                record.args = ()
        except Exception:
            pass
        return True


def _build_file_handler(settings: GatewaySettings, formatter: logging.Formatter):
    try:
        logs_dir = os.path.abspath(settings.logs_dir)
        os.makedirs(logs_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=os.path.join(logs_dir, 'cloudmusic.log'),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        return file_handler
    except Exception as e:
        logging.getLogger('cloudmusic.gateway').warning(f'File logging disabled ({e}); using console logging only')
        return None


def configure_logger(logger_name, settings: GatewaySettings | None = None):
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter = JSONFormatter() if settings.log_format.lower() == 'json' else logging.Formatter(_LOG_FORMAT)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    console.addFilter(RedactFilter())
    logger.addHandler(console)

    file_handler = _build_file_handler(settings, formatter)
    if file_handler is not None:
        file_handler.addFilter(RedactFilter())
        logger.addHandler(file_handler)
    return logger


gateway_logger = configure_logger('cloudmusic.gateway')


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    yield
    try:
        await aclose_http_client()
    except Exception as e:
        gateway_logger.warning(f'Failed to close upstream HTTP client: {e}')
    cache = getattr(app.state, 'response_cache', None)
    if cache is not None:
        await cache.aclose()


def discover_modules(settings: GatewaySettings) -> list[RouteBinding]:
    special = {**SPECIAL_ROUTES, **load_route_overrides(settings.route_overrides_file)}
    return get_module_definitions(settings.modules_dir, special)


def create_app(
    module_defs: list[RouteBinding] | None = None,
    cache: ResponseCache | None = None,
    outbound: OutboundCall | None = None,
    settings: GatewaySettings | None = None,
) -> FastAPI:
    """Construct the gateway application.

    Args:
        module_defs: Route bindings to serve instead of the modules directory.
        cache: Response cache; built from settings when omitted.
        outbound: Outbound call handed to modules; defaults to ``upstream_request``.
        settings: Overrides the environment-derived settings.

    Raises:
        ModuleDiscoveryError: The modules directory cannot be read.
    """
    settings = settings or get_settings()
    app = FastAPI(
        title='cloudmusic-gateway',
        description='Local HTTP gateway in front of the cloud music web API.',
        version='1.0.0',
        lifespan=app_lifespan,
        docs_url=None,
        redoc_url=None,
    )

    cache = cache if cache is not None else ResponseCache.from_settings(settings)
    app.state.response_cache = cache
    dispatcher = DispatchService(
        cache=cache,
        outbound=outbound or upstream_request,
        trust_proxy=settings.trust_proxy,
    )
    bindings = module_defs if module_defs is not None else discover_modules(settings)
    app.state.module_definitions = bindings
    app.include_router(build_module_router(bindings, dispatcher))

    app.add_middleware(StaticFilesMiddleware, directory=settings.public_dir)
    app.add_middleware(GlobalLoggingMiddleware)
    app.add_middleware(CORSPreflightMiddleware)

    @app.exception_handler(BodyParseError)
    async def body_parse_exception_handler(request: Request, exc: BodyParseError):
        gateway_logger.warning(f'{request.url.path} | {exc}')
        return create_error_response(400, Messages.BAD_REQUEST)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return create_error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def internal_server_error_handler(request: Request, exc: Exception):
        gateway_logger.error(f'{request.url.path} | Unexpected error: {exc}', exc_info=exc)
        return create_error_response(500, Messages.UNEXPECTED)

    return app


async def _notify_version():
    result = await check_version()
    if result.status == VersionCheckStatus.NOT_LATEST:
        gateway_logger.warning(
            f'Latest version: {result.latest_version}, current version: {result.our_version}, please upgrade'
        )


async def serve_api(
    port: int | None = None,
    host: str | None = None,
    check_version: bool | None = None,
    module_defs: list[RouteBinding] | None = None,
) -> FastAPI:
    """Build the app and serve it until shutdown."""
    settings = get_settings()
    port = int(port or settings.port)
    host = host if host is not None else settings.host
    do_check = settings.check_version if check_version is None else check_version

    tasks = [asyncio.to_thread(create_app, module_defs, None, None, settings)]
    if do_check:
        tasks.append(_notify_version())
    app, *_ = await asyncio.gather(*tasks)

    server = uvicorn.Server(uvicorn.Config(
        app,
        host=host or '0.0.0.0',
        port=port,
        log_level=settings.log_level.lower(),
    ))
    app.state.server = server
    gateway_logger.info(f"server running @ http://{host if host else 'localhost'}:{port}")
    await server.serve()
    return app


def main():
    try:
        asyncio.run(serve_api())
    except Exception as e:
        gateway_logger.error(f'Failed to start server: {str(e)}')
        raise


if __name__ == '__main__':
    main()
