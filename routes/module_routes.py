"""
The contents of this file are property of Doorman Dev, LLC
Review the Apache License 2.0 for valid authorization of use
See https://github.com/apidoorman/doorman for more information
"""

import logging

from fastapi import APIRouter, Request

from models.module_model import RouteBinding
from services.dispatch_service import DispatchService

logger = logging.getLogger('cloudmusic.gateway')

MODULE_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'HEAD']


def _make_endpoint(binding: RouteBinding, dispatcher: DispatchService):
    async def module_endpoint(request: Request):
        return await dispatcher.handle(binding, request)

    module_endpoint.__name__ = f'module_{binding.identifier or binding.route.strip("/").replace("/", "_")}'
    return module_endpoint


def build_module_router(bindings: list[RouteBinding], dispatcher: DispatchService) -> APIRouter:
    """Register one route per module binding.

    A binding serves its route and everything below it, so ``/song/url`` also
    answers ``/song/url/extra``. Bindings are registered in the given order and
    the first match wins.
    """
    module_router = APIRouter()
    for binding in bindings:
        if not callable(binding.handler):
            raise TypeError(f'Binding for {binding.route} has no loaded handler')
        endpoint = _make_endpoint(binding, dispatcher)
        route = binding.route.rstrip('/') or '/'
        module_router.add_api_route(
            route,
            endpoint,
            methods=MODULE_METHODS,
            include_in_schema=False,
        )
        module_router.add_api_route(
            route.rstrip('/') + '/{subpath:path}',
            endpoint,
            methods=MODULE_METHODS,
            include_in_schema=False,
        )
    logger.info(f'Registered {len(bindings)} module route(s)')
    return module_router
