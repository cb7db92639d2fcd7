"""
Module discovery.

Every ``.py`` file in the modules directory is one upstream capability. Its
route comes from the filename (``user_detail.py`` -> ``/user/detail``) unless
the override table names the file explicitly.

Usage:
    bindings = get_module_definitions('modules', {'album_new.py': '/album/create'})
"""

import importlib.util
import logging
import os
import re

from models.module_model import RouteBinding
from utils.constants import Defaults
from utils.error_util import ModuleDiscoveryError

logger = logging.getLogger('cloudmusic.gateway')

# Modules whose natural nested route would be wrong
SPECIAL_ROUTES = {
    'daily_signin.py': '/daily_signin',
    'fm_trash.py': '/fm_trash',
    'personal_fm.py': '/personal_fm',
}

_SUFFIX_RE = re.compile(re.escape(Defaults.MODULE_SUFFIX) + '$', re.IGNORECASE)


def parse_route(file_name: str, specific_route: dict[str, str] | None = None) -> str:
    if specific_route and file_name in specific_route:
        return specific_route[file_name]
    return '/' + _SUFFIX_RE.sub('', file_name).replace('_', '/')


def load_module_handler(module_path: str, identifier: str):
    spec = importlib.util.spec_from_file_location(f'cloudmusic_modules.{identifier}', module_path)
    if spec is None or spec.loader is None:
        raise ModuleDiscoveryError(f'Cannot load module: {module_path}')
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ModuleDiscoveryError(f'Failed to import module {module_path}: {e}') from e
    handler = getattr(module, Defaults.MODULE_ATTRIBUTE, None)
    if not callable(handler):
        raise ModuleDiscoveryError(
            f'Module {module_path} does not define a callable `{Defaults.MODULE_ATTRIBUTE}`'
        )
    return handler


def get_module_definitions(
    modules_path: str,
    specific_route: dict[str, str] | None = None,
    do_require: bool = True,
) -> list[RouteBinding]:
    """Build route bindings for every module file in ``modules_path``.

    Files are processed in reverse lexical order, so a more specific module
    (``song_url_v1.py``) is registered ahead of its prefix (``song_url.py``)
    and wins when both could match a request path.

    Args:
        modules_path: Directory holding the module files (not walked recursively).
        specific_route: Filename -> route overrides.
        do_require: Import each module and bind its ``handler``. When False the
            binding carries the module path instead.

    Raises:
        ModuleDiscoveryError: The directory is unreadable or a module fails to load.
    """
    try:
        files = sorted(os.listdir(modules_path))
    except OSError as e:
        raise ModuleDiscoveryError(f'Cannot read modules directory {modules_path}: {e}') from e

    bindings: list[RouteBinding] = []
    for file_name in reversed(files):
        if not file_name.endswith(Defaults.MODULE_SUFFIX) or file_name.startswith('_'):
            continue
        identifier = file_name.split('.')[0]
        route = parse_route(file_name, specific_route)
        module_path = os.path.join(modules_path, file_name)
        handler = load_module_handler(module_path, identifier) if do_require else module_path
        bindings.append(RouteBinding(route=route, handler=handler, identifier=identifier))
    logger.info(f'Discovered {len(bindings)} module(s) in {modules_path}')
    return bindings
