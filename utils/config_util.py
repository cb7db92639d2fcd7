"""
Gateway settings.

Values come from the environment (and a ``.env`` file loaded at startup). The
route override file may be YAML or JSON.
"""

import json
import logging
import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.constants import Defaults

logger = logging.getLogger('cloudmusic.gateway')

BASE_DIR = Path(__file__).resolve().parent.parent


class GatewaySettings(BaseSettings):
    model_config = SettingsConfigDict(extra='ignore')

    host: str = Field('')
    port: int = Field(Defaults.PORT)
    check_version: bool = Field(False)
    trust_proxy: bool = Field(True)

    modules_dir: str = Field(str(BASE_DIR / 'modules'))
    public_dir: str = Field(str(BASE_DIR / 'public'))
    route_overrides_file: str | None = Field(None)

    upstream_base_url: str = Field(Defaults.UPSTREAM_BASE_URL)
    http_connect_timeout: float = Field(5.0)
    http_read_timeout: float = Field(30.0)
    http_write_timeout: float = Field(30.0)
    http_timeout: float = Field(30.0)

    cache_ttl_seconds: int = Field(Defaults.CACHE_TTL_SECONDS)
    mem_or_external: str = Field('MEM')
    redis_host: str = Field('localhost')
    redis_port: int = Field(6379)
    redis_db: int = Field(0)
    redis_password: str = Field('')

    logs_dir: str = Field(str(BASE_DIR / 'logs'))
    log_format: str = Field('plain')
    log_level: str = Field('INFO')


@lru_cache
def get_settings() -> GatewaySettings:
    return GatewaySettings()


def load_route_overrides(filepath: str | None) -> dict[str, str]:
    """Load extra ``filename -> route`` overrides from a YAML or JSON file."""
    if not filepath:
        return {}
    if not os.path.exists(filepath):
        logger.warning(f'Route overrides file not found: {filepath}')
        return {}
    path = Path(filepath)
    with open(filepath, 'r', encoding='utf-8') as f:
        if path.suffix in ('.yaml', '.yml'):
            overrides = yaml.safe_load(f) or {}
        elif path.suffix == '.json':
            overrides = json.load(f)
        else:
            raise ValueError(f'Unsupported route overrides format: {path.suffix}')
    if not isinstance(overrides, dict):
        raise ValueError(f'Route overrides must be a mapping, got {type(overrides).__name__}')
    logger.info(f'Loaded {len(overrides)} route override(s) from {filepath}')
    return {str(k): str(v) for k, v in overrides.items()}
