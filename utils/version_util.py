"""
Startup check against the latest published release.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from importlib.metadata import PackageNotFoundError, version

import httpx

from utils.constants import Defaults

logger = logging.getLogger('cloudmusic.gateway')

PYPI_URL = 'https://pypi.org/pypi/{dist}/json'


class VersionCheckStatus(IntEnum):
    FAILED = -1
    NOT_LATEST = 0
    LATEST = 1


@dataclass
class VersionCheckResult:
    status: VersionCheckStatus
    our_version: str | None = None
    latest_version: str | None = None


def version_tuple(v: str) -> tuple[int, ...]:
    parts = []
    for p in v.split('.')[:3]:
        digits = ''.join(ch for ch in p if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    while len(parts) < 3:
        parts.append(0)
    return tuple(parts)


async def check_version(client: httpx.AsyncClient | None = None, dist: str = Defaults.DIST_NAME) -> VersionCheckResult:
    """Compare the installed version with the latest release on the package index."""
    try:
        ours = version(dist)
    except PackageNotFoundError:
        return VersionCheckResult(VersionCheckStatus.FAILED)

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=10.0)
    try:
        resp = await client.get(PYPI_URL.format(dist=dist))
        resp.raise_for_status()
        latest = resp.json()['info']['version']
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.debug(f'Version check failed: {e}')
        return VersionCheckResult(VersionCheckStatus.FAILED, our_version=ours)
    finally:
        if owns_client:
            await client.aclose()

    status = VersionCheckStatus.NOT_LATEST if version_tuple(ours) < version_tuple(latest) else VersionCheckStatus.LATEST
    return VersionCheckResult(status, our_version=ours, latest_version=latest)
