"""
Pytest configuration for the gateway tests.

Puts the project root on sys.path so `from utils...` resolves when tests run
from the repo root, and points logs at a throwaway directory.
"""

import os
import sys
import tempfile

os.environ.setdefault('MEM_OR_EXTERNAL', 'MEM')
os.environ.setdefault('CHECK_VERSION', 'false')
os.environ.setdefault('LOGS_DIR', os.path.join(tempfile.gettempdir(), 'cloudmusic-test-logs'))
os.environ.setdefault('LOG_LEVEL', 'DEBUG')

_HERE = os.path.dirname(__file__)
_PROJECT_ROOT = os.path.abspath(os.path.join(_HERE, os.pardir))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

import httpx
import pytest
import pytest_asyncio


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def make_client():
    """Build an AsyncClient bound to a fresh app serving the given bindings."""
    from cloudmusic import create_app

    clients = []

    def _make(bindings, cache=None, outbound=None, base_url='http://testserver'):
        app = create_app(module_defs=bindings, cache=cache, outbound=outbound)
        transport = httpx.ASGITransport(app=app, client=('::ffff:127.0.0.1', 51234))
        client = httpx.AsyncClient(transport=transport, base_url=base_url)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()
