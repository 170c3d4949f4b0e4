"""
Pytest Configuration and Shared Fixtures
=========================================

Simulated server built on ``httpx.MockTransport``: tests register a handler
and inspect the requests the client sent.
"""
import os
from datetime import datetime, timezone
from typing import Callable, List, Optional

import httpx
import pytest
import pytest_asyncio

# Set test environment variables BEFORE any imports
os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_LEVEL"] = "ERROR"
os.environ.pop("TSDB_TOKEN", None)
os.environ.pop("TSDB_PASSWORD", None)

from tsdb_client import BatchPoints, ClientConfig, TSDBClient, AsyncTSDBClient, new_point


TEST_URL = "http://tsdb.test:8086"


# =============================================================================
# SIMULATED SERVER
# =============================================================================

class FakeServer:
    """Records requests and answers them with a configurable handler."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(204)

    def respond_with(self, status_code: int = 200, json_body=None, text: Optional[str] = None, headers=None):
        def handler(request: httpx.Request) -> httpx.Response:
            if json_body is not None:
                return httpx.Response(status_code, json=json_body, headers=headers)
            return httpx.Response(status_code, text=text or "", headers=headers)
        self.handler = handler

    def raise_error(self, exc: Exception):
        def handler(request: httpx.Request) -> httpx.Response:
            raise exc
        self.handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self.handler(request)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(url=TEST_URL, timeout=2)


@pytest.fixture
def client(server, config):
    """Blocking client wired to the simulated server."""
    with TSDBClient(config, transport=httpx.MockTransport(server)) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def async_client(server, config):
    """Async client wired to the simulated server."""
    async with AsyncTSDBClient(config, transport=httpx.MockTransport(server)) as test_client:
        yield test_client


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def fixed_time() -> datetime:
    return datetime(2025, 10, 16, 10, 0, 0, 123456, tzinfo=timezone.utc)


@pytest.fixture
def cpu_batch(fixed_time) -> BatchPoints:
    """Single-point batch from the cpu_usage example."""
    bp = BatchPoints("BumbleBeeTuna", precision="s")
    bp.add_point(new_point(
        "cpu_usage",
        {"cpu": "cpu-total"},
        {"idle": 10.1, "system": 53.3, "user": 46.6},
        fixed_time,
    ))
    return bp


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Tests against the simulated server")
