import sys
import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from loguru import logger


# Ensure local src/ package imports work without editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from sessionhooks.core.config import WebhookDeliveryConfig  # noqa: E402


# =============================================================================
# Webhook Receiver
# =============================================================================

@dataclass
class RecordedRequest:
    path: str
    headers: Mapping[str, str]
    body: bytes


class WebhookReceiver:
    """
    Real aiohttp endpoint with scripted responses.

    ``script("/hook", 503, 503, 200)`` answers the first two requests to
    /hook with 503 and every later one with 200. The last scripted status
    repeats, unscripted paths answer 200.
    """

    def __init__(self):
        self.requests: List[RecordedRequest] = []
        self._scripts: Dict[str, List[int]] = {}
        self._delays: Dict[str, float] = {}
        self._server: Optional[TestServer] = None

    async def start(self) -> None:
        app = web.Application()
        app.router.add_route("POST", "/{tail:.*}", self._handle)
        self._server = TestServer(app)
        await self._server.start_server()

    async def close(self) -> None:
        if self._server is not None:
            await self._server.close()

    def script(self, path: str, *statuses: int) -> None:
        self._scripts[path] = list(statuses)

    def delay(self, path: str, seconds: float) -> None:
        self._delays[path] = seconds

    def url(self, path: str = "/hook") -> str:
        return str(self._server.make_url(path))

    def requests_for(self, path: str = "/hook") -> List[RecordedRequest]:
        return [r for r in self.requests if r.path == path]

    async def _handle(self, request: web.Request) -> web.Response:
        body = await request.read()
        self.requests.append(RecordedRequest(request.path, request.headers.copy(), body))

        delay = self._delays.get(request.path)
        if delay:
            await asyncio.sleep(delay)

        statuses = self._scripts.get(request.path)
        status = 200
        if statuses:
            status = statuses.pop(0) if len(statuses) > 1 else statuses[0]

        return web.Response(status=status, text=f"status {status}")


@pytest.fixture
async def receiver():
    """Running webhook receiver, closed after the test."""
    receiver = WebhookReceiver()
    await receiver.start()
    yield receiver
    await receiver.close()


# =============================================================================
# Helpers
# =============================================================================

@pytest.fixture
def fast_config() -> WebhookDeliveryConfig:
    """Delivery config with millisecond delays so retry tests stay quick."""
    return WebhookDeliveryConfig(
        workers=2,
        queue_capacity=10,
        max_retries=3,
        retry_delay_seconds=0.05,
        request_timeout_seconds=2.0,
        idle_poll_seconds=0.02,
        shutdown_grace_seconds=2.0,
    )


@pytest.fixture
def wait_until() -> Callable:
    """Poll a predicate until it holds or the timeout expires."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            if predicate():
                return True
            await asyncio.sleep(interval)
        return predicate()

    return _wait_until


@pytest.fixture
def log_records():
    """Capture loguru records emitted during the test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
