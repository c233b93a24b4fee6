"""Pytest configuration and fixtures for evalsync.

HTTP-level tests run against httpx.MockTransport (no network); service
tests use AsyncMock gateways. All imports use evalsync.*.
"""

import asyncio
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from evalsync.application.services.pending_evaluations import PendingEvaluationsService
from evalsync.application.services.response_synchronizer import (
    EvaluationResponseSynchronizer,
    PersonToEvaluate,
)
from evalsync.core.config import Settings
from evalsync.infrastructure.cache.request_cache import RequestCache
from evalsync.infrastructure.webhook.client import WebhookClient

API_BASE_URL = "https://api.test"
EVALUATIONS_URL = f"{API_BASE_URL}/webhook/evaluations"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class WebhookStub:
    """MockTransport handler: records requests and replays queued answers.

    Queued items are httpx.Response objects, exceptions (raised from the
    transport) or callables taking the request. When the queue is empty
    the default answer (an empty JSON array) is returned. Set `gate` to an
    asyncio.Event to hold every request until the event is set.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._queue: list[Any] = []
        self.default: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json=[])
        )
        self.gate: asyncio.Event | None = None

    def queue(self, *answers: Any) -> None:
        self._queue.extend(answers)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def bodies(self) -> list[Any]:
        return [json.loads(r.content) if r.content else None for r in self.requests]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        answer = self._queue.pop(0) if self._queue else self.default
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(request)
        return answer


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(api_base_url=API_BASE_URL, _env_file=None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def webhook_stub() -> WebhookStub:
    return WebhookStub()


@pytest.fixture
def http_client(webhook_stub: WebhookStub) -> httpx.AsyncClient:
    """Async HTTP client whose transport is the webhook stub (nothing to close)."""
    return httpx.AsyncClient(transport=httpx.MockTransport(webhook_stub))


@pytest.fixture
def cache(http_client: httpx.AsyncClient, clock: FakeClock) -> RequestCache:
    return RequestCache(http_client, default_ttl=300, clock=clock)


@pytest.fixture
def webhook_client(http_client: httpx.AsyncClient) -> WebhookClient:
    return WebhookClient(http_client)


@pytest.fixture
def pending_service(cache: RequestCache) -> PendingEvaluationsService:
    return PendingEvaluationsService(cache, evaluations_url=EVALUATIONS_URL)


@pytest.fixture
def responses_gateway() -> AsyncMock:
    """Mock evaluation responses gateway: every call succeeds, nothing is saved yet."""
    gateway = AsyncMock()
    ids = iter(f"srv-{n}" for n in range(1, 10_000))
    gateway.create_response = AsyncMock(side_effect=lambda payload: next(ids))
    gateway.update_response = AsyncMock(return_value=None)
    gateway.list_responses = AsyncMock(return_value=[])
    gateway.save_progress = AsyncMock(return_value=None)
    gateway.check_all_evaluators_completed = AsyncMock(return_value=False)
    gateway.submit_evaluation = AsyncMock(return_value=None)
    gateway.mark_evaluator_completed = AsyncMock(return_value=None)
    return gateway


@pytest.fixture
def cache_mock() -> MagicMock:
    """Mock request cache (invalidation calls only)."""
    return MagicMock()


@pytest.fixture
def people() -> list[PersonToEvaluate]:
    return [PersonToEvaluate(id="p1", name="Ana"), PersonToEvaluate(id="p2", name="Bruno")]


@pytest.fixture
def synchronizer(
    responses_gateway: AsyncMock,
    cache_mock: MagicMock,
    people: list[PersonToEvaluate],
) -> EvaluationResponseSynchronizer:
    """Synchronizer for evaluator u1 on evaluation ev1 (4 questions per person)."""
    return EvaluationResponseSynchronizer(
        evaluation_id="ev1",
        form_id="f1",
        evaluator_id="u1",
        people=people,
        total_questions=4,
        gateway=responses_gateway,
        cache=cache_mock,
        debounce_seconds=0.01,
    )
