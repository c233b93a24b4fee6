"""Runtime lifespan: construction and teardown of shared resources.

Single place for wiring (SRP). create_runtime() builds the shared HTTP
client, the request cache, the webhook client and the gateways, and
closes what it built on exit. No business logic here.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx

from evalsync.application.services.pending_evaluations import PendingEvaluationsService
from evalsync.application.services.response_synchronizer import (
    EvaluationResponseSynchronizer,
    PersonToEvaluate,
)
from evalsync.application.services.roster_manager import Notifier, RosterManager
from evalsync.core.config import Settings, get_settings
from evalsync.infrastructure.cache.request_cache import RequestCache
from evalsync.infrastructure.webhook.client import WebhookClient
from evalsync.infrastructure.webhook.responses_gateway import EvaluationResponsesGateway
from evalsync.infrastructure.webhook.roster_gateway import RosterGateway
from evalsync.shared.telemetry.tracing import set_tracing_enabled

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Shared, process-wide collaborators built by create_runtime()."""

    settings: Settings
    http_client: httpx.AsyncClient
    cache: RequestCache
    webhook: WebhookClient
    responses: EvaluationResponsesGateway
    roster: RosterGateway
    evaluations: PendingEvaluationsService

    def synchronizer(
        self,
        *,
        evaluation_id: str,
        form_id: str,
        evaluator_id: str,
        people: Sequence[PersonToEvaluate],
        total_questions: int,
    ) -> EvaluationResponseSynchronizer:
        """Response synchronizer for one evaluator's form."""
        return EvaluationResponseSynchronizer(
            evaluation_id=evaluation_id,
            form_id=form_id,
            evaluator_id=evaluator_id,
            people=people,
            total_questions=total_questions,
            gateway=self.responses,
            cache=self.cache,
            debounce_seconds=self.settings.autosave_debounce_seconds,
        )

    def roster_manager(
        self, evaluation_id: str, notifier: Notifier | None = None
    ) -> RosterManager:
        return RosterManager(
            evaluation_id=evaluation_id,
            gateway=self.roster,
            evaluations=self.evaluations,
            notifier=notifier,
        )


def _auth_headers(settings: Settings) -> dict[str, str]:
    if settings.api_token is None:
        return {}
    return {"Authorization": f"Bearer {settings.api_token.get_secret_value()}"}


@asynccontextmanager
async def create_runtime(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[Runtime]:
    """Build the runtime, yield it, then tear it down.

    Startup: shared HTTP client (unless one is passed in), request cache,
    webhook client, gateways, pending evaluations service. Shutdown:
    cache cleared, HTTP client closed only when it was created here.
    """
    settings = settings or get_settings()
    set_tracing_enabled(settings.telemetry_enabled)

    # ---- Startup ----
    owns_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    headers = _auth_headers(settings)

    cache = RequestCache(
        http_client,
        default_ttl=settings.cache_ttl_default,
        default_headers=headers,
    )
    webhook = WebhookClient(http_client, default_headers=headers)
    runtime = Runtime(
        settings=settings,
        http_client=http_client,
        cache=cache,
        webhook=webhook,
        responses=EvaluationResponsesGateway(webhook, settings.evaluation_responses_url),
        roster=RosterGateway(webhook, settings.evaluators_url, settings.evaluated_url),
        evaluations=PendingEvaluationsService(
            cache,
            evaluations_url=settings.evaluations_url,
            pending_ttl=settings.cache_ttl_pending_evaluations,
            details_ttl=settings.cache_ttl_evaluation_details,
            status_ttl=settings.cache_ttl_evaluator_status,
        ),
    )
    logger.info("Runtime started (%s %s)", settings.app_name, settings.app_version)

    try:
        yield runtime
    finally:
        # ---- Shutdown ----
        cache.clear()
        logger.info("Request cache cleared")
        if owns_client:
            await http_client.aclose()
            logger.info("HTTP client closed")
