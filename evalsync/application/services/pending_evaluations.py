"""Cached reads of evaluations, evaluation details and evaluator status.

All reads go through the shared request cache under named keys so that
the synchronizer's invalidation after a submission reaches every
subscribed view.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from evalsync.core.cache_keys import (
    evaluation_details_key,
    evaluator_status_key,
    evaluator_status_pattern,
    pending_evaluations_key,
)
from evalsync.domain.entities.roster import EvaluationDetail
from evalsync.domain.enums import EvaluatorStatus
from evalsync.domain.exceptions import EvalSyncException
from evalsync.schemas.mappers import extract_data, normalize_evaluations, to_evaluation_detail
from evalsync.schemas.operations import ReadAllRequest, ReadRequest, to_wire
from evalsync.shared.telemetry.logging import get_logger
from evalsync.shared.telemetry.tracing import traced

if TYPE_CHECKING:
    from evalsync.application.interfaces.cache import IRequestCache

logger = get_logger(__name__)


@dataclass(kw_only=True)
class EvaluatorStatusSummary:
    """Evaluator status of one user across several evaluations."""

    statuses: dict[str, EvaluatorStatus] = field(default_factory=dict)

    def count(self, status: EvaluatorStatus) -> int:
        return sum(1 for s in self.statuses.values() if s == status)

    @property
    def pending(self) -> int:
        return self.count(EvaluatorStatus.PENDING)

    @property
    def in_progress(self) -> int:
        return self.count(EvaluatorStatus.IN_PROGRESS)

    @property
    def completed(self) -> int:
        return self.count(EvaluatorStatus.COMPLETED)


def _as_status(value: Any) -> EvaluatorStatus:
    try:
        return EvaluatorStatus(value)
    except ValueError:
        return EvaluatorStatus.PENDING


class PendingEvaluationsService:
    """Evaluations a user still has to answer, backed by the request cache."""

    def __init__(
        self,
        cache: IRequestCache,
        *,
        evaluations_url: str,
        pending_ttl: float = 120,
        details_ttl: float = 180,
        status_ttl: float = 60,
    ) -> None:
        self._cache = cache
        self._url = evaluations_url
        self.pending_ttl = pending_ttl
        self.details_ttl = details_ttl
        self.status_ttl = status_ttl

    async def get_evaluations(self, *, force_refresh: bool = False) -> list[dict[str, Any]]:
        """Every evaluation (rows with an id and a name), cached under pending-evaluations."""
        fetch = self._cache.force_refresh if force_refresh else self._cache.fetch_with_cache
        raw = await fetch(
            self._url,
            json=to_wire(ReadAllRequest()),
            ttl=self.pending_ttl,
            key=pending_evaluations_key(),
        )
        return normalize_evaluations(extract_data(raw))

    @traced("pending_evaluations.get_pending_evaluations")
    async def get_pending_evaluations(self, user_id: str) -> list[dict[str, Any]]:
        """Evaluations in which user_id is an evaluator.

        Details are checked concurrently; an evaluation whose detail
        cannot be read is left out.
        """
        evaluations = await self.get_evaluations()

        async def is_evaluator(evaluation: dict[str, Any]) -> bool:
            try:
                detail = await self.get_evaluation_details(str(evaluation["id"]))
            except EvalSyncException as exc:
                logger.warning(
                    "Could not check evaluators of evaluation %s: %s",
                    evaluation["id"],
                    exc.message,
                )
                return False
            return detail is not None and detail.evaluator_for_user(user_id) is not None

        checks = await asyncio.gather(*(is_evaluator(e) for e in evaluations))
        return [e for e, keep in zip(evaluations, checks) if keep]

    async def get_evaluation_details(
        self, evaluation_id: str, *, force_refresh: bool = False
    ) -> EvaluationDetail | None:
        """Evaluation with its evaluated people and evaluators, or None when absent."""
        fetch = self._cache.force_refresh if force_refresh else self._cache.fetch_with_cache
        raw = await fetch(
            self._url,
            json=to_wire(ReadRequest(id=evaluation_id)),
            ttl=self.details_ttl,
            key=evaluation_details_key(evaluation_id),
        )
        return to_evaluation_detail(extract_data(raw))

    async def get_evaluator_status(self, evaluation_id: str, user_id: str) -> EvaluatorStatus:
        """Status of user_id as an evaluator in one evaluation.

        Cached for status_ttl. Falls back to PENDING (uncached) when the
        evaluation detail cannot be read.
        """
        key = evaluator_status_key(evaluation_id, user_id)
        cached = self._cache.get(key)
        if cached is not None:
            return _as_status(cached)

        try:
            detail = await self.get_evaluation_details(evaluation_id)
        except EvalSyncException as exc:
            logger.warning(
                "Evaluator status unavailable for evaluation %s: %s", evaluation_id, exc.message
            )
            return EvaluatorStatus.PENDING
        if detail is None:
            return EvaluatorStatus.PENDING

        evaluator = detail.evaluator_for_user(user_id)
        status = evaluator.status if evaluator is not None else EvaluatorStatus.PENDING
        self._cache.set(key, status.value, ttl=self.status_ttl)
        return status

    async def get_evaluator_statuses(
        self, evaluation_ids: Iterable[str], user_id: str
    ) -> EvaluatorStatusSummary:
        """Evaluator status of user_id in each evaluation, fetched concurrently."""
        ids = list(dict.fromkeys(evaluation_ids))
        statuses = await asyncio.gather(
            *(self.get_evaluator_status(evaluation_id, user_id) for evaluation_id in ids)
        )
        return EvaluatorStatusSummary(statuses=dict(zip(ids, statuses)))

    def invalidate_cache(self, evaluation_id: str | None = None) -> None:
        """Drop the evaluations list and, when given, one evaluation's detail and statuses."""
        if evaluation_id:
            self._cache.invalidate(evaluation_details_key(evaluation_id))
            self._cache.invalidate_pattern(evaluator_status_pattern(evaluation_id))
        self._cache.invalidate(pending_evaluations_key())

    async def refresh_cache(self, user_id: str) -> list[dict[str, Any]]:
        self.invalidate_cache()
        return await self.get_pending_evaluations(user_id)

    def subscribe(self, callback: Callable[[list[dict[str, Any]]], None]) -> Callable[[], None]:
        """Call callback with the normalized evaluations list on every refresh."""
        return self._cache.subscribe(
            pending_evaluations_key(),
            lambda raw: callback(normalize_evaluations(extract_data(raw))),
        )

    def subscribe_to_evaluation_details(
        self,
        evaluation_id: str,
        callback: Callable[[EvaluationDetail | None], None],
    ) -> Callable[[], None]:
        return self._cache.subscribe(
            evaluation_details_key(evaluation_id),
            lambda raw: callback(to_evaluation_detail(extract_data(raw))),
        )

    def subscribe_to_evaluator_status(
        self,
        evaluation_id: str,
        user_id: str,
        callback: Callable[[EvaluatorStatus], None],
    ) -> Callable[[], None]:
        return self._cache.subscribe(
            evaluator_status_key(evaluation_id, user_id),
            lambda raw: callback(_as_status(raw)),
        )
