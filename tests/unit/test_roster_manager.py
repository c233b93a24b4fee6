"""RosterManager: queries, server-confirmed additions and optimistic removal."""

import copy
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from evalsync.application.services.roster_manager import (
    EvaluatorAssignment,
    Notification,
    RosterManager,
    log_notifier,
)
from evalsync.domain.entities.roster import (
    EvaluatedEntity,
    EvaluationDetail,
    EvaluationEntity,
    EvaluatorEntity,
)
from evalsync.domain.enums import EvaluatorRelationship, NotificationLevel
from evalsync.domain.exceptions import (
    NetworkException,
    ResourceNotFoundException,
    ServerException,
    ValidationException,
)


def _detail() -> EvaluationDetail:
    return EvaluationDetail(
        evaluation=EvaluationEntity(id="ev1", name="Q1 review", form_id="f1", status="active"),
        evaluated=[
            EvaluatedEntity(id="a1", user_id="emp1", evaluation_id="ev1"),
            EvaluatedEntity(id="a2", user_id="emp2", evaluation_id="ev1"),
        ],
        evaluators=[
            EvaluatorEntity(id="x1", user_id="boss", evaluation_id="ev1", evaluated_id="a1",
                            relationship=EvaluatorRelationship.LEADER),
            EvaluatorEntity(id="x2", user_id="peer", evaluation_id="ev1", evaluated_id="a1",
                            relationship=EvaluatorRelationship.TEAMMATE),
            EvaluatorEntity(id="x3", user_id="emp1", evaluation_id="ev1", evaluated_id="a1",
                            relationship=EvaluatorRelationship.SELF),
            EvaluatorEntity(id="x4", user_id="boss", evaluation_id="ev1", evaluated_id="a2",
                            relationship=EvaluatorRelationship.LEADER),
        ],
    )


@pytest.fixture
def roster_gateway() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def evaluations() -> MagicMock:
    """Mock PendingEvaluationsService returning a fresh detail on every read."""
    service = MagicMock()
    service.get_evaluation_details = AsyncMock(side_effect=lambda *a, **kw: _detail())
    service.unsubscribe = MagicMock()
    service.subscribe_to_evaluation_details.return_value = service.unsubscribe
    return service


@pytest.fixture
def notifications() -> list[Notification]:
    return []


@pytest_asyncio.fixture
async def manager(roster_gateway, evaluations, notifications) -> RosterManager:
    roster = RosterManager(
        evaluation_id="ev1",
        gateway=roster_gateway,
        evaluations=evaluations,
        notifier=notifications.append,
    )
    await roster.load()
    evaluations.get_evaluation_details.reset_mock()
    return roster


class TestLoad:
    @pytest.mark.asyncio
    async def test_load_subscribes_once(self, manager, evaluations) -> None:
        await manager.refresh()

        evaluations.subscribe_to_evaluation_details.assert_called_once()
        evaluations.get_evaluation_details.assert_awaited_once_with("ev1", force_refresh=True)

    @pytest.mark.asyncio
    async def test_missing_evaluation_raises(self, roster_gateway, evaluations) -> None:
        evaluations.get_evaluation_details.side_effect = None
        evaluations.get_evaluation_details.return_value = None
        roster = RosterManager(evaluation_id="nope", gateway=roster_gateway, evaluations=evaluations)

        with pytest.raises(ResourceNotFoundException):
            await roster.load()

    @pytest.mark.asyncio
    async def test_refreshed_detail_replaces_roster(self, manager, evaluations) -> None:
        on_detail = evaluations.subscribe_to_evaluation_details.call_args.args[1]
        refreshed = _detail()
        refreshed.evaluators = refreshed.evaluators[:1]

        on_detail(refreshed)
        assert [e.id for e in manager.evaluators] == ["x1"]

        on_detail(None)
        assert [e.id for e in manager.evaluators] == ["x1"]

    @pytest.mark.asyncio
    async def test_close_unsubscribes(self, manager, evaluations) -> None:
        manager.close()
        manager.close()

        evaluations.unsubscribe.assert_called_once()

    def test_requires_evaluation_id(self, roster_gateway, evaluations) -> None:
        with pytest.raises(ValidationException):
            RosterManager(evaluation_id="", gateway=roster_gateway, evaluations=evaluations)


class TestQueries:
    @pytest.mark.asyncio
    async def test_evaluators_grouped_by_relationship(self, manager) -> None:
        groups = manager.evaluators_by_evaluated("a1")

        assert set(groups) == set(EvaluatorRelationship)
        assert [e.user_id for e in groups[EvaluatorRelationship.LEADER]] == ["boss"]
        assert [e.user_id for e in groups[EvaluatorRelationship.TEAMMATE]] == ["peer"]
        assert [e.user_id for e in groups[EvaluatorRelationship.SELF]] == ["emp1"]
        assert groups[EvaluatorRelationship.OTHER] == []

    @pytest.mark.asyncio
    async def test_membership_checks(self, manager) -> None:
        assert manager.is_user_evaluator_of("boss", "a2")
        assert not manager.is_user_evaluator_of("peer", "a2")
        assert manager.is_employee_evaluated("emp2")
        assert not manager.is_employee_evaluated("boss")

    def test_unloaded_roster_is_empty(self, roster_gateway, evaluations) -> None:
        roster = RosterManager(evaluation_id="ev1", gateway=roster_gateway, evaluations=evaluations)

        assert roster.evaluators == []
        assert roster.evaluated == []
        assert all(v == [] for v in roster.evaluators_by_evaluated("a1").values())


class TestRemoveEvaluator:
    """Optimistic removal with snapshot rollback."""

    @pytest.mark.asyncio
    async def test_removal_is_applied_before_the_call(
        self, manager, roster_gateway, evaluations, notifications
    ) -> None:
        seen_during_call = []

        async def delete(evaluator_id):
            seen_during_call.extend(e.id for e in manager.evaluators)

        roster_gateway.delete_evaluator.side_effect = delete

        await manager.remove_evaluator("x2")

        assert seen_during_call == ["x1", "x3", "x4"]
        assert [e.id for e in manager.evaluators] == ["x1", "x3", "x4"]
        evaluations.invalidate_cache.assert_called_once_with("ev1")
        assert notifications[-1].level == NotificationLevel.SUCCESS

    @pytest.mark.asyncio
    async def test_failed_delete_restores_snapshot(
        self, manager, roster_gateway, evaluations, notifications
    ) -> None:
        before = copy.deepcopy(manager.detail)
        roster_gateway.delete_evaluator.side_effect = ServerException("HTTP 500: Internal Server Error", 500)

        with pytest.raises(ServerException):
            await manager.remove_evaluator("x2")

        assert manager.detail == before
        assert notifications == [
            Notification(NotificationLevel.ERROR, "Failed to remove evaluator", "HTTP 500: Internal Server Error")
        ]
        evaluations.invalidate_cache.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_evaluator_makes_no_call(self, manager, roster_gateway) -> None:
        with pytest.raises(ResourceNotFoundException):
            await manager.remove_evaluator("x99")

        roster_gateway.delete_evaluator.assert_not_called()

    @pytest.mark.asyncio
    async def test_remove_requires_loaded_roster(self, roster_gateway, evaluations) -> None:
        roster = RosterManager(evaluation_id="ev1", gateway=roster_gateway, evaluations=evaluations)

        with pytest.raises(ValidationException):
            await roster.remove_evaluator("x1")


class TestAdditions:
    """Additions wait for the server and then reload the roster."""

    @pytest.mark.asyncio
    async def test_add_evaluator_creates_then_refetches(
        self, manager, roster_gateway, evaluations, notifications
    ) -> None:
        await manager.add_evaluator(
            user_id="peer", evaluated_id="a2", relationship=EvaluatorRelationship.TEAMMATE
        )

        (payload,) = roster_gateway.create_evaluator.await_args.args
        assert payload.user_id == "peer"
        assert payload.evaluation_id == "ev1"
        assert payload.evaluated_id == "a2"
        assert payload.relationship == EvaluatorRelationship.TEAMMATE
        evaluations.get_evaluation_details.assert_awaited_once_with("ev1", force_refresh=True)
        assert notifications[-1].level == NotificationLevel.SUCCESS

    @pytest.mark.asyncio
    async def test_duplicate_evaluator_rejected(self, manager, roster_gateway) -> None:
        with pytest.raises(ValidationException):
            await manager.add_evaluator(
                user_id="boss", evaluated_id="a1", relationship=EvaluatorRelationship.LEADER
            )
        roster_gateway.create_evaluator.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_addition_leaves_roster_and_notifies(
        self, manager, roster_gateway, evaluations, notifications
    ) -> None:
        roster_gateway.create_evaluator.side_effect = NetworkException("u", "offline")

        with pytest.raises(NetworkException):
            await manager.add_evaluator(
                user_id="peer", evaluated_id="a2", relationship=EvaluatorRelationship.TEAMMATE
            )

        assert len(manager.evaluators) == 4
        evaluations.get_evaluation_details.assert_not_called()
        assert notifications[-1].level == NotificationLevel.ERROR
        assert notifications[-1].title == "Failed to add evaluator"

    @pytest.mark.asyncio
    async def test_add_evaluators_skips_existing_links(self, manager, roster_gateway) -> None:
        await manager.add_evaluators([
            EvaluatorAssignment("boss", "a1", EvaluatorRelationship.LEADER),
            EvaluatorAssignment("peer", "a2", EvaluatorRelationship.TEAMMATE),
            EvaluatorAssignment("peer", "a2", EvaluatorRelationship.TEAMMATE),
        ])

        (payloads,) = roster_gateway.create_evaluators.await_args.args
        assert [(p.user_id, p.evaluated_id) for p in payloads] == [("peer", "a2")]

    @pytest.mark.asyncio
    async def test_add_evaluators_with_nothing_new_makes_no_call(
        self, manager, roster_gateway
    ) -> None:
        await manager.add_evaluators([EvaluatorAssignment("boss", "a1", EvaluatorRelationship.LEADER)])

        roster_gateway.create_evaluators.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_evaluated(self, manager, roster_gateway, evaluations) -> None:
        await manager.add_evaluated("emp3")

        (payload,) = roster_gateway.create_evaluated.await_args.args
        assert (payload.user_id, payload.evaluation_id) == ("emp3", "ev1")
        evaluations.get_evaluation_details.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_evaluated_rejected(self, manager, roster_gateway) -> None:
        with pytest.raises(ValidationException):
            await manager.add_evaluated("emp1")
        roster_gateway.create_evaluated.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_evaluated_many_dedups(self, manager, roster_gateway) -> None:
        await manager.add_evaluated_many(["emp1", "emp3", "emp4", "emp3"])

        (payloads,) = roster_gateway.create_evaluated_many.await_args.args
        assert [p.user_id for p in payloads] == ["emp3", "emp4"]

    @pytest.mark.asyncio
    async def test_remove_evaluated_refetches(self, manager, roster_gateway, evaluations) -> None:
        await manager.remove_evaluated("a2")

        roster_gateway.delete_evaluated.assert_awaited_once_with("a2")
        evaluations.get_evaluation_details.assert_awaited_once_with("ev1", force_refresh=True)


def test_log_notifier_logs_errors(caplog) -> None:
    with caplog.at_level("INFO"):
        log_notifier(Notification(NotificationLevel.ERROR, "Failed", "boom"))
        log_notifier(Notification(NotificationLevel.SUCCESS, "Done", "ev1"))

    assert [r.levelname for r in caplog.records] == ["ERROR", "INFO"]
    assert caplog.records[0].getMessage() == "Failed: boom"
