"""EvaluationResponseSynchronizer.submit_form(): the multi-phase finalizer."""

import asyncio

import pytest

from evalsync.domain.enums import ProgressStatus, ResponseStatus
from evalsync.domain.exceptions import NetworkException, ServerException, SubmissionException


def _answer(synchronizer, person_ids=("p1", "p2"), questions=("q1", "q2", "q3")) -> None:
    for person_id in person_ids:
        for question_id in questions:
            synchronizer.update_response(person_id, question_id, f"{person_id}-{question_id}")


def _payloads(mock) -> list:
    return [c.args[-1] for c in mock.await_args_list]


def _final_progress(gateway) -> list:
    return [c.args[0] for c in gateway.save_progress.await_args_list if c.args[0].is_submission]


@pytest.mark.asyncio
async def test_all_answered_records_are_submitted(synchronizer, responses_gateway) -> None:
    _answer(synchronizer)
    synchronizer.update_response("p1", "q4", "")

    result = await synchronizer.submit_form()

    payloads = _payloads(responses_gateway.create_response)
    assert len(payloads) == 6
    assert {p.status for p in payloads} == {ResponseStatus.SUBMITTED}
    assert result.submitted == 6
    assert result.failed == []
    assert synchronizer.modified == {"p1_q4"}


@pytest.mark.asyncio
async def test_no_successful_persist_aborts_before_later_phases(
    synchronizer, responses_gateway, cache_mock
) -> None:
    """Zero successes raise and no progress, completion or cache call happens."""
    responses_gateway.create_response.side_effect = NetworkException("u", "offline")
    _answer(synchronizer, person_ids=("p1",), questions=("q1", "q2"))

    with pytest.raises(SubmissionException) as exc_info:
        await synchronizer.submit_form()

    assert exc_info.value.message == "No responses were saved successfully"
    assert sorted(exc_info.value.details["failed"]) == ["p1_q1", "p1_q2"]
    responses_gateway.save_progress.assert_not_called()
    responses_gateway.check_all_evaluators_completed.assert_not_called()
    responses_gateway.submit_evaluation.assert_not_called()
    responses_gateway.mark_evaluator_completed.assert_not_called()
    cache_mock.invalidate.assert_not_called()


@pytest.mark.asyncio
async def test_nothing_answered_raises(synchronizer, responses_gateway) -> None:
    synchronizer.update_response("p1", "q1", "")

    with pytest.raises(SubmissionException):
        await synchronizer.submit_form()
    responses_gateway.create_response.assert_not_called()


@pytest.mark.asyncio
async def test_partial_failure_still_submits(synchronizer, responses_gateway) -> None:
    async def create(payload):
        if payload.evaluated_id == "p2":
            raise ServerException("HTTP 502: Bad Gateway", status_code=502)
        return f"id-{payload.question_id}"

    responses_gateway.create_response.side_effect = create
    _answer(synchronizer, questions=("q1",))

    result = await synchronizer.submit_form()

    assert result.submitted == 1
    assert result.failed == ["p2_q1"]
    responses_gateway.mark_evaluator_completed.assert_awaited_once_with("u1", "ev1")


@pytest.mark.asyncio
async def test_failed_update_falls_back_to_create(synchronizer, responses_gateway) -> None:
    synchronizer.update_response("p1", "q1", "x")
    synchronizer.records[0].id = "gone-1"
    responses_gateway.update_response.side_effect = ServerException("HTTP 404: Not Found", 404)

    result = await synchronizer.submit_form()

    responses_gateway.update_response.assert_awaited_once()
    (payload,) = _payloads(responses_gateway.create_response)
    assert payload.status == ResponseStatus.SUBMITTED
    assert synchronizer.records[0].id == "srv-1"
    assert result.submitted == 1


@pytest.mark.asyncio
async def test_reload_merges_server_ids_and_answers(synchronizer, responses_gateway) -> None:
    """Server ids fill local gaps, local edits win, server-only answers are added."""
    synchronizer.update_response("p1", "q1", "local edit")
    responses_gateway.list_responses.side_effect = [
        [
            {"id": 5, "avaliado_id": "p1", "question_id": "q1", "response_value": "server", "status": "draft"},
            {"id": 6, "avaliado_id": "p2", "question_id": "q2", "response_value": "other tab", "status": "draft"},
        ],
        [],
    ]

    result = await synchronizer.submit_form()

    updated = {c.args[0]: c.args[1] for c in responses_gateway.update_response.await_args_list}
    assert updated["5"].response_value == "local edit"
    assert updated["6"].response_value == "other tab"
    responses_gateway.create_response.assert_not_called()
    assert result.submitted == 2


@pytest.mark.asyncio
async def test_reload_failure_submits_local_answers(synchronizer, responses_gateway) -> None:
    responses_gateway.list_responses.side_effect = NetworkException("u", "offline")
    synchronizer.update_response("p1", "q1", "x")

    result = await synchronizer.submit_form()

    assert result.submitted == 1
    assert result.drafts_promoted == 0


@pytest.mark.asyncio
async def test_sweep_promotes_server_drafts(synchronizer, responses_gateway) -> None:
    """Known race: every server draft of the evaluator is finalized, including
    drafts written by another session after this ledger was reloaded."""
    synchronizer.update_response("p1", "q1", "x")
    responses_gateway.list_responses.side_effect = [
        [],
        [
            {"id": 1, "avaliado_id": "p1", "question_id": "q1", "response_value": "x", "status": "submitted"},
            {"id": 9, "avaliado_id": "p2", "question_id": "q4", "response_value": ["a", "b"],
             "form_id": "f1", "status": "draft"},
            {"avaliado_id": "p2", "question_id": "q3", "response_value": "no id", "status": "draft"},
        ],
    ]

    result = await synchronizer.submit_form()

    assert result.drafts_promoted == 1
    response_id, payload = responses_gateway.update_response.await_args.args
    assert response_id == "9"
    assert payload.status == ResponseStatus.SUBMITTED
    assert payload.evaluated_id == "p2"
    assert payload.response_value == '["a", "b"]'


@pytest.mark.asyncio
async def test_sweep_failures_do_not_fail_submission(synchronizer, responses_gateway) -> None:
    synchronizer.update_response("p1", "q1", "x")
    responses_gateway.list_responses.side_effect = [
        [],
        [{"id": 9, "avaliado_id": "p2", "question_id": "q4", "response_value": "y", "status": "draft"}],
    ]
    responses_gateway.update_response.side_effect = ServerException("HTTP 500", 500)

    result = await synchronizer.submit_form()

    assert result.drafts_promoted == 0
    responses_gateway.mark_evaluator_completed.assert_awaited_once()


@pytest.mark.asyncio
async def test_sweep_skips_draft_rows_missing_ids(synchronizer, responses_gateway) -> None:
    """A server draft without question id counts as a failed promotion only."""
    synchronizer.update_response("p1", "q1", "x")
    responses_gateway.list_responses.side_effect = [
        [],
        [
            {"id": "9", "status": "draft", "response_value": "x", "avaliado_id": "p1"},
            {"id": "10", "avaliado_id": "p2", "question_id": "q2", "response_value": "y", "status": "draft"},
        ],
    ]

    result = await synchronizer.submit_form()

    assert result.drafts_promoted == 1
    assert responses_gateway.update_response.await_args.args[0] == "10"
    responses_gateway.mark_evaluator_completed.assert_awaited_once()


@pytest.mark.asyncio
async def test_reloaded_row_without_question_is_ignored(synchronizer, responses_gateway) -> None:
    responses_gateway.list_responses.side_effect = [
        [{"id": 7, "avaliado_id": "p1", "response_value": "orphan", "status": "draft"}],
        [],
    ]
    synchronizer.update_response("p1", "q1", "x")

    result = await synchronizer.submit_form()

    assert result.submitted == 1
    assert result.failed == []
    assert [r.key for r in synchronizer.records] == ["p1_q1"]
    responses_gateway.mark_evaluator_completed.assert_awaited_once()


@pytest.mark.asyncio
async def test_final_progress_counts_in_memory_answers(synchronizer, responses_gateway) -> None:
    _answer(synchronizer, person_ids=("p1",), questions=("q1", "q2", "q3"))
    _answer(synchronizer, person_ids=("p2",), questions=("q1",))

    await synchronizer.submit_form()

    by_person = {p.evaluated_id: p for p in _final_progress(responses_gateway)}
    assert by_person["p1"].answered_questions == by_person["p1"].total_questions == 3
    assert by_person["p2"].answered_questions == 1
    for progress in by_person.values():
        assert progress.percentage == 100.0
        assert progress.status == ProgressStatus.COMPLETED
        assert progress.completed_at is not None
        assert progress.submitted_at == progress.completed_at


@pytest.mark.asyncio
async def test_final_progress_failure_is_tolerated(synchronizer, responses_gateway) -> None:
    responses_gateway.save_progress.side_effect = ServerException("HTTP 500", 500)
    synchronizer.update_response("p1", "q1", "x")

    result = await synchronizer.submit_form()

    assert result.submitted == 1


class TestCompletion:
    """Whole-evaluation completion vs. evaluator-only completion."""

    @pytest.mark.asyncio
    async def test_all_evaluators_done_submits_evaluation(
        self, synchronizer, responses_gateway
    ) -> None:
        responses_gateway.check_all_evaluators_completed.return_value = True
        synchronizer.update_response("p1", "q1", "x")

        result = await synchronizer.submit_form()

        assert result.all_evaluators_completed is True
        responses_gateway.check_all_evaluators_completed.assert_awaited_once_with("ev1")
        responses_gateway.submit_evaluation.assert_awaited_once_with("u1", "ev1")
        responses_gateway.mark_evaluator_completed.assert_not_called()

    @pytest.mark.asyncio
    async def test_others_pending_marks_only_this_evaluator(
        self, synchronizer, responses_gateway
    ) -> None:
        synchronizer.update_response("p1", "q1", "x")

        result = await synchronizer.submit_form()

        assert result.all_evaluators_completed is False
        responses_gateway.mark_evaluator_completed.assert_awaited_once_with("u1", "ev1")
        responses_gateway.submit_evaluation.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_check_counts_as_not_completed(
        self, synchronizer, responses_gateway
    ) -> None:
        responses_gateway.check_all_evaluators_completed.side_effect = NetworkException("u", "x")
        synchronizer.update_response("p1", "q1", "x")

        result = await synchronizer.submit_form()

        assert result.all_evaluators_completed is False
        responses_gateway.mark_evaluator_completed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_completion_call_raises(
        self, synchronizer, responses_gateway, cache_mock
    ) -> None:
        responses_gateway.mark_evaluator_completed.side_effect = ServerException("HTTP 500", 500)
        synchronizer.update_response("p1", "q1", "x")

        with pytest.raises(SubmissionException) as exc_info:
            await synchronizer.submit_form()

        assert exc_info.value.details["all_evaluators_completed"] is False
        assert exc_info.value.details["cause"] == "HTTP 500"
        cache_mock.invalidate.assert_not_called()


@pytest.mark.asyncio
async def test_successful_submit_invalidates_evaluation_cache(synchronizer, cache_mock) -> None:
    synchronizer.update_response("p1", "q1", "x")

    await synchronizer.submit_form()

    invalidated = [c.args[0] for c in cache_mock.invalidate.call_args_list]
    assert invalidated == ["pending-evaluations", "evaluation-details-ev1"]
    cache_mock.invalidate_pattern.assert_called_once_with("evaluator-status-ev1-")


@pytest.mark.asyncio
async def test_second_submit_while_running_is_rejected(synchronizer, responses_gateway) -> None:
    gate = asyncio.Event()

    async def slow_list(*args):
        await gate.wait()
        return []

    responses_gateway.list_responses.side_effect = slow_list
    synchronizer.update_response("p1", "q1", "x")

    first = asyncio.ensure_future(synchronizer.submit_form())
    await asyncio.sleep(0)
    with pytest.raises(SubmissionException, match="already in progress"):
        await synchronizer.submit_form()
    gate.set()

    assert (await first).submitted == 1


@pytest.mark.asyncio
async def test_pending_autosave_is_cancelled_by_submit(synchronizer, responses_gateway) -> None:
    synchronizer.handle_response("p1", "q1", "x")

    await synchronizer.submit_form()
    await asyncio.sleep(0.05)

    statuses = [p.status for p in _payloads(responses_gateway.create_response)]
    assert statuses == [ResponseStatus.SUBMITTED]


@pytest.mark.asyncio
@pytest.mark.parametrize("everyone_done", [True, False])
async def test_answer_autosave_disconnect_reconnect_submit(
    synchronizer, responses_gateway, everyone_done
) -> None:
    """Two people, 3 of 4 questions each: autosave, offline edit, reconnect, submit."""
    responses_gateway.check_all_evaluators_completed.return_value = everyone_done
    for person_id in ("p1", "p2"):
        for question_id in ("q1", "q2", "q3"):
            synchronizer.handle_response(person_id, question_id, "Good")
    await asyncio.sleep(0.05)
    await synchronizer.wait_for_autosave()

    assert synchronizer.modified == set()
    assert all(r.id for r in synchronizer.records)
    draft_progress = {c.args[0].evaluated_id: c.args[0] for c in responses_gateway.save_progress.await_args_list}
    assert draft_progress["p1"].answered_questions == 3
    assert draft_progress["p1"].total_questions == 4

    # Offline: the edit cannot be saved and stays modified.
    responses_gateway.update_response.side_effect = NetworkException("u", "offline")
    synchronizer.handle_response("p2", "q3", "Excellent")
    await asyncio.sleep(0.05)
    await synchronizer.wait_for_autosave()
    assert synchronizer.modified == {"p2_q3"}

    # Back online.
    responses_gateway.update_response.side_effect = None
    responses_gateway.update_response.reset_mock()
    responses_gateway.save_progress.reset_mock()

    result = await synchronizer.submit_form()

    submitted = {c.args[0]: c.args[1] for c in responses_gateway.update_response.await_args_list}
    assert len(submitted) == 6
    assert {p.status for p in submitted.values()} == {ResponseStatus.SUBMITTED}
    edited = [p for p in submitted.values() if p.evaluated_id == "p2" and p.question_id == "q3"]
    assert edited[0].response_value == "Excellent"
    assert result.submitted == 6
    assert synchronizer.modified == set()

    final = {p.evaluated_id: p for p in _final_progress(responses_gateway)}
    assert final["p1"].answered_questions == final["p2"].answered_questions == 3
    if everyone_done:
        responses_gateway.submit_evaluation.assert_awaited_once_with("u1", "ev1")
        responses_gateway.mark_evaluator_completed.assert_not_called()
    else:
        responses_gateway.mark_evaluator_completed.assert_awaited_once_with("u1", "ev1")
        responses_gateway.submit_evaluation.assert_not_called()
