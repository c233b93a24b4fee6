"""Evaluation response synchronizer.

Keeps one evaluator's answers for one evaluation in memory and converges
them to the server:

- update_response() writes the in-memory ledger and marks the record
  modified; it never touches the network.
- save_draft() (usually run through the autosave debouncer) persists
  modified, answered records as drafts. A failed record stays modified
  and is retried on the next cycle; there is no rollback.
- submit_form() reconciles with the server, persists every answered
  record as submitted, sweeps leftover server drafts, finalizes progress
  and marks the evaluation (or just this evaluator) completed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from evalsync.application.services.debouncer import Debouncer
from evalsync.core.cache_keys import (
    evaluation_details_key,
    evaluator_status_pattern,
    pending_evaluations_key,
)
from evalsync.domain.entities.progress import ProgressRecord, count_answered, progress_status
from evalsync.domain.entities.response import (
    ResponseRecord,
    ResponseValue,
    has_answer,
    response_key,
    serialize_value,
)
from evalsync.domain.enums import EvaluatorRelationship, ProgressStatus, ResponseStatus
from evalsync.domain.exceptions import (
    EvalSyncException,
    SubmissionException,
    ValidationException,
)
from evalsync.schemas.mappers import (
    is_response_row,
    response_payload,
    stored_row_payload,
    to_response_record,
)
from evalsync.schemas.operations import ResponsePayload
from evalsync.shared.telemetry.logging import get_logger
from evalsync.shared.telemetry.tracing import add_span_attributes, add_span_event, traced
from evalsync.shared.utils.datetime import utc_now, utc_now_iso

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from evalsync.application.interfaces.cache import IRequestCache
    from evalsync.application.interfaces.gateways import IResponsesGateway

logger = get_logger(__name__)


@dataclass(frozen=True)
class PersonToEvaluate:
    """An evaluated person shown on the evaluator's form."""

    id: str
    name: str = ""
    department: str | None = None
    relationship: EvaluatorRelationship | None = None


@dataclass(kw_only=True)
class DraftSaveResult:
    """Outcome of one draft save cycle."""

    saved: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    progress_updated: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class SubmissionResult:
    """Outcome of a successful submission."""

    evaluation_id: str
    evaluator_id: str
    submitted: int
    failed: list[str] = field(default_factory=list)
    drafts_promoted: int = 0
    all_evaluators_completed: bool = False
    message: str = "Evaluation submitted successfully"


@dataclass(frozen=True)
class MissingAnswer:
    question_id: str
    person_id: str
    person_name: str = ""


@dataclass(kw_only=True)
class FormValidation:
    is_valid: bool
    missing: list[MissingAnswer] = field(default_factory=list)


class EvaluationResponseSynchronizer:
    """In-memory answer ledger of one evaluator with draft autosave and submission."""

    def __init__(
        self,
        *,
        evaluation_id: str,
        form_id: str,
        evaluator_id: str,
        people: Sequence[PersonToEvaluate],
        total_questions: int,
        gateway: IResponsesGateway,
        cache: IRequestCache | None = None,
        debounce_seconds: float = 0.8,
    ) -> None:
        """Initialize an empty ledger.

        Args:
            evaluation_id: Evaluation being answered.
            form_id: Form of the evaluation.
            evaluator_id: User answering the form.
            people: Evaluated people on the form.
            total_questions: Questions per evaluated person (progress denominator).
            gateway: Evaluation responses gateway.
            cache: Request cache whose evaluation entries are invalidated on submit.
            debounce_seconds: Autosave quiescence window.

        Raises:
            ValidationException: If an id is empty or total_questions is negative.
        """
        for name, value in (("evaluation_id", evaluation_id), ("evaluator_id", evaluator_id)):
            if not value or not str(value).strip():
                raise ValidationException(f"{name} is required", field=name)
        if total_questions < 0:
            raise ValidationException(
                f"total_questions must be >= 0, got: {total_questions!r}",
                field="total_questions",
            )
        self.evaluation_id = evaluation_id
        self.form_id = form_id
        self.evaluator_id = evaluator_id
        self.people = list(people)
        self.total_questions = total_questions
        self._gateway = gateway
        self._cache = cache
        self.records: list[ResponseRecord] = []
        self.modified: set[str] = set()
        self.last_saved: datetime | None = None
        self._submitting = False
        # Held by one draft save or submission at a time.
        self._save_lock = asyncio.Lock()
        self._autosave = Debouncer(self.save_draft, debounce_seconds)

    # ---- Ledger ----

    def _find(self, person_id: str, question_id: str) -> ResponseRecord | None:
        for record in self.records:
            if record.person_id == person_id and record.question_id == question_id:
                return record
        return None

    def update_response(self, person_id: str, question_id: str, value: ResponseValue) -> None:
        """Write an answer to the ledger.

        An existing record is always overwritten but only marked modified
        when the value changed. A new record has no id and is always
        marked modified.
        """
        record = self._find(person_id, question_id)
        if record is None:
            self.records.append(
                ResponseRecord(question_id=question_id, person_id=person_id, response=value)
            )
            self.modified.add(response_key(person_id, question_id))
            return
        if record.response != value:
            self.modified.add(record.key)
        record.response = value

    def handle_response(self, person_id: str, question_id: str, value: ResponseValue) -> None:
        """Write an answer and (re)arm the autosave timer."""
        self.update_response(person_id, question_id, value)
        self.schedule_autosave()

    def get_person_response(self, person_id: str, question_id: str) -> ResponseValue:
        """Stored answer for a person and question, or "" when there is none."""
        record = self._find(person_id, question_id)
        return "" if record is None else record.response

    def is_modified(self, person_id: str, question_id: str) -> bool:
        return response_key(person_id, question_id) in self.modified

    def _payload(self, record: ResponseRecord, status: ResponseStatus) -> ResponsePayload:
        return response_payload(
            evaluator_id=self.evaluator_id,
            evaluated_id=record.person_id,
            evaluation_id=self.evaluation_id,
            form_id=self.form_id,
            question_id=record.question_id,
            response_value=serialize_value(record.response),
            status=status,
        )

    # ---- Loading ----

    async def load_saved_responses(self) -> list[ResponseRecord]:
        """Replace the ledger with the server's saved answers.

        When nothing is saved yet (or the read fails) the evaluation is
        marked started instead and the ledger is left as is.
        """
        try:
            rows = await self._gateway.list_responses(self.evaluator_id, self.evaluation_id)
        except EvalSyncException as exc:
            logger.warning(
                "Loading saved responses failed for evaluation %s: %s",
                self.evaluation_id,
                exc.message,
            )
            await self.mark_evaluation_started()
            return self.records

        if not rows:
            logger.info("No saved responses for evaluation %s; starting it", self.evaluation_id)
            await self.mark_evaluation_started()
            return self.records

        self.records = [to_response_record(row) for row in rows if is_response_row(row)]
        if len(self.records) < len(rows):
            logger.warning(
                "Ignored %s saved responses without question or evaluated id",
                len(rows) - len(self.records),
            )
        self.modified.clear()
        logger.info(
            "Loaded %s saved responses for evaluation %s",
            len(self.records),
            self.evaluation_id,
        )
        return self.records

    async def mark_evaluation_started(self) -> None:
        """Save an in_progress progress record with started_at for every evaluated person."""
        now = utc_now_iso()
        await self._save_progress_records(
            ProgressRecord.from_counts(
                evaluator_id=self.evaluator_id,
                evaluated_id=person.id,
                evaluation_id=self.evaluation_id,
                form_id=self.form_id,
                answered=0,
                total=self.total_questions,
                status=ProgressStatus.IN_PROGRESS,
                started_at=now,
                last_activity=now,
            )
            for person in self.people
        )

    # ---- Draft autosave ----

    def schedule_autosave(self) -> None:
        """(Re)arm the autosave timer; save_draft runs once edits go quiet."""
        self._autosave.trigger()

    def cancel_autosave(self) -> None:
        self._autosave.cancel()

    async def flush_autosave(self) -> DraftSaveResult:
        """Run a pending autosave now."""
        return await self._autosave.flush()

    async def wait_for_autosave(self) -> None:
        await self._autosave.wait()

    @property
    def autosave_pending(self) -> bool:
        return self._autosave.pending or self._autosave.running

    def pending_drafts(self) -> list[ResponseRecord]:
        """Modified records that hold an answer (what the next save_draft sends)."""
        return [r for r in self.records if r.key in self.modified and r.is_answered]

    @traced("evaluation_responses.save_draft")
    async def save_draft(self) -> DraftSaveResult:
        """Persist every modified, answered record as a draft.

        Records are sent concurrently: update when the record has an id,
        create otherwise. Progress is then saved for each person with at
        least one acknowledged record, counted from the in-memory ledger.

        Saves never overlap: a call made while another save (or a
        submission) runs waits for it, so a record whose create is still
        in flight is updated afterwards instead of created twice.
        """
        async with self._save_lock:
            return await self._save_modified()

    async def _save_modified(self) -> DraftSaveResult:
        result = DraftSaveResult()
        to_save = self.pending_drafts()
        if not to_save:
            logger.debug("No modified responses to save for evaluation %s", self.evaluation_id)
            return result

        outcomes = await asyncio.gather(*(self._persist_draft(r) for r in to_save))
        saved_people: list[str] = []
        for record, ok in zip(to_save, outcomes):
            if ok:
                result.saved.append(record.key)
                if record.person_id not in saved_people:
                    saved_people.append(record.person_id)
            else:
                result.failed.append(record.key)
        add_span_attributes(drafts_saved=len(result.saved), drafts_failed=len(result.failed))

        now = utc_now_iso()
        updated = await self._save_progress_records(
            ProgressRecord.from_counts(
                evaluator_id=self.evaluator_id,
                evaluated_id=person_id,
                evaluation_id=self.evaluation_id,
                form_id=self.form_id,
                answered=count_answered(self.records, person_id),
                total=self.total_questions,
                status=ProgressStatus.IN_PROGRESS,
                last_activity=now,
            )
            for person_id in saved_people
        )
        result.progress_updated = [p.evaluated_id for p in updated]
        if result.saved:
            self.last_saved = utc_now()
        if result.failed:
            logger.warning(
                "Draft save: %s saved, %s failed (kept for retry)",
                len(result.saved),
                len(result.failed),
            )
        else:
            logger.debug("Draft save: %s saved", len(result.saved))
        return result

    async def _persist_draft(self, record: ResponseRecord) -> bool:
        sent_value = record.response
        try:
            payload = self._payload(record, ResponseStatus.DRAFT)
            if record.is_persisted:
                await self._gateway.update_response(record.id, payload)
            else:
                new_id = await self._gateway.create_response(payload)
                if new_id and not record.id:
                    record.id = new_id
        except EvalSyncException as exc:
            logger.warning("Draft persist failed for %s: %s", record.key, exc.message)
            return False
        # An edit made while the request was in flight stays modified.
        if record.response == sent_value:
            self.modified.discard(record.key)
        return True

    # ---- Progress ----

    async def save_form_progress(self) -> list[ProgressRecord]:
        """Save progress per person; completed (with completed_at) when every question is answered."""
        now = utc_now_iso()
        progress = []
        for person in self.people:
            answered = count_answered(self.records, person.id)
            status = progress_status(answered, self.total_questions)
            progress.append(
                ProgressRecord.from_counts(
                    evaluator_id=self.evaluator_id,
                    evaluated_id=person.id,
                    evaluation_id=self.evaluation_id,
                    form_id=self.form_id,
                    answered=answered,
                    total=self.total_questions,
                    status=status,
                    last_activity=now,
                    completed_at=now if status == ProgressStatus.COMPLETED else None,
                )
            )
        return await self._save_progress_records(progress)

    async def _save_progress_records(
        self, records: Iterable[ProgressRecord]
    ) -> list[ProgressRecord]:
        """Save progress records concurrently; return the ones the server accepted."""
        records = list(records)
        if not records:
            return []

        async def save(progress: ProgressRecord) -> bool:
            try:
                await self._gateway.save_progress(progress)
            except EvalSyncException as exc:
                logger.warning(
                    "Progress save failed for evaluated %s: %s",
                    progress.evaluated_id,
                    exc.message,
                )
                return False
            return True

        outcomes = await asyncio.gather(*(save(p) for p in records))
        return [p for p, ok in zip(records, outcomes) if ok]

    # ---- Validation ----

    def validate_form(self, required_question_ids: Iterable[str]) -> FormValidation:
        """List every (required question, person) pair that has no answer."""
        missing = [
            MissingAnswer(question_id=question_id, person_id=person.id, person_name=person.name)
            for question_id in required_question_ids
            for person in self.people
            if not has_answer(self.get_person_response(person.id, question_id))
        ]
        return FormValidation(is_valid=not missing, missing=missing)

    # ---- Submission ----

    @traced("evaluation_responses.submit_form")
    async def submit_form(self) -> SubmissionResult:
        """Finalize the evaluation for this evaluator.

        Phases run strictly in order: reload and merge, persist answered
        records as submitted, require at least one success, sweep server
        drafts, finalize progress, mark completion, invalidate cache.

        Raises:
            SubmissionException: When no record could be persisted, when a
                submission is already running, or when the completion call
                fails.
        """
        if self._submitting:
            raise SubmissionException(
                "Submission already in progress",
                self.evaluation_id,
                self.evaluator_id,
            )
        self._submitting = True
        try:
            # A draft save landing after the submit pass would flip answers back to draft.
            self._autosave.cancel()
            await self._autosave.wait()
            async with self._save_lock:
                return await self._submit()
        finally:
            self._submitting = False

    async def _submit(self) -> SubmissionResult:
        await self._reload_and_merge()

        to_submit = [r for r in self.records if r.is_answered]
        logger.info(
            "Submitting %s responses for evaluation %s (evaluator %s)",
            len(to_submit),
            self.evaluation_id,
            self.evaluator_id,
        )
        outcomes = await asyncio.gather(*(self._persist_submitted(r) for r in to_submit))
        failed = [r.key for r, ok in zip(to_submit, outcomes) if not ok]
        submitted = len(to_submit) - len(failed)
        add_span_attributes(responses_submitted=submitted, responses_failed=len(failed))

        if submitted == 0:
            raise SubmissionException(
                "No responses were saved successfully",
                self.evaluation_id,
                self.evaluator_id,
                failed=failed,
            )
        if failed:
            logger.warning(
                "%s responses failed to submit; continuing with %s",
                len(failed),
                submitted,
            )

        drafts_promoted = await self._sweep_drafts()
        await self._finalize_progress()
        all_completed = await self._mark_completion()
        self._invalidate_cache()

        logger.info(
            "Evaluation %s submitted by %s (%s responses, all evaluators completed: %s)",
            self.evaluation_id,
            self.evaluator_id,
            submitted,
            all_completed,
        )
        return SubmissionResult(
            evaluation_id=self.evaluation_id,
            evaluator_id=self.evaluator_id,
            submitted=submitted,
            failed=failed,
            drafts_promoted=drafts_promoted,
            all_evaluators_completed=all_completed,
        )

    async def _reload_and_merge(self) -> None:
        """Merge saved server answers into the ledger.

        Server ids fill in missing local ids; the server value wins only
        for records without an unsaved local edit; server-only answers
        are appended. A failed read leaves the ledger untouched.
        """
        try:
            rows = await self._gateway.list_responses(self.evaluator_id, self.evaluation_id)
        except EvalSyncException as exc:
            logger.warning("Reload before submit failed, using local answers: %s", exc.message)
            return
        for row in rows:
            if not is_response_row(row):
                logger.warning("Reload skipped a response without question or evaluated id")
                continue
            server = to_response_record(row)
            local = self._find(server.person_id, server.question_id)
            if local is None:
                self.records.append(server)
                continue
            if not local.id and server.id:
                local.id = server.id
            if local.key not in self.modified:
                local.response = server.response

    async def _persist_submitted(self, record: ResponseRecord) -> bool:
        try:
            payload = self._payload(record, ResponseStatus.SUBMITTED)
        except ValidationException as exc:
            logger.warning("Submit of %s skipped: %s", record.key, exc.message)
            return False
        if record.is_persisted:
            try:
                await self._gateway.update_response(record.id, payload)
                self.modified.discard(record.key)
                return True
            except EvalSyncException as exc:
                logger.warning(
                    "Update of response %s failed (%s); retrying as create",
                    record.id,
                    exc.message,
                )
        try:
            new_id = await self._gateway.create_response(payload)
        except EvalSyncException as exc:
            logger.warning("Submit of %s failed: %s", record.key, exc.message)
            return False
        if new_id:
            record.id = new_id
        self.modified.discard(record.key)
        return True

    async def _sweep_drafts(self) -> int:
        """Promote every server answer of this evaluator still marked draft.

        Includes drafts this ledger never saw (e.g. from another session).
        Best effort: failures are logged and never fail the submission.
        """
        try:
            rows = await self._gateway.list_responses(self.evaluator_id, self.evaluation_id)
        except EvalSyncException as exc:
            logger.warning("Draft sweep skipped, reading responses failed: %s", exc.message)
            return 0
        drafts = [
            row for row in rows
            if row.get("status") == ResponseStatus.DRAFT.value and row.get("id")
        ]
        if not drafts:
            return 0

        async def promote(row: dict[str, Any]) -> bool:
            try:
                payload = stored_row_payload(
                    row,
                    evaluator_id=self.evaluator_id,
                    evaluation_id=self.evaluation_id,
                    status=ResponseStatus.SUBMITTED,
                )
                await self._gateway.update_response(str(row["id"]), payload)
            except EvalSyncException as exc:
                logger.warning("Draft sweep failed for response %s: %s", row["id"], exc.message)
                return False
            return True

        promoted = sum(await asyncio.gather(*(promote(row) for row in drafts)))
        logger.info("Draft sweep promoted %s of %s drafts", promoted, len(drafts))
        return promoted

    async def _finalize_progress(self) -> None:
        """Mark each person's progress completed, counted from the in-memory ledger."""
        now = utc_now_iso()
        progress = []
        for person in self.people:
            answered = count_answered(self.records, person.id)
            progress.append(
                ProgressRecord(
                    evaluator_id=self.evaluator_id,
                    evaluated_id=person.id,
                    evaluation_id=self.evaluation_id,
                    form_id=self.form_id,
                    total_questions=answered,
                    answered_questions=answered,
                    percentage=100.0,
                    status=ProgressStatus.COMPLETED,
                    last_activity=now,
                    completed_at=now,
                    submitted_at=now,
                    is_submission=True,
                )
            )
        saved = await self._save_progress_records(progress)
        if len(saved) < len(progress):
            logger.warning(
                "Final progress saved for %s of %s people", len(saved), len(progress)
            )

    async def _mark_completion(self) -> bool:
        """Complete the whole evaluation when every evaluator is done, else only this evaluator.

        A failing check counts as "not all completed".
        """
        try:
            all_completed = await self._gateway.check_all_evaluators_completed(
                self.evaluation_id
            )
        except EvalSyncException as exc:
            logger.warning("Completion check failed, treating as incomplete: %s", exc.message)
            all_completed = False

        try:
            if all_completed:
                await self._gateway.submit_evaluation(self.evaluator_id, self.evaluation_id)
            else:
                await self._gateway.mark_evaluator_completed(
                    self.evaluator_id, self.evaluation_id
                )
        except EvalSyncException as exc:
            raise SubmissionException(
                "Failed to mark the evaluation as completed",
                self.evaluation_id,
                self.evaluator_id,
                cause=exc.message,
                all_evaluators_completed=all_completed,
            ) from exc
        add_span_event("evaluation.completed", {"all_evaluators_completed": all_completed})
        return all_completed

    def _invalidate_cache(self) -> None:
        if self._cache is None:
            return
        self._cache.invalidate(pending_evaluations_key())
        self._cache.invalidate(evaluation_details_key(self.evaluation_id))
        self._cache.invalidate_pattern(evaluator_status_pattern(self.evaluation_id))
