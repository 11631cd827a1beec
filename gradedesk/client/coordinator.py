"""
Bulk return of submissions to students.

A return runs in two phases, in order, and is NOT atomic as a whole:

1. mark-returned: one batched request flips every selected submission to
   returned. If it fails nothing changes locally and no grade is sent.
2. grade flush: each selected id with a staged (non-null) grade gets its
   own grade update, one at a time, in selection order. The first failure
   stops the loop.

Once phase 1 succeeds every selected row is returned, even when some of
their grades never made it. Such a row keeps its staged grade in the
buffer and is listed in `ReturnResult.grade_flush_failures`, so a later
`retry_grade_flush` can target exactly those ids without repeating
phase 1. Returned rows are never rolled back to turned in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from gradedesk.client.api import GradingApi
from gradedesk.client.buffer import GradeBuffer
from gradedesk.client.errors import GradingError, PartialBatchFailure, ValidationError
from gradedesk.client.state import RowStatus, replace_rows, status_of, transition
from gradedesk.schemas.roster import RosterRow, RosterSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReturnResult:
    snapshot: RosterSnapshot
    committed_ids: list[int] = field(default_factory=list)
    flushed_ids: list[int] = field(default_factory=list)
    grade_flush_failures: list[int] = field(default_factory=list)
    failed_id: int | None = None
    error: GradingError | None = None

    @property
    def partial_failure(self) -> PartialBatchFailure | None:
        if self.error is None:
            return None
        return PartialBatchFailure(self.committed_ids, self.grade_flush_failures, self.error)

    def raise_for_partial(self) -> None:
        failure = self.partial_failure
        if failure is not None:
            raise failure


@dataclass
class _FlushOutcome:
    flushed: dict[int, int] = field(default_factory=dict)
    failures: list[int] = field(default_factory=list)
    failed_id: int | None = None
    error: GradingError | None = None


class ReturnCoordinator:
    def __init__(self, api: GradingApi, buffer: GradeBuffer):
        self._api = api
        self._buffer = buffer

    def bulk_return(self, snapshot: RosterSnapshot, submission_ids: Iterable[int]) -> ReturnResult:
        """
        Return ``submission_ids`` (selection order is kept, duplicates dropped).

        Raises:
            ValidationError: an id is not a turned-in row of ``snapshot``;
                nothing is sent.
            GradingError: the mark-returned request failed; nothing changed.
        """
        ids = list(dict.fromkeys(submission_ids))
        if not ids:
            return ReturnResult(snapshot)

        rows = self._rows_for(snapshot, ids)

        self._api.mark_returned(snapshot.item_id, ids)
        logger.info("item %s: marked %d submission(s) returned", snapshot.item_id, len(ids))

        outcome = self._flush(ids)

        updated: dict[int, RosterRow] = {}
        for sid in ids:
            row = transition(rows[sid], RowStatus.RETURNED)
            if sid in outcome.flushed:
                row = row.model_copy(update={"grade": outcome.flushed[sid]})
            updated[sid] = row

        return ReturnResult(
            snapshot=replace_rows(snapshot, updated),
            committed_ids=ids,
            flushed_ids=list(outcome.flushed),
            grade_flush_failures=outcome.failures,
            failed_id=outcome.failed_id,
            error=outcome.error,
        )

    def retry_grade_flush(self, snapshot: RosterSnapshot, submission_ids: Iterable[int]) -> ReturnResult:
        """Re-run only the grade flush for rows that are already returned."""
        ids = list(dict.fromkeys(submission_ids))
        for sid in ids:
            row = snapshot.find_row(sid)
            if row is None or status_of(row) is not RowStatus.RETURNED:
                raise ValidationError(f"Submission {sid} has not been returned")

        outcome = self._flush(ids)
        updated = {
            sid: snapshot.find_row(sid).model_copy(update={"grade": grade})
            for sid, grade in outcome.flushed.items()
        }

        return ReturnResult(
            snapshot=replace_rows(snapshot, updated),
            flushed_ids=list(outcome.flushed),
            grade_flush_failures=outcome.failures,
            failed_id=outcome.failed_id,
            error=outcome.error,
        )

    def _rows_for(self, snapshot: RosterSnapshot, ids: list[int]) -> dict[int, RosterRow]:
        rows: dict[int, RosterRow] = {}
        for sid in ids:
            row = snapshot.find_row(sid)
            if row is None or status_of(row) is RowStatus.ASSIGNED:
                raise ValidationError(f"Submission {sid} is not turned in on item {snapshot.item_id}")
            rows[sid] = row
        return rows

    def _flush(self, ids: list[int]) -> _FlushOutcome:
        outcome = _FlushOutcome()
        staged = [(sid, self._buffer.get(sid)) for sid in ids]
        to_send = [(sid, grade) for sid, grade in staged if grade is not None]

        # strictly sequential; stop at the first failure
        for index, (sid, grade) in enumerate(to_send):
            try:
                self._api.set_grade(sid, grade)
            except GradingError as e:
                outcome.failures = [s for s, _ in to_send[index:]]
                outcome.failed_id = sid
                outcome.error = e
                logger.warning(
                    "grade flush stopped at submission %s (%s); %d grade(s) not sent",
                    sid,
                    e,
                    len(outcome.failures),
                )
                break

            outcome.flushed[sid] = grade
            self._buffer.unstage(sid)

        return outcome
