"""
Local staging of grades that students cannot see yet.

`GradeBuffer` holds grades the teacher typed for turned-in submissions
that have not been returned. Nothing in it reaches the server until a
bulk return flushes it (see :mod:`gradedesk.client.coordinator`).

`GradeCommitter` is the single entry point for a grade edit:
    - the row's grade changes locally right away
    - unreturned rows: the value is staged, no request is made
    - returned rows: one PATCH is sent immediately; a failure is reported
      but the local value stays and nothing is retried
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass

from gradedesk.client.api import GradingApi
from gradedesk.client.errors import GradingError, NotFoundError
from gradedesk.client.outcome import RemoteOutcome
from gradedesk.client.state import GradeInput, RowStatus, clamp_grade, replace_rows, status_of, with_grade
from gradedesk.schemas.roster import RosterSnapshot

logger = logging.getLogger(__name__)


class GradeBuffer:
    """
    Staged grades keyed by submission id, in the order they were entered.

    Notes:
        - A staged value of None records that the teacher cleared the grade;
          it is kept for display but never flushed.
        - No validation is done on ids; callers pass ids from the snapshot.
    """

    def __init__(self):
        self._staged: dict[int, int | None] = {}

    def stage(self, submission_id: int, grade: int | None) -> None:
        # re-staging moves the entry to the end, matching entry order
        self._staged.pop(submission_id, None)
        self._staged[submission_id] = grade

    def unstage(self, submission_id: int) -> None:
        self._staged.pop(submission_id, None)

    def get(self, submission_id: int) -> int | None:
        return self._staged.get(submission_id)

    def __contains__(self, submission_id: object) -> bool:
        return submission_id in self._staged

    def __len__(self) -> int:
        return len(self._staged)

    def clear(self) -> None:
        """Remove all staged grades."""
        self._staged.clear()

    def is_empty(self) -> bool:
        return not self._staged

    def staged_map(self) -> dict[int, int | None]:
        """Shallow copy of the staging dictionary."""
        return self._staged.copy()

    def pending(self, submission_ids: Collection[int] | None = None) -> list[tuple[int, int]]:
        """
        Staged grades that would be sent on return.

        Args:
            submission_ids: if given, only these ids are considered.

        Returns:
            list[tuple[int, int]]: (submission_id, grade) pairs, null entries excluded.
        """
        wanted = set(submission_ids) if submission_ids is not None else None
        return [
            (sid, grade)
            for sid, grade in self._staged.items()
            if grade is not None and (wanted is None or sid in wanted)
        ]

    def discard_except(self, keep_ids: Collection[int]) -> list[int]:
        """Drop every entry not in ``keep_ids`` and return the dropped ids."""
        keep = set(keep_ids)
        dropped = [sid for sid in self._staged if sid not in keep]
        for sid in dropped:
            del self._staged[sid]
        return dropped


@dataclass(frozen=True)
class CommitResult:
    snapshot: RosterSnapshot
    grade: int | None
    applied_locally: bool
    remote_outcome: RemoteOutcome


class GradeCommitter:
    def __init__(self, api: GradingApi, buffer: GradeBuffer):
        self._api = api
        self._buffer = buffer

    def commit(
        self,
        snapshot: RosterSnapshot,
        submission_id: int,
        proposed: GradeInput,
    ) -> CommitResult:
        row = snapshot.find_row(submission_id)
        if row is None:
            raise NotFoundError(f"Submission {submission_id} is not on this roster")

        grade = clamp_grade(proposed, snapshot.max_points)
        updated = replace_rows(snapshot, {submission_id: with_grade(row, grade)})

        if status_of(row) is not RowStatus.RETURNED:
            self._buffer.stage(submission_id, grade)
            logger.debug("staged grade %s for submission %s", grade, submission_id)
            return CommitResult(updated, grade, True, RemoteOutcome.skipped())

        # already visible to the student: write through, no rollback on failure
        try:
            self._api.set_grade(submission_id, grade)
        except GradingError as e:
            logger.warning("grade update for returned submission %s failed: %s", submission_id, e)
            # a leftover entry from a failed flush tracks the latest edit
            if submission_id in self._buffer:
                self._buffer.stage(submission_id, grade)
            return CommitResult(updated, grade, True, RemoteOutcome.failed(e))

        self._buffer.unstage(submission_id)
        return CommitResult(updated, grade, True, RemoteOutcome.ok())
