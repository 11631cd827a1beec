"""
One teacher's open roster for one gradable item.

`RosterSession` owns the snapshot + grade buffer pair and wires the
loader, gate, committer and return coordinator to it. Actions on one
session are expected to be serialised by the caller; sessions for
different items share nothing and can run side by side.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from gradedesk.client.api import GradingApi
from gradedesk.client.buffer import CommitResult, GradeBuffer, GradeCommitter
from gradedesk.client.coordinator import ReturnCoordinator, ReturnResult
from gradedesk.client.errors import GradingError, LoadCancelled
from gradedesk.client.gate import AcceptingGate, GateResult
from gradedesk.client.loader import CancelToken, RosterLoader
from gradedesk.client.state import GradeInput
from gradedesk.client.view import RosterFilter, RosterSummary, SortKind, build_view, summarize
from gradedesk.schemas.roster import RosterRow, RosterSnapshot

logger = logging.getLogger(__name__)


class RosterSession:
    def __init__(self, api: GradingApi, item_id: int):
        self.item_id = item_id
        self.buffer = GradeBuffer()
        self._loader = RosterLoader(api)
        self._gate = AcceptingGate(api)
        self._committer = GradeCommitter(api, self.buffer)
        self._coordinator = ReturnCoordinator(api, self.buffer)
        self._snapshot: RosterSnapshot | None = None
        self._inflight: CancelToken | None = None

    @property
    def snapshot(self) -> RosterSnapshot:
        if self._snapshot is None:
            raise GradingError(f"Roster for item {self.item_id} has not been loaded")
        return self._snapshot

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def unsaved_staged_ids(self) -> list[int]:
        """Staged grades the next `reload` would throw away."""
        if self._snapshot is None:
            return []
        return RosterLoader.discarded_on_reload(self._snapshot, self.buffer)

    def reload(self) -> RosterSnapshot:
        """
        Replace the snapshot with the server's current state.

        Supersedes any load still in flight for this session. Staged grades
        for rows that are not returned are discarded; check
        `unsaved_staged_ids` first if the teacher should be warned.
        """
        if self._inflight is not None:
            self._inflight.cancel()
        token = self._inflight = CancelToken()

        try:
            snapshot = self._loader.load(self.item_id, self.buffer, cancel=token)
        finally:
            if self._inflight is token:
                self._inflight = None

        # a newer reload may have started after the loader's own check
        if token.cancelled:
            raise LoadCancelled(f"Load of item {self.item_id} was superseded")

        self._snapshot = snapshot
        return snapshot

    def commit_grade(self, submission_id: int, proposed: GradeInput) -> CommitResult:
        result = self._committer.commit(self.snapshot, submission_id, proposed)
        self._snapshot = result.snapshot
        return result

    def toggle_accepting(self, accepting: bool) -> GateResult:
        result = self._gate.toggle(self.snapshot, accepting)
        self._snapshot = result.snapshot
        return result

    def bulk_return(self, submission_ids: Iterable[int]) -> ReturnResult:
        result = self._coordinator.bulk_return(self.snapshot, submission_ids)
        self._snapshot = result.snapshot
        if result.error is not None:
            logger.warning(
                "item %s returned with %d unsaved grade(s): %s",
                self.item_id,
                len(result.grade_flush_failures),
                result.grade_flush_failures,
            )
        return result

    def retry_grade_flush(self, submission_ids: Iterable[int]) -> ReturnResult:
        result = self._coordinator.retry_grade_flush(self.snapshot, submission_ids)
        self._snapshot = result.snapshot
        return result

    def view(
        self,
        filter: RosterFilter = RosterFilter.ALL,
        sort_kind: SortKind = SortKind.STATUS,
        query: str | None = None,
    ) -> list[RosterRow]:
        return build_view(self.snapshot, self.buffer, filter, sort_kind, query)

    def summary(self) -> RosterSummary:
        return summarize(self.snapshot, self.buffer)
