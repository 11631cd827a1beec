"""
Roster snapshot loading.

A load replaces the whole snapshot; there is no merge with local state.
Grades staged for submissions that are not returned yet are dropped on a
successful load (last fetch wins). Use `RosterLoader.discarded_on_reload`
to find out what a reload would throw away before triggering it.
"""

from __future__ import annotations

import logging
import threading

from gradedesk.client.api import GradingApi
from gradedesk.client.buffer import GradeBuffer
from gradedesk.client.errors import LoadCancelled
from gradedesk.client.state import RowStatus, status_of
from gradedesk.schemas.roster import RosterSnapshot

logger = logging.getLogger(__name__)


class CancelToken:
    """Marks one in-flight load as superseded. Safe to cancel from another thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _returned_ids(snapshot: RosterSnapshot) -> set[int]:
    return {
        row.submission_id
        for row in snapshot.rows
        if row.submission_id is not None and status_of(row) is RowStatus.RETURNED
    }


class RosterLoader:
    def __init__(self, api: GradingApi):
        self._api = api

    @staticmethod
    def discarded_on_reload(snapshot: RosterSnapshot, buffer: GradeBuffer) -> list[int]:
        """Staged ids a reload would drop, judged against ``snapshot``."""
        keep = _returned_ids(snapshot)
        return [sid for sid in buffer.staged_map() if sid not in keep]

    def load(
        self,
        item_id: int,
        buffer: GradeBuffer,
        cancel: CancelToken | None = None,
    ) -> RosterSnapshot:
        """
        Fetch the roster for ``item_id``.

        Raises:
            AuthError, NotFoundError, NetworkError, ValidationError: from the API.
            LoadCancelled: ``cancel`` fired before the result was applied; the
                buffer is left as it was.
        """
        snapshot = self._api.get_stats(item_id)

        if cancel is not None and cancel.cancelled:
            raise LoadCancelled(f"Load of item {item_id} was superseded")

        dropped = buffer.discard_except(_returned_ids(snapshot))
        if dropped:
            logger.warning(
                "reload of item %s discarded %d staged grade(s): %s",
                item_id,
                len(dropped),
                dropped,
            )

        logger.info(
            "loaded item %s: %d assigned, %d turned in",
            item_id,
            snapshot.assigned_count,
            snapshot.turned_in_count,
        )
        return snapshot
