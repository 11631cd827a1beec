from __future__ import annotations

import logging
from dataclasses import dataclass

from gradedesk.client.api import GradingApi
from gradedesk.client.errors import GradingError
from gradedesk.client.outcome import RemoteOutcome
from gradedesk.client.state import with_accepting
from gradedesk.schemas.roster import RosterSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateResult:
    snapshot: RosterSnapshot
    applied_locally: bool
    remote_outcome: RemoteOutcome


class AcceptingGate:
    """
    Opens or closes an item to new submissions.

    The local flag follows the server's answer, never the request: on
    failure the snapshot is returned untouched. Existing submissions are
    not affected either way.
    """

    def __init__(self, api: GradingApi):
        self._api = api

    def toggle(self, snapshot: RosterSnapshot, accepting: bool) -> GateResult:
        try:
            confirmed = self._api.set_accepting(snapshot.item_id, accepting)
        except GradingError as e:
            logger.warning("could not set accepting=%s on item %s: %s", accepting, snapshot.item_id, e)
            return GateResult(snapshot, False, RemoteOutcome.failed(e))

        return GateResult(with_accepting(snapshot, confirmed), True, RemoteOutcome.ok())
