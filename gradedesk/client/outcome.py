from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gradedesk.client.errors import GradingError


class RemoteStatus(Enum):
    NOT_ATTEMPTED = "not_attempted"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RemoteOutcome:
    """What happened on the wire for one mutating operation."""

    status: RemoteStatus
    error: GradingError | None = None

    @classmethod
    def skipped(cls) -> RemoteOutcome:
        return cls(RemoteStatus.NOT_ATTEMPTED)

    @classmethod
    def ok(cls) -> RemoteOutcome:
        return cls(RemoteStatus.SUCCEEDED)

    @classmethod
    def failed(cls, error: GradingError) -> RemoteOutcome:
        return cls(RemoteStatus.FAILED, error)

    @property
    def attempted(self) -> bool:
        return self.status is not RemoteStatus.NOT_ATTEMPTED

    @property
    def succeeded(self) -> bool:
        return self.status is RemoteStatus.SUCCEEDED
