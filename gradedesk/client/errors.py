"""
Error taxonomy of the grading core.

Every failure of a core operation is reported as a :class:`GradingError`
subclass. None of them is fatal to the session and none is retried
automatically; the caller shows it to the teacher and the teacher decides
whether to re-trigger the action.
"""

from __future__ import annotations


class GradingError(Exception):
    """Base class for recoverable, user-visible grading failures."""

    def __init__(self, detail: str, status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.detail
        return f"{self.detail} (HTTP {self.status_code})"


class AuthError(GradingError):
    """Missing, invalid or expired credential, or the wrong role."""


class NetworkError(GradingError):
    """Transport failure, timeout, or a server-side fault."""


class LoadCancelled(NetworkError):
    """A roster load was superseded before its result could be applied."""


class ValidationError(GradingError):
    """Input rejected locally or by the server (e.g. grade out of range)."""


class NotFoundError(GradingError):
    """The gradable item or submission no longer exists."""


class PartialBatchFailure(GradingError):
    """
    A bulk return whose mark-returned phase committed for every id but whose
    grade flush stopped early.

    Attributes:
        committed_ids: ids that are now returned, regardless of grade outcome.
        grade_flush_failures: ids whose staged grade did not reach the server
            (the failing id followed by every staged id never attempted).
        cause: the error that stopped the flush.
    """

    def __init__(
        self,
        committed_ids: list[int],
        grade_flush_failures: list[int],
        cause: GradingError,
    ):
        super().__init__(
            f"Returned {len(committed_ids)} submission(s) but "
            f"{len(grade_flush_failures)} grade(s) were not saved: {cause.detail}",
            cause.status_code,
        )
        self.committed_ids = committed_ids
        self.grade_flush_failures = grade_flush_failures
        self.cause = cause
