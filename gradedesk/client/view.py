"""
Display derivation for the grading roster.

Pure functions of (snapshot, buffer, filter, sort): nothing here talks to
the server or mutates its inputs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from gradedesk.client.buffer import GradeBuffer
from gradedesk.client.state import RowStatus, status_of
from gradedesk.schemas.roster import RosterRow, RosterSnapshot

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class RosterFilter(Enum):
    ALL = "all"
    TURNED_IN = "turned_in"
    ASSIGNED = "assigned"


class SortKind(Enum):
    STATUS = "status"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    GROUP = "group"


@dataclass(frozen=True)
class RosterBuckets:
    turned_in: list[RosterRow]
    returned: list[RosterRow]
    assigned: list[RosterRow]


@dataclass(frozen=True)
class RowBadge:
    label: str
    footer: str
    grade_editable: bool
    can_return: bool


@dataclass(frozen=True)
class RosterSummary:
    total: int
    assigned: int
    turned_in: int
    returned: int
    graded: int
    staged: int
    average_grade: float | None
    completion_rate: float


def first_name_of(row: RosterRow) -> str:
    name = row.student.display_name
    parts = re.split(r"\s+", name)
    return parts[0] or name


def last_name_of(row: RosterRow) -> str:
    name = row.student.display_name
    parts = re.split(r"\s+", name)
    return parts[-1] if len(parts) > 1 else parts[0] or name


def group_of(row: RosterRow) -> str:
    return row.student.group or ""


def displayed_rows(snapshot: RosterSnapshot, buffer: GradeBuffer) -> list[RosterRow]:
    """Snapshot rows with staged grades layered on top."""
    rows = []
    for row in snapshot.rows:
        if row.submission_id is not None and row.submission_id in buffer:
            row = row.model_copy(update={"grade": buffer.get(row.submission_id)})
        rows.append(row)
    return rows


def _matches(row: RosterRow, needle: str) -> bool:
    name = row.student.display_name.casefold()
    email = (row.student.email or "").casefold()
    return needle in name or needle in email


def build_view(
    snapshot: RosterSnapshot,
    buffer: GradeBuffer,
    filter: RosterFilter = RosterFilter.ALL,
    sort_kind: SortKind = SortKind.STATUS,
    query: str | None = None,
) -> list[RosterRow]:
    rows = displayed_rows(snapshot, buffer)

    if filter is RosterFilter.TURNED_IN:
        rows = [r for r in rows if status_of(r) is not RowStatus.ASSIGNED]
    elif filter is RosterFilter.ASSIGNED:
        rows = [r for r in rows if status_of(r) is RowStatus.ASSIGNED]

    needle = (query or "").strip().casefold()
    if needle:
        rows = [r for r in rows if _matches(r, needle)]

    if sort_kind is SortKind.FIRST_NAME:
        return sorted(rows, key=lambda r: first_name_of(r).casefold())
    if sort_kind is SortKind.LAST_NAME:
        return sorted(rows, key=lambda r: last_name_of(r).casefold())
    if sort_kind is SortKind.GROUP:
        return sorted(rows, key=lambda r: group_of(r).casefold())

    # ungraded first, then most recent submission; no timestamp sorts as oldest
    rows = sorted(rows, key=lambda r: r.submitted_at or _OLDEST, reverse=True)
    return sorted(rows, key=lambda r: r.grade is not None)


def bucket_rows(rows: list[RosterRow]) -> RosterBuckets:
    """Split rows into the three roster sections, keeping their order."""
    by_status: dict[RowStatus, list[RosterRow]] = {s: [] for s in RowStatus}
    for row in rows:
        by_status[status_of(row)].append(row)

    return RosterBuckets(
        turned_in=by_status[RowStatus.TURNED_IN],
        returned=by_status[RowStatus.RETURNED],
        assigned=by_status[RowStatus.ASSIGNED],
    )


def selectable_ids(rows: list[RosterRow]) -> list[int]:
    """Submission ids that may be selected for return."""
    return [
        r.submission_id
        for r in rows
        if r.submission_id is not None and status_of(r) is RowStatus.TURNED_IN
    ]


_BADGES = {
    RowStatus.ASSIGNED: RowBadge("Assigned", "Awaiting submission", False, False),
    RowStatus.TURNED_IN: RowBadge("Turned in", "Saved locally - will send on return", True, True),
    RowStatus.RETURNED: RowBadge("Returned", "Visible to student", True, False),
}


def row_badge(row: RosterRow) -> RowBadge:
    return _BADGES[status_of(row)]


def summarize(snapshot: RosterSnapshot, buffer: GradeBuffer) -> RosterSummary:
    rows = displayed_rows(snapshot, buffer)
    buckets = bucket_rows(rows)
    grades = [r.grade for r in rows if r.grade is not None]
    turned_in = len(buckets.turned_in) + len(buckets.returned)

    return RosterSummary(
        total=len(rows),
        assigned=len(buckets.assigned),
        turned_in=turned_in,
        returned=len(buckets.returned),
        graded=len(grades),
        staged=len(buffer),
        average_grade=sum(grades) / len(grades) if grades else None,
        completion_rate=turned_in / len(rows) if rows else 0.0,
    )
