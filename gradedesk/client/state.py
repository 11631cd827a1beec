"""
Pure state transitions for roster rows and snapshots.

Nothing here performs I/O. The rest of the core (and the tests) read a
row's lifecycle through :func:`status_of` and move it only through
:func:`transition`, so the ``submitted``/``returned`` flag pair is
interpreted in exactly one place.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Union

from gradedesk.client.errors import ValidationError
from gradedesk.schemas.roster import RosterRow, RosterSnapshot

GradeInput = Union[int, float, str, None]


class RowStatus(Enum):
    ASSIGNED = "assigned"
    TURNED_IN = "turned_in"
    RETURNED = "returned"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {
    RowStatus.ASSIGNED: 0,
    RowStatus.TURNED_IN: 1,
    RowStatus.RETURNED: 2,
}


class InvalidTransition(ValueError):
    pass


def status_of(row: RosterRow) -> RowStatus:
    if not row.submitted:
        return RowStatus.ASSIGNED
    if row.returned:
        return RowStatus.RETURNED
    return RowStatus.TURNED_IN


def transition(
    row: RosterRow,
    target: RowStatus,
    *,
    submission_id: int | None = None,
    submitted_at: datetime | None = None,
) -> RosterRow:
    """
    Move ``row`` one step forward to ``target`` and return the new row.

    Re-applying the current status is a no-op. Moving backwards, or
    skipping `TURNED_IN`, raises `InvalidTransition`. `ASSIGNED ->
    TURNED_IN` needs the ``submission_id`` created by student intake.
    """
    current = status_of(row)
    if target is current:
        return row
    if target.rank != current.rank + 1:
        raise InvalidTransition(f"cannot move a row from {current.value} to {target.value}")

    if target is RowStatus.TURNED_IN:
        if submission_id is None:
            raise InvalidTransition("turning in requires a submission id")
        return row.model_copy(
            update={
                "submitted": True,
                "submission_id": submission_id,
                "submitted_at": submitted_at,
            }
        )

    return row.model_copy(update={"returned": True})


def clamp_grade(raw: GradeInput, max_points: int) -> int | None:
    """
    Normalise teacher input to a storable grade.

    Blank input clears the grade. Numbers are rounded half up and clamped
    to ``[0, max_points]``; text that is not a number is rejected.
    """
    if raw is None:
        return None

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            raise ValidationError(f"Grade must be a number, got {raw!r}") from None
    else:
        value = float(raw)

    if not math.isfinite(value):
        raise ValidationError(f"Grade must be a finite number, got {raw!r}")

    value = min(max(value, 0.0), float(max_points))
    return int(math.floor(value + 0.5))


def with_grade(row: RosterRow, grade: int | None) -> RosterRow:
    if status_of(row) is RowStatus.ASSIGNED:
        raise ValidationError("Cannot grade a student who has not turned anything in")
    return row.model_copy(update={"grade": grade})


def replace_rows(snapshot: RosterSnapshot, updated: Mapping[int, RosterRow]) -> RosterSnapshot:
    """Return a copy of ``snapshot`` with rows swapped by submission id."""
    rows = [
        updated.get(row.submission_id, row) if row.submission_id is not None else row
        for row in snapshot.rows
    ]
    turned_in = sum(1 for r in rows if r.submitted)
    return snapshot.model_copy(
        update={
            "rows": rows,
            "turned_in_count": turned_in,
            "assigned_count": len(rows) - turned_in,
        }
    )


def with_accepting(snapshot: RosterSnapshot, accepting: bool) -> RosterSnapshot:
    return snapshot.model_copy(update={"accepting_submissions": accepting})
