from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from gradedesk.schemas.base import CamelModel


class StudentLite(CamelModel):
    id: int
    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    group: Optional[str] = None

    @property
    def display_name(self) -> str:
        return (self.name or self.username or self.email or "").strip()


class RosterRow(CamelModel):
    """One student's view of one gradable item.

    ``submitted``/``returned`` are the wire representation only; use
    :func:`gradedesk.client.state.status_of` to read the lifecycle state.
    """

    student: StudentLite
    submitted: bool
    submission_id: Optional[int] = None
    submitted_at: Optional[datetime] = None
    grade: Optional[int] = None
    returned: bool = False
    attachments: list[Any] = Field(default_factory=list)

    @field_validator("submitted_at")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands back naive datetimes; treat them as UTC
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def check_flags(self):
        if self.returned and not self.submitted:
            raise ValueError("a returned row must be submitted")
        if not self.submitted and (self.submission_id is not None or self.grade is not None):
            raise ValueError("an unsubmitted row carries no submission id or grade")
        if self.submitted and self.submission_id is None:
            raise ValueError("a submitted row needs a submission id")
        return self


class RosterSnapshot(CamelModel):
    item_id: int
    title: str
    max_points: int = Field(gt=0)
    accepting_submissions: bool
    assigned_count: int
    turned_in_count: int
    rows: list[RosterRow] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_rows(self):
        for row in self.rows:
            if row.grade is not None and not 0 <= row.grade <= self.max_points:
                raise ValueError(
                    f"grade {row.grade} outside [0, {self.max_points}] for submission {row.submission_id}"
                )

        turned_in = sum(1 for r in self.rows if r.submitted)
        if self.turned_in_count != turned_in or self.assigned_count != len(self.rows) - turned_in:
            raise ValueError("roster counts do not match the rows")
        return self

    def find_row(self, submission_id: int) -> Optional[RosterRow]:
        for row in self.rows:
            if row.submission_id is not None and row.submission_id == submission_id:
                return row
        return None
