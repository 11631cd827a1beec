from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from gradedesk.schemas.base import CamelModel


class SubmissionCreate(CamelModel):
    content: Optional[str] = None
    attachments: list[Any] = Field(default_factory=list)


class SubmissionRead(CamelModel):
    id: int
    item_id: int
    student_id: int
    content: Optional[str]
    attachments: list[Any] = Field(default_factory=list)
    submitted_at: datetime
    grade: Optional[int] = None
    graded_at: Optional[datetime] = None
    returned: bool = False
    returned_at: Optional[datetime] = None


class GradeUpdate(CamelModel):
    # required, but may be null to clear the grade
    grade: Optional[int]
