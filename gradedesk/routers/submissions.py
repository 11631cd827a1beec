from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import and_
from sqlalchemy.orm import Session

from gradedesk.core.current_user import get_current_user
from gradedesk.core.deps import get_db
from gradedesk.core.permissions import ensure_owns_item, require_instructor
from gradedesk.models.enrollment import Enrollment
from gradedesk.models.gradable_item import GradableItem
from gradedesk.models.submission import Submission
from gradedesk.models.user import User
from gradedesk.schemas.submission import GradeUpdate, SubmissionCreate, SubmissionRead

router = APIRouter()


def _ensure_item_exists(db: Session, item_id: int) -> GradableItem:
    item = db.query(GradableItem).filter(GradableItem.id == item_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


def _ensure_student_enrolled(db: Session, course_id: int, student_id: int) -> None:
    enrolled = (
        db.query(Enrollment)
        .filter(Enrollment.course_id == course_id, Enrollment.student_id == student_id)
        .first()
        is not None
    )
    if not enrolled:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")


@router.post(
    "/items/{item_id}/submissions",
    response_model=SubmissionRead,
    status_code=status.HTTP_201_CREATED,
)
def submit_item(
    item_id: int,
    payload: SubmissionCreate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    """Student intake. Only the accepting-submissions gate is enforced here."""
    item = _ensure_item_exists(db, item_id)
    _ensure_student_enrolled(db, item.course_id, me.id)

    if not item.accepting_submissions:
        raise HTTPException(status_code=409, detail="Item is not accepting submissions")

    now = datetime.now(timezone.utc)

    existing = (
        db.query(Submission)
        .filter(
            and_(
                Submission.item_id == item_id,
                Submission.student_id == me.id,
            )
        )
        .first()
    )

    if existing:
        # a returned submission never goes back to turned in
        if existing.returned:
            raise HTTPException(status_code=409, detail="Submission already returned")

        existing.content = payload.content
        existing.attachments = payload.attachments
        existing.submitted_at = now
        sub = existing
    else:
        sub = Submission(
            item_id=item_id,
            student_id=me.id,
            content=payload.content,
            attachments=payload.attachments,
            submitted_at=now,
        )
        db.add(sub)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(sub)
    return sub


@router.patch(
    "/submission/{submission_id}/grade",
    response_model=SubmissionRead,
)
def grade_submission(
    submission_id: int,
    payload: GradeUpdate,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    sub = db.query(Submission).filter(Submission.id == submission_id).first()
    if not sub:
        raise HTTPException(status_code=404, detail="Submission not found")

    item = _ensure_item_exists(db, sub.item_id)
    ensure_owns_item(db, item, instructor)

    if payload.grade is not None and (payload.grade < 0 or payload.grade > item.max_points):
        raise HTTPException(
            status_code=400,
            detail=f"grade must be between 0 and {item.max_points}",
        )

    sub.grade = payload.grade
    sub.graded_at = datetime.now(timezone.utc) if payload.grade is not None else None

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(sub)
    return sub
