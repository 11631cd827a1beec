import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import and_
from sqlalchemy.orm import Session

from gradedesk.core.deps import get_db
from gradedesk.core.permissions import ensure_owns_item, require_instructor
from gradedesk.models.enrollment import Enrollment
from gradedesk.models.gradable_item import GradableItem
from gradedesk.models.submission import Submission
from gradedesk.models.user import User
from gradedesk.schemas.grading import AcceptingRead, AcceptingUpdate, BulkReturnRequest
from gradedesk.schemas.roster import RosterRow, RosterSnapshot, StudentLite

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_item_exists(db: Session, item_id: int) -> GradableItem:
    item = db.query(GradableItem).filter(GradableItem.id == item_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


def _roster_row(student: User, group_label: str | None, sub: Submission | None) -> RosterRow:
    lite = StudentLite(
        id=student.id,
        name=student.full_name,
        username=student.username,
        email=student.email,
        group=group_label,
    )
    if sub is None:
        return RosterRow(student=lite, submitted=False)

    return RosterRow(
        student=lite,
        submitted=True,
        submission_id=sub.id,
        submitted_at=sub.submitted_at,
        grade=sub.grade,
        returned=bool(sub.returned),
        attachments=sub.attachments or [],
    )


@router.get("/grading/item/{item_id}/stats", response_model=RosterSnapshot)
def item_stats(
    item_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    item = _ensure_item_exists(db, item_id)
    ensure_owns_item(db, item, instructor)

    # every enrolled student, joined with their submission for this item (if any)
    results = (
        db.query(User, Enrollment.group_label, Submission)
        .join(Enrollment, Enrollment.student_id == User.id)
        .outerjoin(
            Submission,
            and_(
                Submission.item_id == item.id,
                Submission.student_id == User.id,
            ),
        )
        .filter(Enrollment.course_id == item.course_id)
        .order_by(User.id.asc())
        .all()
    )

    rows = [_roster_row(student, group_label, sub) for student, group_label, sub in results]
    turned_in = sum(1 for r in rows if r.submitted)

    return RosterSnapshot(
        item_id=item.id,
        title=item.title,
        max_points=item.max_points,
        accepting_submissions=bool(item.accepting_submissions),
        assigned_count=len(rows) - turned_in,
        turned_in_count=turned_in,
        rows=rows,
    )


@router.patch("/grading/item/{item_id}/accepting", response_model=AcceptingRead)
def set_accepting(
    item_id: int,
    payload: AcceptingUpdate,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    item = _ensure_item_exists(db, item_id)
    ensure_owns_item(db, item, instructor)

    item.accepting_submissions = payload.accepting

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("item %s accepting_submissions=%s", item.id, payload.accepting)
    return AcceptingRead(item_id=item.id, accepting=bool(item.accepting_submissions))


@router.post("/grading/item/{item_id}/return", response_model=list[int])
def return_submissions(
    item_id: int,
    payload: BulkReturnRequest,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    item = _ensure_item_exists(db, item_id)
    ensure_owns_item(db, item, instructor)

    ids = list(dict.fromkeys(payload.submission_ids))
    if not ids:
        return []

    subs = (
        db.query(Submission)
        .filter(Submission.item_id == item.id, Submission.id.in_(ids))
        .all()
    )
    if len(subs) != len(ids):
        found = {s.id for s in subs}
        missing = [i for i in ids if i not in found]
        raise HTTPException(
            status_code=404,
            detail=f"Submissions not found for this item: {missing}",
        )

    # all-or-nothing for the status flip; grades are pushed separately
    now = datetime.now(timezone.utc)
    for sub in subs:
        if not sub.returned:
            sub.returned = True
            sub.returned_at = now

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("item %s returned %d submission(s)", item.id, len(ids))
    return ids
