from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from gradedesk.core.current_user import get_current_user
from gradedesk.models.course import Course
from gradedesk.models.gradable_item import GradableItem
from gradedesk.models.user import User


def require_instructor(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "instructor":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Instructor role required",
        )
    return current_user


def ensure_owns_item(db: Session, item: GradableItem, instructor: User) -> None:
    course = db.query(Course).filter(Course.id == item.course_id).first()
    if not course or course.instructor_id != instructor.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the course instructor can grade this item",
        )
