import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from gradedesk.core.config import DEFAULT_MAX_POINTS
from gradedesk.db.base_class import Base


class ItemKind(str, enum.Enum):
    assignment = "assignment"
    question = "question"
    quiz = "quiz"
    group_assignment = "group_assignment"


class GradableItem(Base):
    __tablename__ = "gradable_items"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    kind = Column(Enum(ItemKind), nullable=False, default=ItemKind.assignment)
    title = Column(String(255), nullable=False)
    max_points = Column(Integer, nullable=False, default=DEFAULT_MAX_POINTS)

    # governs future intake only; existing submissions are never touched
    accepting_submissions = Column(Boolean, nullable=False, default=True)
    due_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    course = relationship("Course", back_populates="items")

    submissions = relationship("Submission", back_populates="item", cascade="all, delete-orphan")
