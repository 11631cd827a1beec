from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship

from gradedesk.db.base_class import Base


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)

    item_id = Column(Integer, ForeignKey("gradable_items.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    content = Column(Text, nullable=True)
    attachments = Column(JSON, nullable=False, default=list)

    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Grading fields (nullable until graded)
    grade = Column(Integer, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)

    # Visible to the student only once returned; never flipped back
    returned = Column(Boolean, nullable=False, default=False)
    returned_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("item_id", "student_id", name="uq_submission_item_student"),
    )

    item = relationship("GradableItem", back_populates="submissions")
    student = relationship("User", back_populates="submissions")
