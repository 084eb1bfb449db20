import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, String, Text, func

from interview_scheduling.models.database import Base


class InterviewModel(Base):
    __tablename__ = "interviews"
    __table_args__ = (
        # a tutor is never held without a time, nor a time without a tutor
        CheckConstraint(
            "(tutor_id IS NULL AND scheduled_at IS NULL) OR "
            "(tutor_id IS NOT NULL AND scheduled_at IS NOT NULL)",
            name="ck_interview_assignment_pair",
        ),
        Index("ix_interview_host_time", "meeting_host", "scheduled_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(64), nullable=False, index=True)
    tutor_id = Column(String(64), nullable=True, index=True)
    booking_id = Column(String(64), nullable=True, index=True)
    scheduled_at = Column(DateTime, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    student_feedback = Column(Text, nullable=True)

    meeting_id = Column(String(64), nullable=True)
    meeting_join_url = Column(String(512), nullable=True)
    meeting_host = Column(String(255), nullable=True)
    confirmed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def has_meeting(self) -> bool:
        return bool(self.meeting_id)

    def __repr__(self) -> str:
        return f"<Interview {self.id} student={self.student_id} tutor={self.tutor_id} at={self.scheduled_at}>"
