import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from interview_scheduling.base.exceptions import InterviewNotFound
from interview_scheduling.base.models import MeetingHandle, SessionStats
from interview_scheduling.models.interview import InterviewModel
from interview_scheduling.services.store_base import SessionStore
from interview_scheduling.utils.time_utils import utcnow

logger = logging.getLogger("scheduling")


@dataclass(frozen=True)
class AssignmentSnapshot:
    """The assignment-related columns of an interview at one point in time."""
    tutor_id: Optional[str]
    scheduled_at: Optional[datetime]
    meeting_id: Optional[str]
    meeting_join_url: Optional[str]
    meeting_host: Optional[str]
    confirmed_at: Optional[datetime]

    @classmethod
    def capture(cls, interview: InterviewModel) -> "AssignmentSnapshot":
        return cls(
            tutor_id=interview.tutor_id,
            scheduled_at=interview.scheduled_at,
            meeting_id=interview.meeting_id,
            meeting_join_url=interview.meeting_join_url,
            meeting_host=interview.meeting_host,
            confirmed_at=interview.confirmed_at,
        )


class InterviewStore(SessionStore):
    """
    Owns interview rows: tutor linkage, scheduled time, meeting reference and
    completion. Writes commit immediately; each call is one unit of work.
    """

    def create(self, student_id: str, booking_id: Optional[str] = None, notes: Optional[str] = None) -> InterviewModel:
        interview = InterviewModel(student_id=student_id, booking_id=booking_id, notes=notes, completed=False)
        with self._guard("create interview"):
            self.db.add(interview)
            self.db.commit()
            self.db.refresh(interview)
        logger.info(f"[Interview] Created interview {interview.id} for student {student_id}")
        return interview

    def get(self, interview_id: str) -> Optional[InterviewModel]:
        with self._guard("load interview"):
            return self.db.query(InterviewModel).filter_by(id=interview_id).first()

    def get_or_raise(self, interview_id: str) -> InterviewModel:
        interview = self.get(interview_id)
        if not interview:
            raise InterviewNotFound("Interview not found")
        return interview

    def list(
        self,
        tutor_id: Optional[str] = None,
        student_id: Optional[str] = None,
        booking_id: Optional[str] = None,
        unassigned: bool = False,
        completed: Optional[bool] = None,
    ) -> List[InterviewModel]:
        with self._guard("list interviews"):
            query = self.db.query(InterviewModel)
            if tutor_id:
                query = query.filter(InterviewModel.tutor_id == tutor_id)
            if student_id:
                query = query.filter(InterviewModel.student_id == student_id)
            if booking_id:
                query = query.filter(InterviewModel.booking_id == booking_id)
            if unassigned:
                query = query.filter(InterviewModel.tutor_id.is_(None))
            if completed is not None:
                query = query.filter(InterviewModel.completed.is_(completed))
            return query.order_by(InterviewModel.scheduled_at.asc(), InterviewModel.created_at.asc()).all()

    def list_unassigned(self) -> List[InterviewModel]:
        with self._guard("list unassigned interviews"):
            return (
                self.db.query(InterviewModel)
                .filter(InterviewModel.tutor_id.is_(None), InterviewModel.completed.is_(False))
                .order_by(InterviewModel.created_at.asc())
                .all()
            )

    # === assignment writes ===

    def assign(
        self,
        interview_id: str,
        tutor_id: str,
        scheduled_at: datetime,
        meeting: Optional[MeetingHandle] = None,
    ) -> InterviewModel:
        interview = self.get_or_raise(interview_id)
        with self._guard("assign interview"):
            interview.tutor_id = tutor_id
            interview.scheduled_at = scheduled_at
            self._apply_meeting(interview, meeting)
            interview.confirmed_at = None
            self.db.commit()
            self.db.refresh(interview)
        logger.info(f"[Interview] {interview_id} assigned to tutor {tutor_id} at {scheduled_at}")
        return interview

    def restore(self, interview_id: str, snapshot: AssignmentSnapshot) -> InterviewModel:
        """Write a captured snapshot back. Idempotent."""
        interview = self.get_or_raise(interview_id)
        with self._guard("restore interview assignment"):
            interview.tutor_id = snapshot.tutor_id
            interview.scheduled_at = snapshot.scheduled_at
            interview.meeting_id = snapshot.meeting_id
            interview.meeting_join_url = snapshot.meeting_join_url
            interview.meeting_host = snapshot.meeting_host
            interview.confirmed_at = snapshot.confirmed_at
            self.db.commit()
            self.db.refresh(interview)
        return interview

    def confirm(self, interview_id: str, meeting: Optional[MeetingHandle] = None) -> InterviewModel:
        interview = self.get_or_raise(interview_id)
        with self._guard("confirm interview"):
            if meeting is not None:
                self._apply_meeting(interview, meeting)
            interview.confirmed_at = utcnow()
            self.db.commit()
            self.db.refresh(interview)
        logger.info(f"[Interview] {interview_id} confirmed")
        return interview

    def attach_meeting(self, interview_id: str, meeting: MeetingHandle) -> InterviewModel:
        interview = self.get_or_raise(interview_id)
        with self._guard("attach meeting"):
            self._apply_meeting(interview, meeting)
            self.db.commit()
            self.db.refresh(interview)
        logger.info(f"[Interview] Meeting {meeting.meeting_id} attached to {interview_id}")
        return interview

    def clear_assignment(self, interview_id: str) -> InterviewModel:
        interview = self.get_or_raise(interview_id)
        with self._guard("clear interview assignment"):
            interview.tutor_id = None
            interview.scheduled_at = None
            self._apply_meeting(interview, None)
            interview.confirmed_at = None
            self.db.commit()
            self.db.refresh(interview)
        return interview

    def complete(
        self,
        interview_id: str,
        student_feedback: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> InterviewModel:
        interview = self.get_or_raise(interview_id)
        with self._guard("complete interview"):
            interview.completed = True
            if student_feedback:
                interview.student_feedback = student_feedback
            if notes:
                interview.notes = notes
            self.db.commit()
            self.db.refresh(interview)
        logger.info(f"[Interview] {interview_id} marked as completed")
        return interview

    def update_notes(self, interview_id: str, notes: Optional[str]) -> InterviewModel:
        """Edit free-text notes only; scheduling columns are left alone."""
        interview = self.get_or_raise(interview_id)
        with self._guard("update interview notes"):
            interview.notes = notes
            self.db.commit()
            self.db.refresh(interview)
        logger.info(f"[Interview] Notes updated for {interview_id}")
        return interview

    def delete(self, interview_id: str) -> None:
        interview = self.get_or_raise(interview_id)
        with self._guard("delete interview"):
            self.db.delete(interview)
            self.db.commit()
        logger.info(f"[Interview] {interview_id} deleted")

    # === host commitments ===

    def count_host_commitments(
        self,
        host: str,
        window_start: datetime,
        window_end: datetime,
        exclude_interview_id: Optional[str] = None,
    ) -> int:
        """Non-completed interviews holding `host` with a start inside [window_start, window_end]."""
        with self._guard("query host commitments"):
            query = self.db.query(InterviewModel).filter(
                InterviewModel.meeting_host == host,
                InterviewModel.meeting_id.isnot(None),
                InterviewModel.completed.is_(False),
                InterviewModel.scheduled_at.isnot(None),
                InterviewModel.scheduled_at >= window_start,
                InterviewModel.scheduled_at <= window_end,
            )
            if exclude_interview_id:
                query = query.filter(InterviewModel.id != exclude_interview_id)
            return query.count()

    # === tutor dashboards ===

    def upcoming_for_tutor(self, tutor_id: str, now: Optional[datetime] = None) -> List[InterviewModel]:
        now = now or utcnow()
        with self._guard("list upcoming sessions"):
            return (
                self.db.query(InterviewModel)
                .filter(
                    InterviewModel.tutor_id == tutor_id,
                    InterviewModel.completed.is_(False),
                    InterviewModel.scheduled_at.isnot(None),
                    InterviewModel.scheduled_at >= now,
                )
                .order_by(InterviewModel.scheduled_at.asc())
                .all()
            )

    def session_stats(self, tutor_id: str, now: Optional[datetime] = None) -> SessionStats:
        now = now or utcnow()
        one_week_ago = now - timedelta(days=7)
        one_month_ago = now - timedelta(days=30)

        with self._guard("compute session stats"):
            completed = (
                self.db.query(InterviewModel.scheduled_at)
                .filter(InterviewModel.tutor_id == tutor_id, InterviewModel.completed.is_(True))
                .all()
            )
            upcoming = (
                self.db.query(InterviewModel)
                .filter(
                    InterviewModel.tutor_id == tutor_id,
                    InterviewModel.completed.is_(False),
                    InterviewModel.scheduled_at.isnot(None),
                    InterviewModel.scheduled_at >= now,
                )
                .count()
            )

        completed_times = [row.scheduled_at for row in completed if row.scheduled_at is not None]
        return SessionStats(
            total_completed=len(completed),
            total_upcoming=upcoming,
            this_week_completed=sum(1 for t in completed_times if t >= one_week_ago),
            this_month_completed=sum(1 for t in completed_times if t >= one_month_ago),
        )

    @staticmethod
    def _apply_meeting(interview: InterviewModel, meeting: Optional[MeetingHandle]) -> None:
        interview.meeting_id = meeting.meeting_id if meeting else None
        interview.meeting_join_url = meeting.join_url if meeting else None
        interview.meeting_host = meeting.host if meeting else None
