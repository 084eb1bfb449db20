"""
Interview scheduling state machine.

Drives assign / confirm / cancel / delete / complete across three state
sources that can diverge: the interview row, the tutor's availability slot,
and the remote meeting resource.

Failure policy:
  * validation problems are raised before anything is written;
  * meeting provider failures degrade Assign, Cancel and Delete (logged,
    reported as warnings) but abort Confirm;
  * a storage failure (or a lost slot reservation) after Assign has written
    the interview triggers a compensating restore of the previous assignment;
  * Cancel clears the interview row first and then frees the meeting and
    slot, so a failed row write leaves everything as it was; a slot left
    held after that point is released by a retried Cancel;
  * Delete frees the meeting and slot before removing the row, so the row
    is still there for a retry if freeing fails;
  * notification failures are reported in the result, never raised.

No in-process locks are held. Slot ownership is decided by a conditional
update in the store; host allocation is check-then-act and can double-book
under concurrent requests.
"""

import logging
from datetime import datetime
from typing import List, Optional

from interview_scheduling.base.exceptions import (
    InvalidStateTransition,
    HostConflict,
    MeetingProviderError,
    NoHostAvailable,
    SchedulingError,
    SchedulingValidationError,
    SlotConflict,
    StorageError,
)
from interview_scheduling.base.metrics import assignment_counter, compensation_counter
from interview_scheduling.base.models import (
    AssignRequest,
    AttachMeetingRequest,
    CancelRequest,
    CompleteRequest,
    ConfirmRequest,
    Contact,
    CreateInterviewRequest,
    MeetingHandle,
    NotificationContext,
    NotificationResult,
    SchedulingResult,
)
from interview_scheduling.models.availability_slot import SlotKind
from interview_scheduling.models.interview import InterviewModel
from interview_scheduling.services.availability_store import AvailabilityStore
from interview_scheduling.services.host_allocator import HostAllocator
from interview_scheduling.services.interview_state import to_response
from interview_scheduling.services.interview_store import AssignmentSnapshot, InterviewStore
from interview_scheduling.services.meeting_pool import MeetingResourcePool
from interview_scheduling.services.notification_service import NotificationDispatcher
from interview_scheduling.utils.time_utils import as_utc_naive

logger = logging.getLogger("scheduling")


class SchedulingOrchestrator:
    def __init__(
        self,
        interviews: InterviewStore,
        availability: AvailabilityStore,
        allocator: HostAllocator,
        meetings: MeetingResourcePool,
        notifier: NotificationDispatcher,
        default_duration_minutes: int = 60,
        compensation_attempts: int = 2,
    ):
        self.interviews = interviews
        self.availability = availability
        self.allocator = allocator
        self.meetings = meetings
        self.notifier = notifier
        self.default_duration_minutes = default_duration_minutes
        self.compensation_attempts = max(1, compensation_attempts)

    # === Create ===

    def create_interview(self, req: CreateInterviewRequest) -> SchedulingResult:
        interview = self.interviews.create(req.student_id, req.booking_id, req.notes)
        if req.tutor_id is None:
            return self._result(interview)

        try:
            return self.assign(
                interview.id,
                AssignRequest(
                    tutor_id=req.tutor_id,
                    scheduled_at=req.scheduled_at,
                    availability_slot_id=req.availability_slot_id,
                ),
            )
        except SchedulingError:
            self._discard_interview(interview.id)
            raise

    # === Assign (Unassigned|Assigned -> Assigned) ===

    def assign(self, interview_id: str, req: AssignRequest) -> SchedulingResult:
        interview = self.interviews.get_or_raise(interview_id)
        if interview.completed:
            raise InvalidStateTransition("Completed interviews cannot be assigned")

        scheduled_at = as_utc_naive(req.scheduled_at)
        duration = req.duration_minutes or self.default_duration_minutes
        slot_id = req.availability_slot_id
        if slot_id:
            self._check_slot(slot_id, req.tutor_id, interview_id)

        snapshot = AssignmentSnapshot.capture(interview)
        warnings: List[str] = []
        student_name = _display_name(req.student, interview.student_id)
        tutor_name = req.tutor.name if req.tutor else None
        meeting = self._provision_meeting(interview_id, scheduled_at, duration, student_name, tutor_name, warnings)

        try:
            interview = self.interviews.assign(interview_id, req.tutor_id, scheduled_at, meeting)
        except StorageError:
            self._discard_meeting(meeting)
            assignment_counter.labels(outcome="rejected").inc()
            raise

        if slot_id:
            try:
                reserved = self.availability.reserve_slot(slot_id, req.tutor_id, interview_id)
            except StorageError:
                self._compensate(interview_id, snapshot, meeting)
                raise
            if not reserved:
                self._compensate(interview_id, snapshot, meeting)
                raise SlotConflict("Time slot was booked by another request")

        self._retire_previous(interview_id, snapshot, slot_id, meeting, warnings)
        assignment_counter.labels(outcome="assigned" if meeting else "assigned_without_meeting").inc()
        logger.info(f"[Assign] Interview {interview_id} -> tutor {req.tutor_id} at {scheduled_at} "
                    f"(slot={slot_id}, meeting={meeting.meeting_id if meeting else None})")

        notifications = []
        for role, contact, counterpart in (("tutor", req.tutor, req.student), ("student", req.student, req.tutor)):
            if contact:
                context = NotificationContext(
                    interview_id=interview_id,
                    role=role,
                    counterpart_name=counterpart.name if counterpart else None,
                    scheduled_at=scheduled_at,
                    duration_minutes=duration,
                    join_url=meeting.join_url if meeting else None,
                )
                notifications.append(self._notify("assigned", contact, context))

        return self._result(interview, warnings, notifications)

    # === Confirm (Assigned -> Confirmed) ===

    def confirm(self, interview_id: str, req: ConfirmRequest) -> SchedulingResult:
        interview = self.interviews.get_or_raise(interview_id)
        if interview.completed:
            raise InvalidStateTransition("Completed interviews cannot be confirmed")
        if interview.tutor_id is None:
            raise InvalidStateTransition("Interview must be assigned before it can be confirmed")
        if interview.tutor_id != req.tutor_id or interview.scheduled_at != as_utc_naive(req.scheduled_at):
            raise SchedulingValidationError("Confirmation details do not match the current assignment")

        meeting = None
        if not interview.has_meeting:
            # no fallback here: a confirmation without a join link is useless
            if not self.meetings.is_configured():
                raise MeetingProviderError("Meeting provider is not configured; cannot confirm without a join link")
            host = self.allocator.select_host(interview.scheduled_at, exclude_interview_id=interview_id)
            meeting = self.meetings.create_interview_meeting(
                host,
                req.student_name,
                interview.scheduled_at,
                self.default_duration_minutes,
                tutor_name=req.tutor_name,
            )

        try:
            interview = self.interviews.confirm(interview_id, meeting)
        except StorageError:
            self._discard_meeting(meeting)
            raise

        join_url = interview.meeting_join_url
        scheduled_at = interview.scheduled_at
        notifications = [
            self._notify(
                "confirmed",
                Contact(id=req.tutor_id, name=req.tutor_name, email=req.tutor_email),
                NotificationContext(
                    interview_id=interview_id,
                    role="tutor",
                    counterpart_name=req.student_name,
                    scheduled_at=scheduled_at,
                    duration_minutes=self.default_duration_minutes,
                    join_url=join_url,
                ),
            ),
            self._notify(
                "confirmed",
                Contact(id=req.student_id, name=req.student_name, email=req.student_email),
                NotificationContext(
                    interview_id=interview_id,
                    role="student",
                    counterpart_name=req.tutor_name,
                    scheduled_at=scheduled_at,
                    duration_minutes=self.default_duration_minutes,
                    join_url=join_url,
                ),
            ),
        ]
        logger.info(f"[Confirm] Interview {interview_id} confirmed with meeting {interview.meeting_id}")
        return self._result(interview, notifications=notifications)

    # === Cancel (Assigned|Confirmed -> Unassigned) ===

    def cancel(self, interview_id: str, req: Optional[CancelRequest] = None) -> SchedulingResult:
        req = req or CancelRequest()
        interview = self.interviews.get_or_raise(interview_id)
        if interview.completed:
            raise InvalidStateTransition("Completed interviews cannot be cancelled")

        was_scheduled = interview.tutor_id is not None
        previous_time = interview.scheduled_at
        previous_meeting_id = interview.meeting_id
        warnings: List[str] = []

        interview = self.interviews.clear_assignment(interview_id)
        self._release_resources(interview_id, previous_meeting_id, warnings)

        notifications = []
        if was_scheduled:
            for role, contact, counterpart in (("student", req.student, req.tutor), ("tutor", req.tutor, req.student)):
                if contact:
                    context = NotificationContext(
                        interview_id=interview_id,
                        role=role,
                        counterpart_name=counterpart.name if counterpart else None,
                        scheduled_at=previous_time,
                        reason=req.reason,
                    )
                    notifications.append(self._notify("cancelled", contact, context))
            logger.info(f"[Cancel] Interview {interview_id} returned to unassigned")
        else:
            logger.info(f"[Cancel] Interview {interview_id} was not scheduled; nothing to cancel")

        return self._result(interview, warnings, notifications)

    # === Delete ===

    def delete(self, interview_id: str) -> SchedulingResult:
        interview = self.interviews.get_or_raise(interview_id)
        warnings: List[str] = []
        self._release_resources(interview_id, interview.meeting_id, warnings)
        self.interviews.delete(interview_id)
        logger.info(f"[Delete] Interview {interview_id} removed")
        return SchedulingResult(interview_id=interview_id, deleted=True, warnings=warnings)

    # === Complete ===

    def complete(self, interview_id: str, req: Optional[CompleteRequest] = None) -> SchedulingResult:
        req = req or CompleteRequest()
        interview = self.interviews.complete(interview_id, req.student_feedback, req.notes)
        return self._result(interview)

    # === Meeting resource access ===

    def attach_meeting(self, interview_id: str, req: AttachMeetingRequest) -> SchedulingResult:
        """Attach a meeting that was created by hand, e.g. after Assign ran without one."""
        interview = self.interviews.get_or_raise(interview_id)
        if interview.completed:
            raise InvalidStateTransition("Completed interviews cannot take a meeting")
        if interview.tutor_id is None:
            raise InvalidStateTransition("Interview must be assigned before a meeting can be attached")
        if req.host in self.allocator.hosts and not self.allocator.is_host_free(
            req.host, interview.scheduled_at, exclude_interview_id=interview_id
        ):
            raise HostConflict(f"Host {req.host} already has a meeting near {interview.scheduled_at}")

        previous_meeting_id = interview.meeting_id
        handle = MeetingHandle(meeting_id=req.meeting_id, join_url=req.join_url, host=req.host)
        interview = self.interviews.attach_meeting(interview_id, handle)

        warnings: List[str] = []
        if previous_meeting_id and previous_meeting_id != req.meeting_id:
            self._delete_meeting_best_effort(previous_meeting_id, warnings)
        return self._result(interview, warnings)

    def get_meeting(self, interview_id: str) -> MeetingHandle:
        interview = self.interviews.get_or_raise(interview_id)
        if not interview.has_meeting:
            raise SchedulingValidationError("Interview has no meeting attached")
        if not self.meetings.is_configured():
            raise MeetingProviderError("Meeting provider is not configured")
        return self.meetings.get_meeting(interview.meeting_id)

    # === internals ===

    def _check_slot(self, slot_id: str, tutor_id: str, interview_id: str) -> None:
        slot = self.availability.get_slot_or_raise(slot_id)
        if slot.tutor_id != tutor_id:
            raise SlotConflict("Availability slot does not belong to this tutor")
        if slot.interview_id == interview_id:
            return
        if slot.kind != SlotKind.AVAILABLE.value:
            raise SlotConflict(f"Time slot is not available. Current status: {slot.kind}")
        if slot.interview_id:
            raise SlotConflict("Time slot is already booked for another interview")

    def _provision_meeting(
        self,
        interview_id: str,
        scheduled_at: datetime,
        duration: int,
        student_name: str,
        tutor_name: Optional[str],
        warnings: List[str],
    ) -> Optional[MeetingHandle]:
        if not self.meetings.is_configured():
            warnings.append("Meeting provider not configured; assigned without a meeting link")
            logger.warning(f"[Assign] Meeting provider not configured, interview {interview_id} gets no meeting")
            return None

        try:
            host = self.allocator.select_host(scheduled_at, exclude_interview_id=interview_id)
        except NoHostAvailable as e:
            warnings.append(f"{e.detail}; assigned without a meeting link")
            logger.warning(f"[Assign] No host for interview {interview_id} at {scheduled_at}")
            return None

        try:
            return self.meetings.create_interview_meeting(
                host, student_name, scheduled_at, duration, tutor_name=tutor_name
            )
        except MeetingProviderError as e:
            warnings.append("Meeting could not be created; assigned without a meeting link")
            logger.warning(f"[Assign] Meeting creation failed for interview {interview_id}: {e.detail}")
            return None

    def _retire_previous(
        self,
        interview_id: str,
        snapshot: AssignmentSnapshot,
        new_slot_id: Optional[str],
        new_meeting: Optional[MeetingHandle],
        warnings: List[str],
    ) -> None:
        try:
            self.availability.release_for_interview(interview_id, keep_slot_id=new_slot_id)
        except StorageError as e:
            warnings.append("Previous availability slot could not be released")
            logger.error(f"[Assign] Interview {interview_id} still holds an old slot: {e.detail}")

        if snapshot.meeting_id and (new_meeting is None or new_meeting.meeting_id != snapshot.meeting_id):
            self._delete_meeting_best_effort(snapshot.meeting_id, warnings)

    def _compensate(self, interview_id: str, snapshot: AssignmentSnapshot, meeting: Optional[MeetingHandle]) -> None:
        for attempt in range(1, self.compensation_attempts + 1):
            try:
                self.interviews.restore(interview_id, snapshot)
            except SchedulingError as e:
                logger.error(f"[Assign] Rollback attempt {attempt} for interview {interview_id} failed: {e.detail}")
                continue
            compensation_counter.labels(result="restored").inc()
            logger.warning(f"[Assign] Rolled back assignment of interview {interview_id}")
            break
        else:
            compensation_counter.labels(result="failed").inc()
            logger.error(f"[Assign] Interview {interview_id} left assigned without its slot")

        self._discard_meeting(meeting)
        assignment_counter.labels(outcome="compensated").inc()

    def _release_resources(self, interview_id: str, meeting_id: Optional[str], warnings: List[str]) -> None:
        if meeting_id:
            self._delete_meeting_best_effort(meeting_id, warnings)
        self.availability.release_for_interview(interview_id)

    def _delete_meeting_best_effort(self, meeting_id: str, warnings: List[str]) -> None:
        if not self.meetings.is_configured():
            warnings.append(f"Meeting {meeting_id} not deleted: provider not configured")
            logger.warning(f"[Meeting] Cannot delete {meeting_id}, provider not configured")
            return
        try:
            self.meetings.delete_meeting(meeting_id)
        except MeetingProviderError as e:
            warnings.append(f"Meeting {meeting_id} could not be deleted")
            logger.warning(f"[Meeting] Failed to delete {meeting_id}: {e.detail}")

    def _discard_meeting(self, meeting: Optional[MeetingHandle]) -> None:
        if meeting is None:
            return
        try:
            self.meetings.delete_meeting(meeting.meeting_id)
        except MeetingProviderError as e:
            logger.warning(f"[Meeting] Orphaned meeting {meeting.meeting_id} on {meeting.host}: {e.detail}")

    def _discard_interview(self, interview_id: str) -> None:
        try:
            self.interviews.delete(interview_id)
        except SchedulingError as e:
            logger.error(f"[Create] Could not remove half-created interview {interview_id}: {e.detail}")

    def _notify(self, kind: str, contact: Contact, context: NotificationContext) -> NotificationResult:
        send = {
            "assigned": self.notifier.notify_assigned,
            "confirmed": self.notifier.notify_confirmed,
            "cancelled": self.notifier.notify_cancelled,
        }[kind]
        try:
            return send(contact, context)
        except Exception as e:  # a dispatcher must never unwind a scheduling operation
            logger.error(f"[Notify] {kind} notice for interview {context.interview_id} raised: {e}")
            return NotificationResult(kind=kind, recipient=contact.email, status="failed", error=str(e))

    @staticmethod
    def _result(
        interview: InterviewModel,
        warnings: Optional[List[str]] = None,
        notifications: Optional[List[NotificationResult]] = None,
    ) -> SchedulingResult:
        return SchedulingResult(
            interview=to_response(interview),
            interview_id=interview.id,
            warnings=warnings or [],
            notifications=notifications or [],
        )


def _display_name(contact: Optional[Contact], fallback: str) -> str:
    if contact and contact.name:
        return contact.name
    return fallback
