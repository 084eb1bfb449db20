"""
Explicit lifecycle state for interviews.

Rows keep nullable columns for storage, but everything leaving the service
goes through derive_state(), which yields exactly one tagged state carrying
only the fields that are valid for it:

    Unassigned -> Assigned -> Confirmed -> Completed
         ^            |           |
         +------------+-----------+   (cancel)
"""

from interview_scheduling.base.models import (
    AssignedState,
    CompletedState,
    ConfirmedState,
    InterviewResponse,
    MeetingRef,
    UnassignedState,
)
from interview_scheduling.models.interview import InterviewModel


def derive_state(interview: InterviewModel):
    if interview.completed:
        return CompletedState(
            tutor_id=interview.tutor_id,
            scheduled_at=interview.scheduled_at,
            student_feedback=interview.student_feedback,
        )

    if interview.tutor_id is None or interview.scheduled_at is None:
        return UnassignedState()

    meeting = None
    if interview.has_meeting:
        meeting = MeetingRef(
            meeting_id=interview.meeting_id,
            join_url=interview.meeting_join_url,
            host=interview.meeting_host,
        )

    if meeting is not None and interview.confirmed_at is not None:
        return ConfirmedState(
            tutor_id=interview.tutor_id,
            scheduled_at=interview.scheduled_at,
            meeting=meeting,
            confirmed_at=interview.confirmed_at,
        )

    return AssignedState(
        tutor_id=interview.tutor_id,
        scheduled_at=interview.scheduled_at,
        meeting=meeting,
    )


def to_response(interview: InterviewModel) -> InterviewResponse:
    response = InterviewResponse.model_validate(interview)
    response.status = derive_state(interview)
    return response
