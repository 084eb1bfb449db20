"""
Scheduling error taxonomy.

Every error raised by the scheduling core derives from SchedulingError and
carries the HTTP status the API layer should answer with. NotificationError
is the exception: the orchestrator converts it into a NotificationResult and
never lets it escape.
"""

from typing import Optional


class SchedulingError(Exception):
    status_code: int = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


# === User-correctable (4xx) ===

class SchedulingValidationError(SchedulingError):
    status_code = 400


class InterviewNotFound(SchedulingValidationError):
    status_code = 404


class SlotNotFound(SchedulingValidationError):
    status_code = 404


class SlotConflict(SchedulingValidationError):
    status_code = 409


class HostConflict(SchedulingValidationError):
    status_code = 409


class InvalidStateTransition(SchedulingValidationError):
    status_code = 409


class NoHostAvailable(SchedulingError):
    status_code = 409


# === Infrastructure ===

class MeetingProviderError(SchedulingError):
    status_code = 502

    def __init__(self, detail: str, provider_status: Optional[int] = None):
        super().__init__(detail)
        self.provider_status = provider_status


class StorageError(SchedulingError):
    status_code = 500


class NotificationError(SchedulingError):
    status_code = 502
