import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

import requests

from interview_scheduling.base.exceptions import MeetingProviderError
from interview_scheduling.base.metrics import meeting_provider_error_counter
from interview_scheduling.base.models import MeetingHandle
from interview_scheduling.utils.time_utils import to_zoom_timestamp

logger = logging.getLogger("meetings")

ZOOM_OAUTH_URL = "https://zoom.us/oauth/token"
ZOOM_API_BASE = "https://api.zoom.us/v2"
TOKEN_EXPIRY_SKEW_SECONDS = 300

SCHEDULED_MEETING = 2
DEFAULT_MEETING_SETTINGS = {
    "host_video": True,
    "participant_video": True,
    "join_before_host": False,
    "mute_upon_entry": False,
    "waiting_room": True,
    "audio": "both",
    "auto_recording": "none",
}


class MeetingResourcePool(ABC):
    """
    A fixed set of licensed host identities, each able to host one video
    meeting at a time. All provider failures surface as MeetingProviderError.
    """

    def __init__(self, hosts: Sequence[str]):
        self.hosts: Tuple[str, ...] = tuple(hosts)

    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials and at least one host are present."""

    @abstractmethod
    def create_meeting(
        self,
        host: str,
        topic: str,
        start_time: datetime,
        duration_minutes: int,
        agenda: Optional[str] = None,
    ) -> MeetingHandle:
        pass

    @abstractmethod
    def get_meeting(self, meeting_id: str) -> MeetingHandle:
        pass

    @abstractmethod
    def delete_meeting(self, meeting_id: str) -> None:
        pass

    def create_interview_meeting(
        self,
        host: str,
        student_name: str,
        start_time: datetime,
        duration_minutes: int,
        tutor_name: Optional[str] = None,
    ) -> MeetingHandle:
        topic = f"Interview Session - {student_name}"
        agenda = f"Mock interview session for {student_name}"
        if tutor_name:
            agenda += f" with tutor {tutor_name}"
        return self.create_meeting(host, topic, start_time, duration_minutes, agenda=agenda)


class ZoomMeetingPool(MeetingResourcePool):
    """Zoom Server-to-Server OAuth client; meetings are created under each host user."""

    def __init__(
        self,
        account_id: str,
        client_id: str,
        client_secret: str,
        hosts: Sequence[str],
        timezone: str = "Europe/London",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(hosts)
        self.account_id = account_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.timezone = timezone
        self.timeout = timeout
        self.session = session or requests.Session()
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0

        if not self.is_configured():
            logger.warning(
                "[Zoom] Meeting provider not configured "
                f"(account_id={bool(account_id)}, client_id={bool(client_id)}, "
                f"client_secret={bool(client_secret)}, hosts={len(self.hosts)})"
            )

    def is_configured(self) -> bool:
        return bool(self.account_id and self.client_id and self.client_secret and self.hosts)

    # === OAuth ===

    def _get_access_token(self) -> str:
        if self._access_token and time.time() < self._token_expires_at:
            return self._access_token

        try:
            response = self.session.post(
                ZOOM_OAUTH_URL,
                params={"grant_type": "account_credentials", "account_id": self.account_id},
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise MeetingProviderError(f"Zoom token request failed: {e}") from e

        if not response.ok:
            raise MeetingProviderError(
                f"Failed to get Zoom access token: {response.status_code} - {response.text}",
                provider_status=response.status_code,
            )

        data = response.json()
        self._access_token = data["access_token"]
        self._token_expires_at = time.time() + int(data.get("expires_in", 3600)) - TOKEN_EXPIRY_SKEW_SECONDS
        logger.info("[Zoom] Obtained access token")
        return self._access_token

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        tolerated: Iterable[int] = (),
        **kwargs: Any,
    ) -> requests.Response:
        if not self.is_configured():
            meeting_provider_error_counter.labels(operation=operation).inc()
            raise MeetingProviderError("Meeting provider credentials are not configured")

        try:
            token = self._get_access_token()
            response = self.session.request(
                method,
                f"{ZOOM_API_BASE}{path}",
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
                **kwargs,
            )
        except MeetingProviderError:
            meeting_provider_error_counter.labels(operation=operation).inc()
            raise
        except requests.RequestException as e:
            meeting_provider_error_counter.labels(operation=operation).inc()
            raise MeetingProviderError(f"Zoom {operation} request failed: {e}") from e

        if not response.ok and response.status_code not in tolerated:
            meeting_provider_error_counter.labels(operation=operation).inc()
            raise MeetingProviderError(
                f"Failed to {operation} Zoom meeting: {response.status_code} - {response.text}",
                provider_status=response.status_code,
            )
        return response

    # === Meetings ===

    def create_meeting(
        self,
        host: str,
        topic: str,
        start_time: datetime,
        duration_minutes: int,
        agenda: Optional[str] = None,
    ) -> MeetingHandle:
        if host not in self.hosts:
            raise MeetingProviderError(f"Unknown meeting host: {host}")

        body: Dict[str, Any] = {
            "topic": topic,
            "type": SCHEDULED_MEETING,
            "start_time": to_zoom_timestamp(start_time),
            "duration": duration_minutes,
            "timezone": self.timezone,
            "agenda": agenda or topic,
            "settings": dict(DEFAULT_MEETING_SETTINGS),
        }
        response = self._request("create", "POST", f"/users/{host}/meetings", json=body)
        meeting = self._to_handle(response.json(), host)
        logger.info(f"[Zoom] Created meeting {meeting.meeting_id} on host {host} at {body['start_time']}")
        return meeting

    def get_meeting(self, meeting_id: str) -> MeetingHandle:
        response = self._request("get", "GET", f"/meetings/{meeting_id}")
        data = response.json()
        return self._to_handle(data, data.get("host_email") or data.get("host_id", ""))

    def delete_meeting(self, meeting_id: str) -> None:
        response = self._request("delete", "DELETE", f"/meetings/{meeting_id}", tolerated=(404,))
        if response.status_code == 404:
            logger.info(f"[Zoom] Meeting {meeting_id} already gone")
            return
        logger.info(f"[Zoom] Deleted meeting {meeting_id}")

    @staticmethod
    def _to_handle(data: Dict[str, Any], host: str) -> MeetingHandle:
        start_time = None
        if data.get("start_time"):
            start_time = datetime.fromisoformat(data["start_time"].replace("Z", "+00:00"))
        return MeetingHandle(
            meeting_id=str(data["id"]),
            join_url=data["join_url"],
            start_url=data.get("start_url"),
            host=host,
            password=data.get("password"),
            start_time=start_time,
            duration_minutes=data.get("duration"),
            topic=data.get("topic"),
        )
