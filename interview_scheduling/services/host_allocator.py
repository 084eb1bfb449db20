import logging
from datetime import datetime
from typing import Optional, Sequence, Tuple

from interview_scheduling.base.exceptions import NoHostAvailable
from interview_scheduling.base.metrics import host_allocation_counter
from interview_scheduling.services.interview_store import InterviewStore
from interview_scheduling.utils.time_utils import as_utc_naive, window_around

logger = logging.getLogger("scheduling")

DEFAULT_CONFLICT_WINDOW_MINUTES = 45


class HostAllocator:
    """
    First-fit selection of a meeting host.

    Every committed interview holds its host for a window of
    +/- conflict_window_minutes around its start. A host is free for a new
    start time when that window does not touch any existing commitment, so
    two starts on one host always end up more than twice the window apart.

    The lookup therefore searches +/- 2 * conflict_window_minutes (90 minutes
    with the default 45) around the requested start, bounds inclusive: an
    existing start exactly 90 minutes away still blocks the host.

    The lookup and the later write are not atomic; two concurrent callers
    can both see the same host as free.
    """

    def __init__(
        self,
        hosts: Sequence[str],
        interviews: InterviewStore,
        conflict_window_minutes: int = DEFAULT_CONFLICT_WINDOW_MINUTES,
    ):
        self.hosts: Tuple[str, ...] = tuple(hosts)
        self.interviews = interviews
        self.conflict_window_minutes = conflict_window_minutes

    def search_window(self, start_time: datetime) -> Tuple[datetime, datetime]:
        # two +/-w windows touch when their centers are within 2w
        return window_around(as_utc_naive(start_time), 2 * self.conflict_window_minutes)

    def is_host_free(self, host: str, start_time: datetime, exclude_interview_id: Optional[str] = None) -> bool:
        window_start, window_end = self.search_window(start_time)
        return self.interviews.count_host_commitments(
            host, window_start, window_end, exclude_interview_id=exclude_interview_id
        ) == 0

    def select_host(self, start_time: datetime, exclude_interview_id: Optional[str] = None) -> str:
        if not self.hosts:
            host_allocation_counter.labels(result="exhausted").inc()
            raise NoHostAvailable("No meeting hosts are configured")

        for host in self.hosts:
            if self.is_host_free(host, start_time, exclude_interview_id):
                logger.info(f"[HostAllocator] Selected host {host} for {as_utc_naive(start_time)}")
                host_allocation_counter.labels(result="allocated").inc()
                return host
            logger.debug(f"[HostAllocator] Host {host} busy near {as_utc_naive(start_time)}")

        host_allocation_counter.labels(result="exhausted").inc()
        logger.warning(f"[HostAllocator] All {len(self.hosts)} hosts busy near {as_utc_naive(start_time)}")
        raise NoHostAvailable("No meeting slot available at the requested time")
