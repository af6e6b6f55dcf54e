"""
Module: counseling_kernel.selectors.request_selector
Responsibility: Read-only request listings for the counselor's review queue:
    per-status counts and a filtered, newest-first list.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Counts cover every status literal, including zero counts.
    - Ordering is created_at descending, then request id, so ties are stable.
"""

from __future__ import annotations

from datetime import datetime

from counseling_kernel.domain.dtos import (
    CounselingRequest,
    RequestFilter,
    RequestStatus,
)
from counseling_kernel.selectors.base import BaseSelector


def _request_haystack(request: CounselingRequest) -> str:
    parts = [
        request.request_id,
        request.status.value,
        request.kind.value,
        request.mode.value if request.mode else "",
        request.scheduled_date.isoformat() if request.scheduled_date else "",
        request.scheduled_time.strftime("%H:%M") if request.scheduled_time else "",
        request.reason_text,
        request.notes_text,
        request.course,
        request.student_ref,
    ]
    return " ".join(parts).lower()


class RequestSelector(BaseSelector):
    """Queries over the request store for review screens."""

    def status_counts(self, request_filter: RequestFilter | None = None) -> dict[str, int]:
        counts = {status.value: 0 for status in RequestStatus}
        for request in self.repository.list(request_filter):
            counts[request.status.value] += 1
        return counts

    def list_requests(
        self,
        status: RequestStatus | None = None,
        search_text: str | None = None,
        request_filter: RequestFilter | None = None,
    ) -> list[CounselingRequest]:
        requests = self.repository.list(request_filter)
        if status is not None:
            requests = [r for r in requests if r.status == status]
        query = (search_text or "").strip().lower()
        if query:
            requests = [r for r in requests if query in _request_haystack(r)]
        requests.sort(key=lambda r: r.request_id)
        requests.sort(key=lambda r: r.created_at or datetime.min, reverse=True)
        return requests
