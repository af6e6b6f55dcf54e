"""
counseling_kernel.services.provisioning -- Meeting-link provisioning runner.

Responsibility:
    Runs ``MeetingLinkProvisioner.create_link`` off the caller's thread so an
    approval commits without waiting on the video-conferencing provider.

Invariants enforced:
    - The provisioner is called at most once per approval; failures are not
      retried here.
    - No repository lock is held while the provider call is in flight.
    - Cancelling the returned Future is best effort: a job that has not
      started never touches the record, one that has started finishes.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

from counseling_kernel.domain.dtos import CounselingRequest
from counseling_kernel.exceptions import ProvisioningWarning
from counseling_kernel.logging_config import get_logger

logger = get_logger("services.provisioning")


@dataclass(frozen=True)
class ProvisioningOutcome:
    """Result of the asynchronous provisioning step after an approval.

    ``applied`` is True only when the link was written to the record.  A
    link that arrives after the request was cancelled, rescheduled or
    switched to in-person is discarded and ``applied`` stays False.
    """

    request_id: str
    meeting_link: str = ""
    applied: bool = False
    request: CounselingRequest | None = None
    warning: ProvisioningWarning | None = None


def settled(outcome: ProvisioningOutcome) -> Future:
    """A Future that is already resolved with ``outcome``."""
    future: Future = Future()
    future.set_result(outcome)
    return future


class ProvisioningRunner:
    """Owns the worker pool used for provisioning jobs."""

    def __init__(self, max_workers: int = 4) -> None:
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="meeting-link",
        )

    def submit(
        self,
        request_id: str,
        job: Callable[[], ProvisioningOutcome],
    ) -> Future:
        logger.debug("provisioning_submitted", extra={"request_id": request_id})
        return self._executor.submit(job)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
