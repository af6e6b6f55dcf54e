"""Services for the counseling kernel (write side)."""

from counseling_kernel.services.directory import InMemoryParticipantDirectory
from counseling_kernel.services.lifecycle_engine import (
    BatchResult,
    LifecycleEngine,
    TransitionOutcome,
)
from counseling_kernel.services.mail import OutboxMailDispatcher
from counseling_kernel.services.provisioning import ProvisioningOutcome, ProvisioningRunner
from counseling_kernel.services.request_store import InMemoryRequestRepository
from counseling_kernel.services.sql_request_store import SqlRequestRepository

__all__ = [
    "BatchResult",
    "InMemoryParticipantDirectory",
    "InMemoryRequestRepository",
    "LifecycleEngine",
    "OutboxMailDispatcher",
    "ProvisioningOutcome",
    "ProvisioningRunner",
    "SqlRequestRepository",
    "TransitionOutcome",
]
