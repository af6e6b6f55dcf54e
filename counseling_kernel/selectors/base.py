"""
Module: counseling_kernel.selectors.base
Responsibility: Abstract base class for all read-only selectors.  Selectors
    form the "Q" side of the CQRS-lite pattern, providing structured read access
    to request data without mutation capability.
Architecture position: Kernel > Selectors.  May import from domain/.
    MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: Selectors only call ``get`` and ``list`` on the
      repository; they never create or update records.
    - DTO return convention: Selectors return frozen dataclasses or computed
      results.
    - No cache: every call reads a fresh snapshot, so derived views cannot
      drift from the request store.
"""

from abc import ABC

from counseling_kernel.domain.clock import Clock, SystemClock
from counseling_kernel.domain.collaborators import RequestRepository


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a repository and a clock from the caller, perform
        read-only queries, and return DTOs or computed results.
    """

    def __init__(self, repository: RequestRepository, clock: Clock | None = None):
        self.repository = repository
        self.clock = clock or SystemClock()
