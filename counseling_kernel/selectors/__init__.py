"""Selectors for the counseling kernel (read side)."""

from counseling_kernel.selectors.calendar_selector import CalendarProjector, project
from counseling_kernel.selectors.request_selector import RequestSelector

__all__ = [
    "CalendarProjector",
    "RequestSelector",
    "project",
]
