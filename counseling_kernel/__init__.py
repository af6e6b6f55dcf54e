"""
Counseling Kernel

Lifecycle and calendar core for student counseling requests:
- Guarded state transitions (approve, disapprove, cancel, reschedule)
- Two-hour notice rules for moving committed sessions
- Eventually consistent meeting-link provisioning
- A recomputed-on-demand calendar of committed sessions
"""

__version__ = "0.1.0"
