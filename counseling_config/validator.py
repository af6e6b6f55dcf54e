"""
Configuration Validator (``counseling_config.validator``).

Responsibility
--------------
Checks a ``CounselingConfiguration`` for structural sanity before it is
bridged into kernel value objects.

Invariants enforced
-------------------
* Clock fields parse as "HH:MM" and the business day is non-empty.
* The lunch block and at least one standard slot fit inside the day.
* Session length and notice window are positive.
* The default campus has an office location.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> configuration
  MUST NOT be used.
* Validation warnings  -> usable, but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time

from counseling_config.schema import CounselingConfiguration
from counseling_kernel.domain.time_rules import minutes_of_day, parse_clock_time
from counseling_kernel.exceptions import ValidationError


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def _clock(result: ConfigValidationResult, name: str, text: str) -> time | None:
    try:
        return parse_clock_time(text)
    except ValidationError:
        result.add_error(f"scheduling.{name}: not a clock time: {text!r}")
        return None


def validate_configuration(config: CounselingConfiguration) -> ConfigValidationResult:
    result = ConfigValidationResult()
    sched = config.scheduling

    if not config.config_id:
        result.add_error("config_id must not be empty")
    if config.version < 1:
        result.add_error(f"version must be >= 1, got {config.version}")

    if sched.session_minutes <= 0:
        result.add_error(f"scheduling.session_minutes must be positive, got {sched.session_minutes}")
    if sched.notice_minutes < 0:
        result.add_error(f"scheduling.notice_minutes must not be negative, got {sched.notice_minutes}")

    start = _clock(result, "business_start", sched.business_start)
    end = _clock(result, "business_end", sched.business_end)
    lunch = _clock(result, "lunch_block", sched.lunch_block)

    if start is not None and end is not None:
        span = minutes_of_day(end) - minutes_of_day(start)
        if span <= 0:
            result.add_error("scheduling.business_end must be after business_start")
        elif sched.session_minutes > 0 and span < sched.session_minutes:
            result.add_error("scheduling: business day is shorter than one session")
        if lunch is not None and not (start <= lunch < end):
            result.add_warning("scheduling.lunch_block lies outside business hours")

    if sched.notice_minutes == 0:
        result.add_warning("scheduling.notice_minutes is 0; reschedules need no notice")

    offices = config.offices
    campuses = [campus for campus, _ in offices.locations]
    if len(campuses) != len(set(campuses)):
        result.add_error("offices.locations has duplicate campuses")
    if not offices.default_campus:
        result.add_error("offices.default_campus must not be empty")
    elif campuses and offices.default_campus not in campuses:
        result.add_warning(
            f"offices.default_campus {offices.default_campus!r} has no location entry"
        )

    if not config.mail.signature.strip():
        result.add_warning("mail.signature is empty")
    if config.provisioning.max_workers < 1:
        result.add_error(
            f"provisioning.max_workers must be >= 1, got {config.provisioning.max_workers}"
        )

    return result
