"""
CounselingConfiguration schema.

The human-authored, reviewable configuration for a counseling office.
YAML files are parsed into these types by the loader, checked by the
validator, and turned into kernel value objects by the bridges.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SchedulingSection:
    """Office hours and notice rules, as authored ("HH:MM" strings)."""

    business_start: str = "08:00"
    business_end: str = "17:00"
    lunch_block: str = "12:00"
    session_minutes: int = 60
    notice_minutes: int = 120


@dataclass(frozen=True)
class OfficeSection:
    """Campus to office-location text for face-to-face sessions."""

    default_campus: str = "Main Campus"
    default_office: str = "Guidance Office"
    locations: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class MailSection:
    signature: str = "Guidance & Counseling Office"


@dataclass(frozen=True)
class ProvisioningSection:
    max_workers: int = 4


@dataclass(frozen=True)
class CounselingConfiguration:
    """A complete, versioned configuration set."""

    config_id: str
    version: int
    scheduling: SchedulingSection = field(default_factory=SchedulingSection)
    offices: OfficeSection = field(default_factory=OfficeSection)
    mail: MailSection = field(default_factory=MailSection)
    provisioning: ProvisioningSection = field(default_factory=ProvisioningSection)
    checksum: str = ""
