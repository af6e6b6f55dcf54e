"""
Configuration Loader (``counseling_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into the frozen dataclasses of
``counseling_config.schema``.  This is internal tooling: runtime callers go
through ``counseling_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from counseling_config.schema import (
    CounselingConfiguration,
    MailSection,
    OfficeSection,
    ProvisioningSection,
    SchedulingSection,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 over the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _as_clock_text(value: Any) -> str:
    # YAML 1.1 reads an unquoted 08:00 as sexagesimal 480
    if isinstance(value, int):
        return f"{value // 60:02d}:{value % 60:02d}"
    return str(value)


def parse_scheduling(data: dict[str, Any]) -> SchedulingSection:
    defaults = SchedulingSection()
    return SchedulingSection(
        business_start=_as_clock_text(data.get("business_start", defaults.business_start)),
        business_end=_as_clock_text(data.get("business_end", defaults.business_end)),
        lunch_block=_as_clock_text(data.get("lunch_block", defaults.lunch_block)),
        session_minutes=int(data.get("session_minutes", defaults.session_minutes)),
        notice_minutes=int(data.get("notice_minutes", defaults.notice_minutes)),
    )


def parse_offices(data: dict[str, Any]) -> OfficeSection:
    defaults = OfficeSection()
    locations = data.get("locations") or {}
    return OfficeSection(
        default_campus=str(data.get("default_campus", defaults.default_campus)),
        default_office=str(data.get("default_office", defaults.default_office)),
        locations=tuple(sorted((str(k), str(v)) for k, v in locations.items())),
    )


def parse_configuration(data: dict[str, Any]) -> CounselingConfiguration:
    """Parse a full configuration dict.  ``config_id`` and ``version`` are required."""
    return CounselingConfiguration(
        config_id=data["config_id"],
        version=int(data["version"]),
        scheduling=parse_scheduling(data.get("scheduling") or {}),
        offices=parse_offices(data.get("offices") or {}),
        mail=MailSection(**(data.get("mail") or {})),
        provisioning=ProvisioningSection(**(data.get("provisioning") or {})),
        checksum=compute_checksum(data),
    )


def load_configuration_set(set_dir: Path) -> CounselingConfiguration:
    """Merge every ``*.yaml`` file in ``set_dir`` (sorted by name) and parse it."""
    files = sorted(set_dir.glob("*.yaml"))
    if not files:
        raise FileNotFoundError(f"No configuration files in {set_dir}")
    merged: dict[str, Any] = {}
    for path in files:
        merged.update(load_yaml_file(path))
    return parse_configuration(merged)
