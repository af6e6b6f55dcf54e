"""
counseling_config -- single public entrypoint for office configuration.

Responsibility:
    Provides the only runtime way to obtain configuration, through
    ``get_active_config()``.  YAML loading is internal tooling.

Architecture position:
    Sits above ``counseling_kernel``.  The kernel MUST NEVER import from
    ``counseling_config``; ``counseling_config.bridges`` translates the
    configuration into kernel value objects.

Invariants enforced:
    - The returned configuration has passed validation.
    - Same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested set does not exist.
    - ``ConfigurationError`` -- validation failed.

Audit relevance:
    Every successful call emits a ``COUNSELING_CONFIG_TRACE`` log entry with
    the config id, version and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from counseling_config.loader import load_configuration_set
from counseling_config.schema import CounselingConfiguration
from counseling_config.validator import validate_configuration
from counseling_kernel.exceptions import ConfigurationError

_logger = logging.getLogger("counseling_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"

DEFAULT_SET = "default"


def get_active_config(
    set_name: str = DEFAULT_SET,
    config_dir: Path | None = None,
) -> CounselingConfiguration:
    """Load, validate and return the named configuration set.

    Args:
        set_name: Directory name under the sets directory.
        config_dir: Override path to the sets directory.
            Defaults to counseling_config/sets/.

    Raises:
        FileNotFoundError: If the set directory is missing or empty.
        ConfigurationError: If validation fails.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    set_dir = sets_dir / set_name
    if not set_dir.is_dir():
        raise FileNotFoundError(f"No configuration set {set_name!r} under {sets_dir}")

    config = load_configuration_set(set_dir)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ConfigurationError(validation.errors)
    for warning in validation.warnings:
        _logger.warning("config_warning", extra={"config_set_id": config.config_id, "warning": warning})

    _logger.info(
        "COUNSELING_CONFIG_TRACE",
        extra={
            "trace_type": "COUNSELING_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "location_count": len(config.offices.locations),
        },
    )
    return config


__all__ = [
    "CounselingConfiguration",
    "get_active_config",
]
