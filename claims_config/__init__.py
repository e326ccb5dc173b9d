"""
claims_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``CoreSettings`` (or individual values from it) by injection; no other
    component reads configuration files.

Architecture position:
    Configuration -- sits above ``claims_kernel`` and beside
    ``claims_services``.  The kernel, engines and modules MUST NEVER
    import from ``claims_config``.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
    - ``yaml.YAMLError`` -- malformed YAML.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``CLAIMS_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each run to the exact settings that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from claims_config.loader import compute_checksum, load_settings
from claims_config.schema import CoreSettings

_logger = logging.getLogger("claims_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "core.yaml"


def get_active_config(config_path: Path | None = None) -> CoreSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override settings file.  Defaults to
            ``claims_config/defaults/core.yaml``.

    Raises:
        FileNotFoundError: If the settings file is missing.
        ValueError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    settings = load_settings(path)
    checksum = compute_checksum(settings)

    _logger.info(
        "CLAIMS_CONFIG_TRACE",
        extra={
            "trace_type": "CLAIMS_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": checksum,
            "source": str(path),
        },
    )
    return settings


__all__ = [
    "CoreSettings",
    "DEFAULT_CONFIG_PATH",
    "compute_checksum",
    "get_active_config",
]
