"""
Configuration Loader (``claims_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into ``CoreSettings``.  Runtime
callers use ``claims_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Unknown keys are rejected, never ignored.
* Numeric settings are parsed from strings or ints; floats are rejected
  for the VAT percentage.
* ``compute_checksum`` is deterministic for identical settings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad values or unknown keys  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from claims_config.schema import CoreSettings

_TOP_LEVEL_KEYS = frozenset({"config_id", "version", "core"})
_CORE_KEYS = frozenset(f.name for f in fields(CoreSettings)) - {"config_id", "version"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if ``path`` does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_percentage(value: Any, field_name: str) -> Decimal:
    if isinstance(value, (bool, float)):
        raise ValueError(f"{field_name} must be a string or integer, got {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field_name} is not numeric: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"{field_name} is not finite: {value!r}")
    return result


def parse_core_settings(data: dict[str, Any]) -> CoreSettings:
    """Parse the top-level settings mapping into ``CoreSettings``."""
    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
    core = data.get("core") or {}
    if not isinstance(core, dict):
        raise ValueError("'core' must be a mapping")
    unknown = set(core) - _CORE_KEYS
    if unknown:
        raise ValueError(f"Unknown core settings: {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    if "config_id" in data:
        kwargs["config_id"] = str(data["config_id"])
    if "version" in data:
        kwargs["version"] = int(data["version"])
    if "default_vat_percentage" in core:
        kwargs["default_vat_percentage"] = parse_percentage(
            core["default_vat_percentage"], "default_vat_percentage",
        )
    if "display_decimal_places" in core:
        kwargs["display_decimal_places"] = int(core["display_decimal_places"])
    if "rounding_mode" in core:
        kwargs["rounding_mode"] = str(core["rounding_mode"])
    if "include_declined_additionals" in core:
        value = core["include_declined_additionals"]
        if not isinstance(value, bool):
            raise ValueError("include_declined_additionals must be true or false")
        kwargs["include_declined_additionals"] = value
    return CoreSettings(**kwargs)


def load_settings(path: Path) -> CoreSettings:
    return parse_core_settings(load_yaml_file(path))


def compute_checksum(settings: CoreSettings) -> str:
    """SHA-256 of the canonical JSON form of ``settings``."""
    canonical = json.dumps(asdict(settings), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
