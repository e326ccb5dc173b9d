"""
Configuration Schema (``claims_config.schema``).

Responsibility
--------------
Frozen dataclass definitions for the runtime settings of the claims core.
Every parsed value is typed; money-like values are ``Decimal``.

Architecture position
---------------------
**Config layer** -- pure data definitions, zero I/O.

Invariants enforced
-------------------
* ``CoreSettings`` is frozen and validated at construction.
* ``0 <= default_vat_percentage <= 100``.
* ``rounding_mode`` is one of the ``decimal`` module's rounding names.
"""

from __future__ import annotations

import decimal
from dataclasses import dataclass
from decimal import Decimal

ROUNDING_MODES: frozenset[str] = frozenset({
    decimal.ROUND_HALF_UP,
    decimal.ROUND_HALF_EVEN,
    decimal.ROUND_HALF_DOWN,
    decimal.ROUND_UP,
    decimal.ROUND_DOWN,
    decimal.ROUND_CEILING,
    decimal.ROUND_FLOOR,
    decimal.ROUND_05UP,
})


@dataclass(frozen=True)
class CoreSettings:
    """Runtime settings.  Obtain through ``claims_config.get_active_config``."""

    config_id: str = "claims-core"
    version: int = 1
    default_vat_percentage: Decimal = Decimal("15")
    display_decimal_places: int = 2
    rounding_mode: str = decimal.ROUND_HALF_UP
    include_declined_additionals: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.default_vat_percentage, Decimal):
            raise ValueError("default_vat_percentage must be a Decimal")
        if not Decimal("0") <= self.default_vat_percentage <= Decimal("100"):
            raise ValueError(
                f"default_vat_percentage out of range: {self.default_vat_percentage}"
            )
        if self.display_decimal_places < 0:
            raise ValueError("display_decimal_places must be >= 0")
        if self.rounding_mode not in ROUNDING_MODES:
            raise ValueError(f"Unknown rounding_mode: {self.rounding_mode!r}")
