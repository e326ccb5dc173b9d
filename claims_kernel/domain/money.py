"""
Fixed-point money helpers (``claims_kernel.domain.money``).

Responsibility
--------------
Convert inbound monetary values to ``Decimal`` without passing through
binary floating point, apply percentages, and round at output boundaries.

Invariants enforced
-------------------
* ``float`` is rejected outright -- it has already lost precision.
* Percentages are applied as ``value * (percentage / 100)``.
* ``round_money`` is the ONLY sanctioned rounding function and is called
  only where a value leaves the core (display payloads), never mid-sum.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from claims_kernel.exceptions import InvalidMonetaryValueError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DISPLAY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_money(value: Any, field_name: str = "amount") -> Decimal:
    """Parse a monetary input into an exact Decimal.

    Accepts Decimal, int, and numeric strings.  ``None`` and ``""`` mean zero.

    Raises:
        InvalidMonetaryValueError: float, bool, non-numeric strings, NaN/inf.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidMonetaryValueError(field_name, value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidMonetaryValueError(field_name, value) from None
    else:
        raise InvalidMonetaryValueError(field_name, value)
    if not result.is_finite():
        raise InvalidMonetaryValueError(field_name, value)
    return result


def apply_percentage(value: Decimal, percentage: Decimal) -> Decimal:
    """Return ``value * (percentage / 100)`` without rounding."""
    return value * (percentage / HUNDRED)


def round_money(
    value: Decimal,
    decimal_places: int = DISPLAY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value for output.

    This is the ONLY sanctioned rounding function; callers apply it at the
    output boundary only.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=rounding)


def money_str(value: Decimal) -> str:
    """Canonical string for JSON storage (no exponent, trailing zeros kept)."""
    return format(value, "f")
