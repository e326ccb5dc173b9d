"""
Costing input normalization (``claims_modules.frc.normalization``).

Responsibility
--------------
Adapt estimate and additionals read-model rows into the canonical
``EstimateLine`` / ``AdditionalLine`` / ``SnapshotInputs`` values the merge
engine consumes.  This is the single ingestion boundary for costing
inputs; nothing downstream inspects raw rows.

Recognised row fields
---------------------
Estimate row: ``id``, ``description``, ``part_price_nett``/``parts_nett``,
``labour``/``labour_cost``, ``paint``/``paint_cost``,
``outwork_nett``/``outwork_charge_nett``, ``markup``.

Additionals row: as above plus ``status`` (approved/declined/pending),
``action`` (``"removed"`` marks a removal) and ``original_line_id`` (the
baseline line a removal deducts).

Failure modes
-------------
* ``InvalidMonetaryValueError`` for non-numeric or float money.
* ``InvalidFingerprintError`` for rows without an id, or removals without
  ``original_line_id``.
* ``ValidationError`` for an unknown additional status.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from claims_kernel.domain.line_items import (
    AdditionalApprovalStatus,
    AdditionalLine,
    CostBreakdown,
    EstimateLine,
    LineSource,
)
from claims_kernel.domain.money import to_money
from claims_kernel.exceptions import InvalidFingerprintError, ValidationError
from claims_modules.frc.models import SnapshotInputs

# canonical category -> accepted row keys, first present wins
_CATEGORY_ALIASES: dict[str, tuple[str, ...]] = {
    "parts_nett": ("parts_nett", "part_price_nett"),
    "labour": ("labour", "labour_cost"),
    "paint": ("paint", "paint_cost"),
    "outwork_nett": ("outwork_nett", "outwork_charge_nett"),
    "markup": ("markup", "markup_amount"),
}

REMOVAL_ACTION = "removed"


def _breakdown(row: Mapping[str, Any]) -> CostBreakdown:
    values = {}
    for name, aliases in _CATEGORY_ALIASES.items():
        key = next((k for k in aliases if row.get(k) not in (None, "")), aliases[0])
        values[name] = to_money(row.get(key), key)
    return CostBreakdown(**values)


def _line_id(row: Mapping[str, Any], source: LineSource) -> str:
    raw = row.get("id", row.get("source_line_id"))
    line_id = str(raw).strip() if raw is not None else ""
    if not line_id:
        raise InvalidFingerprintError(source.value, None)
    return line_id


def normalize_estimate_line(row: Mapping[str, Any]) -> EstimateLine:
    return EstimateLine(
        source_line_id=_line_id(row, LineSource.ESTIMATE),
        quoted=_breakdown(row),
        description=row.get("description") or "",
    )


def normalize_additional_line(row: Mapping[str, Any]) -> AdditionalLine:
    """Adapt one additionals row.

    Amounts on a removal row are kept as read; the merge engine quotes
    the removal as the negated baseline line.
    """
    line_id = _line_id(row, LineSource.ADDITIONAL)
    raw_status = row.get("status", row.get("approval_status")) or "pending"
    try:
        status = AdditionalApprovalStatus(str(raw_status).lower())
    except ValueError:
        raise ValidationError(f"Unknown additional status: {raw_status!r}") from None

    is_removal = bool(row.get("is_removal")) or row.get("action") == REMOVAL_ACTION
    target = row.get("original_line_id", row.get("removal_for_source_line_id"))
    if is_removal and not target:
        raise InvalidFingerprintError(LineSource.ESTIMATE.value, None)

    return AdditionalLine(
        source_line_id=line_id,
        approval_status=status,
        quoted=_breakdown(row),
        description=row.get("description") or "",
        is_removal=is_removal,
        removal_for_source_line_id=str(target) if is_removal else None,
    )


def normalize_snapshot_inputs(
    estimate_rows: Iterable[Mapping[str, Any]],
    additionals_record: Mapping[str, Any] | None = None,
) -> SnapshotInputs:
    """Build merge inputs from estimate rows and the additionals record.

    ``additionals_record`` is ``{"line_items": [...],
    "excluded_line_item_ids": [...]}``; either key may be absent.
    """
    record = additionals_record or {}
    return SnapshotInputs(
        estimate_lines=tuple(normalize_estimate_line(r) for r in estimate_rows),
        additional_lines=tuple(
            normalize_additional_line(r) for r in record.get("line_items") or ()
        ),
        excluded_line_ids=frozenset(
            str(x) for x in record.get("excluded_line_item_ids") or ()
        ),
    )
