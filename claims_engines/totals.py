"""
claims_engines.totals -- Baseline and final costing totals.

Responsibility:
    Derive two independent totals for an FRC snapshot:

    * **Baseline** -- from ``quoted_estimate_subtotal`` and the VAT
      percentage only.  No line item or additional can influence it.
    * **Final** -- from the agreed lines of the snapshot, excluding both
      halves of every removal pair.

    plus the signed delta between them and a quoted/actual breakdown split
    by line source for the costing record.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Fixed-point ``Decimal`` arithmetic throughout; no float.
    - Percentages are applied as ``value * (percentage / 100)``.
    - Markup is summed as its own category at aggregate level, never
      applied per line.
    - No rounding inside the calculation.  ``to_display`` is the only
      place values are rounded.

Failure modes:
    - InvalidMonetaryValueError if a non-Decimal-compatible subtotal or
      VAT percentage is supplied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Sequence

from claims_kernel.domain.line_items import (
    COST_CATEGORIES,
    AdditionalApprovalStatus,
    CostBreakdown,
    LineItem,
    LineSource,
)
from claims_kernel.domain.money import (
    DEFAULT_ROUNDING,
    DISPLAY_DECIMAL_PLACES,
    ZERO,
    apply_percentage,
    round_money,
    to_money,
)
from claims_engines.tracer import traced_engine


class DeltaDirection(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class BaselineTotals:
    subtotal: Decimal
    vat_percentage: Decimal
    vat: Decimal
    total: Decimal


@dataclass(frozen=True)
class FinalTotals:
    categories: CostBreakdown
    vat_percentage: Decimal
    subtotal: Decimal
    vat: Decimal
    total: Decimal


@dataclass(frozen=True)
class SourceBreakdown:
    """Quoted and actual category sums split by line source.

    ``removed`` is the quoted amount of baseline lines taken out through
    removal additionals.
    """

    quoted_estimate: CostBreakdown = field(default_factory=CostBreakdown)
    quoted_additionals: CostBreakdown = field(default_factory=CostBreakdown)
    actual_estimate: CostBreakdown = field(default_factory=CostBreakdown)
    actual_additionals: CostBreakdown = field(default_factory=CostBreakdown)
    removed: CostBreakdown = field(default_factory=CostBreakdown)


@dataclass(frozen=True)
class FRCTotals:
    baseline: BaselineTotals
    final: FinalTotals
    breakdown: SourceBreakdown

    @property
    def delta(self) -> Decimal:
        return self.final.total - self.baseline.total

    @property
    def direction(self) -> DeltaDirection:
        if self.delta > ZERO:
            return DeltaDirection.INCREASE
        if self.delta < ZERO:
            return DeltaDirection.DECREASE
        return DeltaDirection.UNCHANGED

    def to_display(
        self,
        decimal_places: int = DISPLAY_DECIMAL_PLACES,
        rounding: str = DEFAULT_ROUNDING,
    ) -> dict[str, Any]:
        """Rounded string payload for an outer layer.

        Each figure is rounded from its exact value, so the displayed delta
        is not necessarily the difference of the displayed totals.
        """

        def fmt(value: Decimal) -> str:
            return format(round_money(value, decimal_places, rounding), "f")

        delta = round_money(self.delta, decimal_places, rounding)
        signed_delta = f"+{format(delta, 'f')}" if delta > ZERO else format(delta, "f")
        return {
            "baseline": {
                "subtotal": fmt(self.baseline.subtotal),
                "vat": fmt(self.baseline.vat),
                "total": fmt(self.baseline.total),
            },
            "final": {
                **{name: fmt(getattr(self.final.categories, name)) for name in COST_CATEGORIES},
                "subtotal": fmt(self.final.subtotal),
                "vat": fmt(self.final.vat),
                "total": fmt(self.final.total),
            },
            "vat_percentage": format(self.final.vat_percentage, "f"),
            "delta": signed_delta,
            "direction": self.direction.value,
        }


class TotalsCalculator:
    """Pure totals engine.  Stateless; safe to share."""

    def baseline(self, quoted_estimate_subtotal: Any, vat_percentage: Any) -> BaselineTotals:
        subtotal = to_money(quoted_estimate_subtotal, "quoted_estimate_subtotal")
        pct = to_money(vat_percentage, "vat_percentage")
        vat = apply_percentage(subtotal, pct)
        return BaselineTotals(subtotal=subtotal, vat_percentage=pct, vat=vat, total=subtotal + vat)

    def final(self, line_items: Sequence[LineItem], vat_percentage: Any) -> FinalTotals:
        pct = to_money(vat_percentage, "vat_percentage")
        categories = CostBreakdown.zero()
        for item in line_items:
            if item.counts_toward_final:
                categories = categories + item.actual
        subtotal = categories.subtotal
        vat = apply_percentage(subtotal, pct)
        return FinalTotals(
            categories=categories,
            vat_percentage=pct,
            subtotal=subtotal,
            vat=vat,
            total=subtotal + vat,
        )

    def breakdown(self, line_items: Sequence[LineItem]) -> SourceBreakdown:
        quoted_estimate = CostBreakdown.zero()
        quoted_additionals = CostBreakdown.zero()
        actual_estimate = CostBreakdown.zero()
        actual_additionals = CostBreakdown.zero()
        removed = CostBreakdown.zero()

        for item in line_items:
            if item.source is LineSource.ESTIMATE:
                quoted_estimate = quoted_estimate + item.quoted
                if item.removed_via_additionals:
                    removed = removed + item.quoted
                elif item.counts_toward_final:
                    actual_estimate = actual_estimate + item.actual
                continue
            # additionals: declined lines stay in the snapshot for audit only
            if item.approval_status is not AdditionalApprovalStatus.DECLINED:
                quoted_additionals = quoted_additionals + item.quoted
            if item.counts_toward_final:
                actual_additionals = actual_additionals + item.actual

        return SourceBreakdown(
            quoted_estimate=quoted_estimate,
            quoted_additionals=quoted_additionals,
            actual_estimate=actual_estimate,
            actual_additionals=actual_additionals,
            removed=removed,
        )

    @traced_engine("frc_totals", "1.0", fingerprint_fields=("quoted_estimate_subtotal", "vat_percentage"))
    def compute(
        self,
        *,
        line_items: Sequence[LineItem],
        quoted_estimate_subtotal: Any,
        vat_percentage: Any,
    ) -> FRCTotals:
        return FRCTotals(
            baseline=self.baseline(quoted_estimate_subtotal, vat_percentage),
            final=self.final(line_items, vat_percentage),
            breakdown=self.breakdown(line_items),
        )
