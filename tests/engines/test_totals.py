"""
TotalsCalculator: baseline independence, final aggregation, delta display.
"""

from decimal import ROUND_DOWN, Decimal

import pytest

from claims_engines.snapshot_merge import FRCSnapshotMerger
from claims_engines.totals import DeltaDirection, TotalsCalculator
from claims_kernel.domain.line_items import (
    AdditionalApprovalStatus as Status,
    LineDecision,
)
from claims_kernel.exceptions import InvalidMonetaryValueError
from conftest import additional_line, cost, estimate_line


@pytest.fixture
def calc() -> TotalsCalculator:
    return TotalsCalculator()


def _agree_all(items):
    return tuple(
        li if li.decision is LineDecision.DECLINE else li.with_decision(LineDecision.AGREE)
        for li in items
    )


def _snapshot(estimate_lines, additional_lines=()):
    return FRCSnapshotMerger().merge(
        existing=(), estimate_lines=estimate_lines, additional_lines=additional_lines,
    ).line_items


class TestBaseline:

    def test_reference_example(self, calc):
        baseline = calc.baseline(Decimal("2889.60"), Decimal("15"))
        assert baseline.vat == Decimal("433.44")
        assert baseline.total == Decimal("3323.04")

    def test_accepts_strings(self, calc):
        assert calc.baseline("100", "15").total == Decimal("115")

    def test_rejects_float(self, calc):
        with pytest.raises(InvalidMonetaryValueError):
            calc.baseline(2889.6, 15)

    def test_independent_of_additionals(self, calc):
        estimate = (estimate_line("E1", parts="2889.60"),)
        without = _agree_all(_snapshot(estimate))
        with_adds = _agree_all(_snapshot(estimate, (
            additional_line("A1", parts="5000.00"),
            additional_line("R1", removes="E1"),
        )))
        t1 = calc.compute(line_items=without, quoted_estimate_subtotal="2889.60", vat_percentage="15")
        t2 = calc.compute(line_items=with_adds, quoted_estimate_subtotal="2889.60", vat_percentage="15")
        assert t1.baseline == t2.baseline
        assert t1.final != t2.final


class TestFinal:

    def test_only_agreed_lines_count(self, calc):
        items = _snapshot(
            (estimate_line("E1", parts="100"), estimate_line("E2", labour="50")),
            (additional_line("A1", Status.DECLINED, parts="999"),),
        )
        items = (items[0].with_decision(LineDecision.AGREE),) + items[1:]
        final = calc.final(items, "15")
        assert final.subtotal == Decimal("100")

    def test_removal_pair_contributes_zero(self, calc):
        items = _agree_all(_snapshot(
            (estimate_line("E1", parts="100"), estimate_line("E2", parts="40", paint="10")),
            (additional_line("R1", removes="E2"),),
        ))
        final = calc.final(items, "0")
        assert final.subtotal == Decimal("100")

    def test_declined_removal_keeps_baseline_in_final(self, calc):
        items = _agree_all(_snapshot(
            (estimate_line("E1", parts="100"),),
            (additional_line("R1", Status.DECLINED, removes="E1"),),
        ))
        final = calc.final(items, "0")
        assert final.subtotal == Decimal("100")

    def test_markup_summed_at_aggregate_level(self, calc):
        items = _agree_all(_snapshot((
            estimate_line("E1", parts="100", markup="10"),
            estimate_line("E2", labour="50", markup="5.55"),
        )))
        final = calc.final(items, "15")
        assert final.categories.markup == Decimal("15.55")
        assert final.subtotal == Decimal("165.55")

    def test_uses_actual_not_quoted(self, calc):
        items = _snapshot((estimate_line("E1", parts="100"),))
        items = (items[0].with_decision(LineDecision.AGREE).with_actual(cost(parts="80")),)
        assert calc.final(items, "0").subtotal == Decimal("80")

    def test_no_rounding_mid_calculation(self, calc):
        items = _agree_all(_snapshot((estimate_line("E1", parts="0.333"),)))
        final = calc.final(items, "15")
        assert final.vat == Decimal("0.04995")


class TestBreakdown:

    def test_source_split(self, calc, sample_inputs):
        items = _agree_all(_snapshot(sample_inputs.estimate_lines, sample_inputs.additional_lines))
        bd = calc.breakdown(items)
        assert bd.quoted_estimate.subtotal == Decimal("1670.00")
        assert bd.removed.subtotal == Decimal("420.00")
        assert bd.actual_estimate.subtotal == Decimal("1250.00")
        # A1 plus the negative removal line; the declined A2 is excluded
        assert bd.quoted_additionals.subtotal == Decimal("60.00")
        assert bd.actual_additionals.subtotal == Decimal("480.00")


class TestReferenceExample:
    """quoted estimate 2889.60 @ 15% against a final subtotal of 7387.30."""

    @pytest.fixture
    def totals(self, calc):
        items = _agree_all(_snapshot(
            (estimate_line("E1", parts="1500.00", labour="800.00", paint="400.00",
                           outwork="89.60", markup="100.00"),),
            (additional_line("A1", parts="3500.00", labour="700.00", paint="200.00",
                             outwork="50.00", markup="47.70"),),
        ))
        return calc.compute(line_items=items, quoted_estimate_subtotal="2889.60", vat_percentage="15")

    def test_exact_values(self, totals):
        assert totals.baseline.total == Decimal("3323.04")
        assert totals.final.subtotal == Decimal("7387.30")
        assert totals.final.total == Decimal("8495.395")
        assert totals.delta == Decimal("5172.355")
        assert totals.direction is DeltaDirection.INCREASE

    def test_display_rounds_at_output(self, totals):
        display = totals.to_display()
        assert display["baseline"]["total"] == "3323.04"
        assert display["final"]["total"] == "8495.40"
        assert display["final"]["vat"] == "1108.10"
        assert display["delta"] == "+5172.36"
        assert display["direction"] == "increase"

    def test_display_respects_rounding_mode(self, totals):
        assert totals.to_display(2, ROUND_DOWN)["final"]["total"] == "8495.39"


class TestDirection:

    def test_decrease_has_minus_sign(self, calc):
        items = _agree_all(_snapshot((estimate_line("E1", parts="50"),)))
        totals = calc.compute(line_items=items, quoted_estimate_subtotal="100", vat_percentage="0")
        assert totals.direction is DeltaDirection.DECREASE
        assert totals.to_display()["delta"] == "-50.00"

    def test_unchanged(self, calc):
        items = _agree_all(_snapshot((estimate_line("E1", parts="100"),)))
        totals = calc.compute(line_items=items, quoted_estimate_subtotal="100", vat_percentage="15")
        assert totals.direction is DeltaDirection.UNCHANGED
        assert totals.to_display()["delta"] == "0.00"
