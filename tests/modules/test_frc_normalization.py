"""
Costing input normalization from estimate and additionals rows.
"""

from decimal import Decimal

import pytest

from claims_kernel.domain.line_items import AdditionalApprovalStatus
from claims_kernel.exceptions import (
    InvalidFingerprintError,
    InvalidMonetaryValueError,
    ValidationError,
)
from claims_modules.frc.normalization import (
    normalize_additional_line,
    normalize_estimate_line,
    normalize_snapshot_inputs,
)


class TestEstimateRows:

    def test_column_aliases(self):
        line = normalize_estimate_line({
            "id": 17,
            "description": "Bumper",
            "part_price_nett": "1200.50",
            "labour_cost": "300",
            "paint_cost": "150",
            "outwork_charge_nett": "45.25",
            "markup": "10",
        })
        assert line.source_line_id == "17"
        assert line.quoted.parts_nett == Decimal("1200.50")
        assert line.quoted.outwork_nett == Decimal("45.25")
        assert line.quoted.subtotal == Decimal("1705.75")

    def test_missing_amounts_are_zero(self):
        line = normalize_estimate_line({"id": "E1", "labour": "80"})
        assert line.quoted.parts_nett == Decimal("0")
        assert line.quoted.subtotal == Decimal("80")

    def test_missing_id_rejected(self):
        with pytest.raises(InvalidFingerprintError):
            normalize_estimate_line({"description": "no id", "labour": "1"})

    def test_float_amount_rejected(self):
        with pytest.raises(InvalidMonetaryValueError):
            normalize_estimate_line({"id": "E1", "parts_nett": 12.5})


class TestAdditionalRows:

    def test_status_parsed(self):
        line = normalize_additional_line({"id": "A1", "status": "Approved", "parts_nett": "5"})
        assert line.approval_status is AdditionalApprovalStatus.APPROVED
        assert not line.is_removal

    def test_missing_status_is_pending(self):
        line = normalize_additional_line({"id": "A1"})
        assert line.approval_status is AdditionalApprovalStatus.PENDING

    def test_removal_action(self):
        line = normalize_additional_line({
            "id": "R1", "status": "approved", "action": "removed", "original_line_id": "E2",
        })
        assert line.is_removal
        assert line.removal_for_source_line_id == "E2"

    def test_removal_without_target_rejected(self):
        with pytest.raises(InvalidFingerprintError):
            normalize_additional_line({"id": "R1", "status": "approved", "action": "removed"})

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError, match="Unknown additional status"):
            normalize_additional_line({"id": "A1", "status": "maybe"})


class TestSnapshotInputs:

    def test_builds_inputs(self):
        inputs = normalize_snapshot_inputs(
            [{"id": "E1", "parts_nett": "100"}, {"id": "E2", "labour": "50"}],
            {
                "line_items": [{"id": "A1", "status": "approved", "paint": "20"}],
                "excluded_line_item_ids": [3, "A9"],
            },
        )
        assert [l.source_line_id for l in inputs.estimate_lines] == ["E1", "E2"]
        assert inputs.additional_lines[0].source_line_id == "A1"
        assert inputs.excluded_line_ids == frozenset({"3", "A9"})
        assert inputs.estimate_quoted_subtotal == Decimal("150")

    def test_no_additionals_record(self):
        inputs = normalize_snapshot_inputs([{"id": "E1", "parts_nett": "1"}])
        assert inputs.additional_lines == ()
        assert inputs.excluded_line_ids == frozenset()
