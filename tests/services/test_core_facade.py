"""
AssessmentCore end to end: request to archived and back, with costing totals.
"""

from decimal import Decimal

import pytest

from claims_config import CoreSettings
from claims_kernel.domain.line_items import AdditionalApprovalStatus
from claims_kernel.domain.stages import AssessmentStage as S
from claims_kernel.exceptions import VersionConflictError
from claims_modules.frc.models import SignOff, SnapshotInputs
from claims_services.core import AssessmentCore
from conftest import additional_line, estimate_line

REFERENCE_INPUTS = SnapshotInputs(
    estimate_lines=(
        estimate_line("E1", parts="1500.00", labour="800.00", paint="400.00",
                      outwork="89.60", markup="100.00"),
    ),
    additional_lines=(
        additional_line("A1", parts="3500.00", labour="700.00", paint="200.00",
                        outwork="50.00", markup="47.70"),
    ),
)


def _walk_to_finalized(core, assessment_id):
    for event in ("review_request", "schedule_inspection", "start_assessment",
                  "submit_for_review", "send_estimate", "finalize_estimate"):
        core.attempt_transition(assessment_id, event)


class TestLifecycle:

    def test_request_to_archived(self, core):
        assessment = core.create_assessment("REQ-100", "ASM-100", appointment_id="APT-100")
        _walk_to_finalized(core, assessment.id)
        assert core.get_assessment(assessment.id).stage is S.ESTIMATE_FINALIZED

        frc = core.start_frc(assessment.id, REFERENCE_INPUTS)
        assert core.get_frc_for_assessment(assessment.id).id == frc.id

        version = frc.line_items_version
        for fingerprint in ("estimate:E1", "additional:A1"):
            frc = core.update_line(frc.id, fingerprint, version, decision="agree")
            version = frc.line_items_version

        totals = core.compute_totals(frc.id)
        assert totals.baseline.total == Decimal("3323.04")
        assert totals.final.total == Decimal("8495.395")

        display = core.display_totals(frc.id)
        assert display["final"]["total"] == "8495.40"
        assert display["delta"] == "+5172.36"

        completed = core.complete_frc(frc.id, SignOff(name="J. Assessor"))
        assert completed.is_completed
        assert core.get_assessment(assessment.id).stage is S.ARCHIVED

        reopened = core.reopen_frc(frc.id)
        assert not reopened.is_completed
        assert core.get_assessment(assessment.id).stage is S.ESTIMATE_FINALIZED

    def test_stale_client_version(self, core, finalized_assessment):
        frc = core.start_frc(finalized_assessment.id, REFERENCE_INPUTS)
        core.refresh_snapshot(frc.id, frc.line_items_version, REFERENCE_INPUTS)
        with pytest.raises(VersionConflictError):
            core.merge_snapshot(frc.id, frc.line_items_version, REFERENCE_INPUTS)

    def test_notify_after_completion(self, core, finalized_assessment):
        frc = core.start_frc(finalized_assessment.id, REFERENCE_INPUTS)
        core.complete_frc(frc.id)
        flagged = core.notify_additionals_changed(frc.id, frc.line_items_version, REFERENCE_INPUTS)
        assert flagged.needs_sync
        assert core.get_frc(frc.id).needs_sync


class TestSettings:

    def test_default_vat_from_settings(self, session, clock, sink, finalized_assessment):
        core = AssessmentCore(session, clock, sink, CoreSettings(default_vat_percentage=Decimal("14")))
        frc = core.start_frc(finalized_assessment.id, REFERENCE_INPUTS)
        assert frc.vat_percentage == Decimal("14")

    def test_display_precision_from_settings(self, session, clock, sink, finalized_assessment):
        core = AssessmentCore(
            session, clock, sink,
            CoreSettings(display_decimal_places=3, rounding_mode="ROUND_DOWN"),
        )
        frc = core.start_frc(finalized_assessment.id, REFERENCE_INPUTS)
        for fingerprint, version in (("estimate:E1", 1), ("additional:A1", 2)):
            core.update_line(frc.id, fingerprint, version, decision="agree")
        assert core.display_totals(frc.id)["final"]["total"] == "8495.395"

    def test_declined_additionals_excluded_by_setting(self, session, clock, sink, finalized_assessment):
        core = AssessmentCore(session, clock, sink, CoreSettings(include_declined_additionals=False))
        inputs = SnapshotInputs(
            estimate_lines=REFERENCE_INPUTS.estimate_lines,
            additional_lines=(additional_line("D1", AdditionalApprovalStatus.DECLINED, parts="10"),),
        )
        frc = core.start_frc(finalized_assessment.id, inputs)
        assert frc.line("additional:D1") is None
