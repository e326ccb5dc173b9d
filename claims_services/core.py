"""
claims_services.core -- caller-facing operations of the claims core.

``AssessmentCore`` wires the controllers and module services to one
session, clock, event sink and settings object.  Every mutating call takes
explicit ids and, where the record is versioned, the caller's expected
version; every failure is a typed ``ClaimsKernelError``.

Usage:
    with session_scope() as session:
        core = AssessmentCore(session, event_sink=sink)
        frc = core.start_frc(assessment_id, inputs)
        frc = core.update_line(frc.id, "estimate:L1", frc.line_items_version,
                               decision="agree")
        totals = core.compute_totals(frc.id)
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from claims_config import CoreSettings, get_active_config
from claims_engines.totals import FRCTotals
from claims_kernel.domain.clock import Clock, SystemClock
from claims_kernel.domain.events import EventSink
from claims_kernel.domain.line_items import CostBreakdown, LineDecision
from claims_kernel.domain.stages import AssessmentStage
from claims_modules.assessment.models import AssessmentRecord, TransitionResult
from claims_modules.assessment.service import AssessmentService
from claims_modules.frc.models import FRCRecord, SignOff, SnapshotInputs
from claims_services.frc_subprocess import FRCSubprocessController
from claims_services.stage_transitions import StageTransitionController


class AssessmentCore:
    """Facade over stage transitions and the costing subprocess."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        event_sink: EventSink | None = None,
        settings: CoreSettings | None = None,
    ):
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_config()
        self._assessments = AssessmentService(session, self._clock)
        self._stages = StageTransitionController(session, self._clock, event_sink)
        self._subprocess = FRCSubprocessController(
            session,
            self._clock,
            event_sink,
            default_vat_percentage=self._settings.default_vat_percentage,
            include_declined_additionals=self._settings.include_declined_additionals,
            stage_controller=self._stages,
        )
        self._frc = self._subprocess.frc_service

    @property
    def settings(self) -> CoreSettings:
        return self._settings

    # =========================================================================
    # Assessments
    # =========================================================================

    def create_assessment(
        self,
        request_id: str,
        assessment_number: str | None = None,
        appointment_id: str | None = None,
    ) -> AssessmentRecord:
        return self._assessments.create_assessment(request_id, assessment_number, appointment_id)

    def get_assessment(self, assessment_id: UUID) -> AssessmentRecord:
        return self._assessments.get(assessment_id)

    def attempt_transition(
        self,
        assessment_id: UUID,
        event_name: str,
        expected_current_stage: AssessmentStage | str | None = None,
        appointment_id: str | None = None,
    ) -> TransitionResult:
        return self._stages.attempt_transition(
            assessment_id, event_name, expected_current_stage, appointment_id,
        )

    # =========================================================================
    # Costing
    # =========================================================================

    def start_frc(
        self,
        assessment_id: UUID,
        inputs: SnapshotInputs,
        vat_percentage: Any = None,
        quoted_estimate_subtotal: Any = None,
    ) -> FRCRecord:
        return self._subprocess.start(
            assessment_id, inputs, vat_percentage, quoted_estimate_subtotal,
        )

    def get_frc(self, frc_id: UUID) -> FRCRecord:
        return self._frc.get(frc_id)

    def get_frc_for_assessment(self, assessment_id: UUID) -> FRCRecord | None:
        return self._frc.get_for_assessment(assessment_id)

    def merge_snapshot(
        self,
        frc_id: UUID,
        expected_version: int,
        inputs: SnapshotInputs,
    ) -> FRCRecord:
        return self._frc.merge_snapshot(frc_id, expected_version, inputs)

    def refresh_snapshot(
        self,
        frc_id: UUID,
        expected_version: int,
        inputs: SnapshotInputs,
    ) -> FRCRecord:
        return self._frc.refresh_snapshot(frc_id, expected_version, inputs)

    def notify_additionals_changed(
        self,
        frc_id: UUID,
        expected_version: int,
        inputs: SnapshotInputs,
    ) -> FRCRecord:
        return self._subprocess.notify_additionals_changed(frc_id, expected_version, inputs)

    def update_line(
        self,
        frc_id: UUID,
        fingerprint: str,
        expected_version: int,
        decision: LineDecision | str | None = None,
        actual: CostBreakdown | Mapping[str, Any] | None = None,
    ) -> FRCRecord:
        return self._frc.update_line(frc_id, fingerprint, expected_version, decision, actual)

    def compute_totals(self, frc_id: UUID) -> FRCTotals:
        return self._frc.compute_totals(frc_id)

    def display_totals(self, frc_id: UUID) -> dict[str, Any]:
        """Totals rounded per the configured display precision."""
        return self.compute_totals(frc_id).to_display(
            self._settings.display_decimal_places,
            self._settings.rounding_mode,
        )

    def complete_frc(self, frc_id: UUID, sign_off: SignOff | None = None) -> FRCRecord:
        return self._subprocess.complete(frc_id, sign_off)

    def reopen_frc(self, frc_id: UUID) -> FRCRecord:
        return self._subprocess.reopen(frc_id)
