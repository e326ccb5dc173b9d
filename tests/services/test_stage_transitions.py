"""
StageTransitionController against the database.

Every (stage, event) pair is exercised: eligible pairs must land on the
target stage, ineligible pairs must raise and leave the row untouched.
Targets guarded by a completed costing record are refused while no
such record exists.
"""

from uuid import uuid4

import pytest

from claims_kernel.domain.events import StageChanged
from claims_kernel.domain.stages import ORDERED_STAGES, AssessmentStage as S
from claims_kernel.exceptions import (
    AssessmentNotFoundError,
    InvalidTransitionError,
    MissingPrerequisiteError,
    StaleStateError,
    UnknownTransitionEventError,
)
from claims_modules.assessment.workflows import ASSESSMENT_STAGE_TABLE, FRC_COMPLETED
from claims_modules.frc.models import FRCStatus, SnapshotInputs
from conftest import estimate_line

ALL_PAIRS = [
    (stage, transition.event)
    for stage in ORDERED_STAGES
    for transition in ASSESSMENT_STAGE_TABLE
]


class TestTransitionGrid:

    @pytest.mark.parametrize("stage,event", ALL_PAIRS, ids=[f"{s.value}-{e}" for s, e in ALL_PAIRS])
    def test_pair(self, controller, assessment_service, seed_assessment, stage, event):
        record = seed_assessment(stage)
        transition = ASSESSMENT_STAGE_TABLE.get(event)

        if stage.value == transition.to_state:
            result = controller.attempt_transition(record.id, event)
            assert not result.applied
        elif transition.allows_from(stage.value) and FRC_COMPLETED in transition.guards:
            with pytest.raises(MissingPrerequisiteError):
                controller.attempt_transition(record.id, event)
            assert assessment_service.get(record.id).stage is stage
        elif transition.allows_from(stage.value):
            result = controller.attempt_transition(record.id, event)
            assert result.applied
            assert result.to_stage.value == transition.to_state
            assert assessment_service.get(record.id).stage.value == transition.to_state
        else:
            with pytest.raises(InvalidTransitionError):
                controller.attempt_transition(record.id, event)
            assert assessment_service.get(record.id).stage is stage


class TestEligibility:

    def test_start_assessment_from_appointment_scheduled(self, controller, seed_assessment):
        """Regression: appointment_scheduled must reach assessment_in_progress."""
        record = seed_assessment(S.APPOINTMENT_SCHEDULED)
        result = controller.attempt_transition(record.id, "start_assessment")
        assert result.to_stage is S.ASSESSMENT_IN_PROGRESS
        assert result.assessment.started_at is not None

    def test_rejection_lists_allowed_stages_in_order(self, controller, seed_assessment):
        record = seed_assessment(S.REQUEST_SUBMITTED, appointment_id=None)
        with pytest.raises(InvalidTransitionError) as exc_info:
            controller.attempt_transition(record.id, "start_assessment")
        assert exc_info.value.allowed_from == ("inspection_scheduled", "appointment_scheduled")
        assert exc_info.value.target_state == "assessment_in_progress"

    def test_rejection_logged(self, controller, seed_assessment, captured_logs):
        record = seed_assessment(S.ARCHIVED)
        with pytest.raises(InvalidTransitionError):
            controller.attempt_transition(record.id, "send_estimate")
        entry = next(r for r in captured_logs() if r["message"] == "stage_transition_rejected")
        assert entry["error_code"] == "INVALID_TRANSITION"
        assert entry["event_name"] == "send_estimate"

    def test_unknown_event(self, controller, seed_assessment):
        record = seed_assessment()
        with pytest.raises(UnknownTransitionEventError):
            controller.attempt_transition(record.id, "teleport")

    def test_unknown_assessment(self, controller):
        with pytest.raises(AssessmentNotFoundError):
            controller.attempt_transition(uuid4(), "review_request")


class TestAppointmentPrerequisite:

    def test_missing_appointment(self, controller, seed_assessment, assessment_service):
        record = seed_assessment(S.REQUEST_REVIEWED, appointment_id=None)
        with pytest.raises(MissingPrerequisiteError) as exc_info:
            controller.attempt_transition(record.id, "schedule_appointment")
        assert exc_info.value.prerequisite == "appointment_id"
        assert assessment_service.get(record.id).stage is S.REQUEST_REVIEWED

    def test_appointment_linked_with_event(self, controller, seed_assessment):
        record = seed_assessment(S.REQUEST_REVIEWED, appointment_id=None)
        result = controller.attempt_transition(
            record.id, "schedule_appointment", appointment_id="APT-77",
        )
        assert result.assessment.appointment_id == "APT-77"
        assert result.assessment.appointment_invariant_holds


class TestCompletedFRCPrerequisite:

    @pytest.fixture
    def open_frc(self, frc_service, finalized_assessment):
        inputs = SnapshotInputs(estimate_lines=(estimate_line("E1", parts="100"),))
        return frc_service.create_record(finalized_assessment.id, inputs, vat_percentage="15")

    def test_no_frc_record(self, controller, finalized_assessment, assessment_service):
        with pytest.raises(MissingPrerequisiteError) as exc_info:
            controller.attempt_transition(finalized_assessment.id, "complete_frc")
        assert exc_info.value.prerequisite == "frc_completed"
        assert exc_info.value.code == "MISSING_PREREQUISITE"
        assert assessment_service.get(finalized_assessment.id).stage is S.ESTIMATE_FINALIZED

    def test_frc_still_in_progress(self, controller, finalized_assessment, assessment_service, open_frc):
        with pytest.raises(MissingPrerequisiteError):
            controller.attempt_transition(finalized_assessment.id, "complete_frc")
        assert assessment_service.get(finalized_assessment.id).stage is S.ESTIMATE_FINALIZED
        assert open_frc.status is FRCStatus.IN_PROGRESS

    def test_completed_frc_archives(self, controller, frc_service, finalized_assessment, open_frc):
        frc_service.apply_status_event(open_frc.id, "complete")
        result = controller.attempt_transition(finalized_assessment.id, "complete_frc")
        assert result.applied
        assert result.to_stage is S.ARCHIVED

    def test_rejection_logged(self, controller, finalized_assessment, captured_logs):
        with pytest.raises(MissingPrerequisiteError):
            controller.attempt_transition(finalized_assessment.id, "complete_frc")
        entry = next(r for r in captured_logs() if r["message"] == "stage_transition_rejected")
        assert entry["error_code"] == "MISSING_PREREQUISITE"


class TestStaleAndNoop:

    def test_expected_stage_mismatch(self, controller, seed_assessment):
        record = seed_assessment(S.ESTIMATE_SENT)
        with pytest.raises(StaleStateError) as exc_info:
            controller.attempt_transition(
                record.id, "finalize_estimate", expected_current_stage=S.ESTIMATE_REVIEW,
            )
        assert exc_info.value.actual_state == "estimate_sent"

    def test_expected_stage_match(self, controller, seed_assessment):
        record = seed_assessment(S.ESTIMATE_SENT)
        result = controller.attempt_transition(
            record.id, "finalize_estimate", expected_current_stage="estimate_sent",
        )
        assert result.applied
        assert result.assessment.estimate_finalized_at is not None

    def test_noop_emits_no_event(self, controller, seed_assessment, sink, captured_logs):
        record = seed_assessment(S.CANCELLED)
        result = controller.attempt_transition(record.id, "cancel")
        assert not result.applied
        assert sink.events == []
        assert any(r["message"] == "stage_transition_noop" for r in captured_logs())


class TestSideEffects:

    def test_stage_changed_event(self, controller, seed_assessment, sink):
        record = seed_assessment(S.ESTIMATE_REVIEW)
        controller.attempt_transition(record.id, "return_to_assessment")
        event = sink.of_type(StageChanged)[-1]
        assert (event.from_stage, event.to_stage) == ("estimate_review", "assessment_in_progress")
        assert event.event_name == "return_to_assessment"

    def test_reopen_clears_archived_at(self, controller, frc_service, seed_assessment):
        record = seed_assessment(S.ESTIMATE_FINALIZED)
        frc = frc_service.create_record(record.id, SnapshotInputs(), vat_percentage="15")
        frc_service.apply_status_event(frc.id, "complete")
        archived = controller.attempt_transition(record.id, "complete_frc").assessment
        assert archived.archived_at is not None
        reopened = controller.attempt_transition(record.id, "reopen_frc").assessment
        assert reopened.stage is S.ESTIMATE_FINALIZED
        assert reopened.archived_at is None

    def test_cancel_stamps(self, controller, seed_assessment):
        record = seed_assessment(S.ASSESSMENT_IN_PROGRESS)
        cancelled = controller.attempt_transition(record.id, "cancel").assessment
        assert cancelled.cancelled_at is not None


class TestQueries:

    def test_check_transition(self, controller):
        assert controller.check_transition("appointment_scheduled", "start_assessment")
        assert controller.check_transition("archived", "complete_frc")
        assert not controller.check_transition("request_submitted", "complete_frc")

    def test_available_events(self, controller, seed_assessment):
        record = seed_assessment(S.ESTIMATE_REVIEW)
        assert set(controller.available_events(record.id)) == {
            "return_to_assessment", "send_estimate", "cancel",
        }
