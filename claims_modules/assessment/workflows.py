"""
Assessment Workflows.

The one declarative stage transition table for assessments.  Every stage
change in the system is a named event in ``ASSESSMENT_STAGE_TABLE``; no
call site lists eligible stages of its own.
"""

from claims_kernel.domain.stages import (
    ACTIVE_STAGES,
    INITIAL_STAGE,
    ORDERED_STAGES,
    TERMINAL_STAGES,
    AssessmentStage as S,
)
from claims_kernel.domain.workflow import Guard, StageTransition, TransitionTable
from claims_kernel.logging_config import get_logger

logger = get_logger("modules.assessment.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

APPOINTMENT_LINKED = Guard(
    name="appointment_linked",
    description="Assessment has an appointment id (or one is supplied with the event)",
)

FRC_COMPLETED = Guard(
    name="frc_completed",
    description="Costing subprocess record is completed",
)


def _stages(*stages: S) -> frozenset[str]:
    return frozenset(s.value for s in stages)


# -----------------------------------------------------------------------------
# Transitions
# -----------------------------------------------------------------------------

REVIEW_REQUEST = StageTransition(
    event="review_request",
    eligible_from=_stages(S.REQUEST_SUBMITTED),
    to_state=S.REQUEST_REVIEWED.value,
    description="Request accepted for handling",
)

SCHEDULE_INSPECTION = StageTransition(
    event="schedule_inspection",
    eligible_from=_stages(S.REQUEST_REVIEWED),
    to_state=S.INSPECTION_SCHEDULED.value,
    description="Inspection booked",
)

SCHEDULE_APPOINTMENT = StageTransition(
    event="schedule_appointment",
    eligible_from=_stages(S.REQUEST_REVIEWED, S.INSPECTION_SCHEDULED),
    to_state=S.APPOINTMENT_SCHEDULED.value,
    description="Appointment booked and linked",
    guards=(APPOINTMENT_LINKED,),
)

# Eligible from both booking stages, appointment_scheduled included.
START_ASSESSMENT = StageTransition(
    event="start_assessment",
    eligible_from=_stages(S.INSPECTION_SCHEDULED, S.APPOINTMENT_SCHEDULED),
    to_state=S.ASSESSMENT_IN_PROGRESS.value,
    description="Assessor begins on-site work",
    guards=(APPOINTMENT_LINKED,),
    stamps="started_at",
)

SUBMIT_FOR_REVIEW = StageTransition(
    event="submit_for_review",
    eligible_from=_stages(S.ASSESSMENT_IN_PROGRESS),
    to_state=S.ESTIMATE_REVIEW.value,
    description="Estimate submitted for internal review",
)

RETURN_TO_ASSESSMENT = StageTransition(
    event="return_to_assessment",
    eligible_from=_stages(S.ESTIMATE_REVIEW),
    to_state=S.ASSESSMENT_IN_PROGRESS.value,
    description="Review sends the estimate back to the assessor",
    is_reversal=True,
)

SEND_ESTIMATE = StageTransition(
    event="send_estimate",
    eligible_from=_stages(S.ESTIMATE_REVIEW),
    to_state=S.ESTIMATE_SENT.value,
    description="Estimate sent to the insurer",
)

FINALIZE_ESTIMATE = StageTransition(
    event="finalize_estimate",
    eligible_from=_stages(S.ESTIMATE_SENT),
    to_state=S.ESTIMATE_FINALIZED.value,
    description="Insurer accepted the estimate; it becomes the costing baseline",
    stamps="estimate_finalized_at",
)

COMPLETE_FRC = StageTransition(
    event="complete_frc",
    eligible_from=_stages(S.ESTIMATE_FINALIZED, S.FRC_IN_PROGRESS),
    to_state=S.ARCHIVED.value,
    description="Final repair costing signed off",
    guards=(FRC_COMPLETED,),
    stamps="archived_at",
)

REOPEN_FRC = StageTransition(
    event="reopen_frc",
    eligible_from=_stages(S.ARCHIVED),
    to_state=S.ESTIMATE_FINALIZED.value,
    description="Final repair costing reopened for changes",
    clears=("archived_at",),
    is_reversal=True,
)

CANCEL = StageTransition(
    event="cancel",
    eligible_from=frozenset(s.value for s in ACTIVE_STAGES),
    to_state=S.CANCELLED.value,
    description="Assessment withdrawn",
    stamps="cancelled_at",
)


ASSESSMENT_STAGE_TABLE = TransitionTable(
    name="assessment_stage",
    states=tuple(s.value for s in ORDERED_STAGES),
    initial_state=INITIAL_STAGE.value,
    terminal_states=tuple(s.value for s in TERMINAL_STAGES),
    transitions=(
        REVIEW_REQUEST,
        SCHEDULE_INSPECTION,
        SCHEDULE_APPOINTMENT,
        START_ASSESSMENT,
        SUBMIT_FOR_REVIEW,
        RETURN_TO_ASSESSMENT,
        SEND_ESTIMATE,
        FINALIZE_ESTIMATE,
        COMPLETE_FRC,
        REOPEN_FRC,
        CANCEL,
    ),
)

logger.debug(
    "workflow_registered",
    extra={
        "workflow": ASSESSMENT_STAGE_TABLE.name,
        "events": list(ASSESSMENT_STAGE_TABLE.events()),
    },
)
