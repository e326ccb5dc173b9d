"""
Assessment stages (``claims_kernel.domain.stages``).

Responsibility
--------------
The canonical, ordered set of eleven workflow stages an assessment can be
in, and the stage groupings other components consult.  Call sites never
spell out stage lists themselves; they import the named groups here.

Invariants enforced
-------------------
* ``ORDERED_STAGES`` lists every ``AssessmentStage`` member exactly once.
* ``APPOINTMENT_DEPENDENT_STAGES`` is the closed range
  appointment_scheduled .. frc_in_progress: an assessment in any of these
  stages must carry an ``appointment_id``.
* ``frc_in_progress`` is informational (list filtering).  Starting the
  costing subprocess does NOT move an assessment into it.
"""

from __future__ import annotations

from enum import Enum


class AssessmentStage(str, Enum):
    """Workflow position of an assessment."""

    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_REVIEWED = "request_reviewed"
    INSPECTION_SCHEDULED = "inspection_scheduled"
    APPOINTMENT_SCHEDULED = "appointment_scheduled"
    ASSESSMENT_IN_PROGRESS = "assessment_in_progress"
    ESTIMATE_REVIEW = "estimate_review"
    ESTIMATE_SENT = "estimate_sent"
    ESTIMATE_FINALIZED = "estimate_finalized"
    FRC_IN_PROGRESS = "frc_in_progress"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


ORDERED_STAGES: tuple[AssessmentStage, ...] = tuple(AssessmentStage)

INITIAL_STAGE = AssessmentStage.REQUEST_SUBMITTED

TERMINAL_STAGES: frozenset[AssessmentStage] = frozenset({
    AssessmentStage.ARCHIVED,
    AssessmentStage.CANCELLED,
})

APPOINTMENT_DEPENDENT_STAGES: frozenset[AssessmentStage] = frozenset({
    AssessmentStage.APPOINTMENT_SCHEDULED,
    AssessmentStage.ASSESSMENT_IN_PROGRESS,
    AssessmentStage.ESTIMATE_REVIEW,
    AssessmentStage.ESTIMATE_SENT,
    AssessmentStage.ESTIMATE_FINALIZED,
    AssessmentStage.FRC_IN_PROGRESS,
})

ACTIVE_STAGES: frozenset[AssessmentStage] = frozenset(
    s for s in AssessmentStage if s not in TERMINAL_STAGES
)


def requires_appointment(stage: AssessmentStage | str) -> bool:
    """True when an assessment in ``stage`` must have an appointment."""
    return AssessmentStage(stage) in APPOINTMENT_DEPENDENT_STAGES
