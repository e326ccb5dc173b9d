"""
Assessment Domain Models (``claims_modules.assessment.models``).

Responsibility
--------------
Frozen dataclass value objects for an assessment and for the outcome of a
stage transition attempt.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Returned by
``AssessmentService`` and ``StageTransitionController``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* ``AssessmentRecord`` is the ONE canonical shape the core consumes;
  alternative inbound shapes are folded into it by ``normalization``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from claims_kernel.domain.stages import AssessmentStage, requires_appointment


@dataclass(frozen=True)
class AssessmentRecord:
    """Canonical assessment DTO."""
    id: UUID
    request_id: str
    stage: AssessmentStage
    appointment_id: str | None = None
    assessment_number: str | None = None
    started_at: datetime | None = None
    estimate_finalized_at: datetime | None = None
    archived_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_appointment(self) -> bool:
        return bool(self.appointment_id)

    @property
    def appointment_invariant_holds(self) -> bool:
        """Appointment-dependent stages carry an appointment id."""
        return self.has_appointment or not requires_appointment(self.stage)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of ``attempt_transition``.

    ``applied`` is False only for the idempotent no-op, where the record
    was already at the target stage.
    """
    assessment: AssessmentRecord
    event_name: str
    from_stage: AssessmentStage
    to_stage: AssessmentStage
    applied: bool


@dataclass(frozen=True)
class IntegrityIssue:
    """One finding of ``check_assessment_integrity``."""
    kind: str
    detail: str
    assessment_id: UUID | None = None
    request_id: str | None = None
