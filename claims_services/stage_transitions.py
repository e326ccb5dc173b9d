"""
claims_services.stage_transitions -- the single authority for Assessment.stage.

Responsibility:
    Validate a named transition event against ``ASSESSMENT_STAGE_TABLE``
    and apply it with a compare-and-swap on ``stage``.  Every outcome is
    explicit: applied, idempotent no-op, or a typed error.

Architecture position:
    Services -- cross-module orchestration.  Reads assessments through
    ``AssessmentService`` and writes ``stage`` only through
    ``ConcurrencyGuard``.

Invariants enforced:
    - Eligibility comes from the transition table only; no call site
      carries its own stage list.
    - A rejected transition is logged AND raised.  Nothing is skipped
      silently.
    - Re-requesting the stage the assessment is already in succeeds
      without writing and without an event.
    - Appointment-dependent targets require an appointment id, stored or
      supplied with the event.
    - Every guard a transition declares is evaluated before the write.
      ``frc_completed`` reads the costing record for the assessment.

Failure modes:
    - UnknownTransitionEventError: event not in the table.
    - StaleStateError: ``expected_current_stage`` differs, or the stage
      moved between read and write.
    - InvalidTransitionError: current stage not eligible.
    - MissingPrerequisiteError: appointment id missing, or a declared
      guard does not hold.
    - AssessmentNotFoundError.
"""

from __future__ import annotations

from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from claims_kernel.domain.clock import Clock, SystemClock
from claims_kernel.domain.events import EventSink, StageChanged, publish
from claims_kernel.domain.stages import AssessmentStage, requires_appointment
from claims_kernel.domain.workflow import StageTransition, TransitionTable
from claims_kernel.exceptions import (
    ClaimsKernelError,
    InvalidTransitionError,
    MissingPrerequisiteError,
    StaleStateError,
    UnknownTransitionEventError,
)
from claims_kernel.logging_config import get_logger
from claims_kernel.services.concurrency_guard import ConcurrencyGuard
from claims_modules.assessment.models import TransitionResult
from claims_modules.assessment.orm import AssessmentModel
from claims_modules.assessment.service import AssessmentService
from claims_modules.assessment.workflows import (
    APPOINTMENT_LINKED,
    ASSESSMENT_STAGE_TABLE,
    FRC_COMPLETED,
)
from claims_modules.frc.models import FRCStatus
from claims_modules.frc.service import FRCService

logger = get_logger("services.stage_transitions")


class StageTransitionController:
    """Applies named stage events to assessments."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        event_sink: EventSink | None = None,
        table: TransitionTable = ASSESSMENT_STAGE_TABLE,
    ):
        self._clock = clock or SystemClock()
        self._sink = event_sink
        self._table = table
        self._guard = ConcurrencyGuard(session)
        self._assessments = AssessmentService(session, self._clock)
        self._frc = FRCService(session, self._clock)
        self._guard_checks: dict[str, Callable[[AssessmentModel, str | None], bool]] = {
            APPOINTMENT_LINKED.name: self._appointment_linked,
            FRC_COMPLETED.name: self._frc_completed,
        }
        unknown = {
            g.name for t in table for g in t.guards
        } - set(self._guard_checks)
        if unknown:
            raise ValueError(f"No evaluator for guards: {sorted(unknown)}")

    @property
    def table(self) -> TransitionTable:
        return self._table

    def attempt_transition(
        self,
        assessment_id: UUID,
        event_name: str,
        expected_current_stage: AssessmentStage | str | None = None,
        appointment_id: str | None = None,
    ) -> TransitionResult:
        """
        Move the assessment along ``event_name``.

        ``appointment_id``, when given, is linked in the same guarded write.

        Returns:
            TransitionResult with ``applied=False`` for the idempotent no-op.
        """
        transition = self._table.get(event_name)
        if transition is None:
            self._reject(assessment_id, event_name, UnknownTransitionEventError(event_name))

        model = self._assessments.get_model(assessment_id)
        current = model.stage

        if expected_current_stage is not None:
            expected = AssessmentStage(expected_current_stage).value
            if expected != current:
                self._reject(assessment_id, event_name, StaleStateError(
                    "Assessment", str(assessment_id), expected, current,
                ))

        if current == transition.to_state:
            logger.info(
                "stage_transition_noop",
                extra={
                    "assessment_id": str(assessment_id),
                    "event_name": event_name,
                    "stage": current,
                },
            )
            stage = AssessmentStage(current)
            return TransitionResult(
                assessment=model.to_dto(),
                event_name=event_name,
                from_stage=stage,
                to_stage=stage,
                applied=False,
            )

        if not transition.allows_from(current):
            self._reject(assessment_id, event_name, InvalidTransitionError(
                "Assessment", str(assessment_id), current, event_name,
                allowed_from=self._ordered(transition.eligible_from),
                target_state=transition.to_state,
            ))

        effective_appointment = appointment_id or model.appointment_id
        if requires_appointment(transition.to_state) and not effective_appointment:
            self._reject(assessment_id, event_name, MissingPrerequisiteError(
                str(assessment_id), "appointment_id", transition.to_state,
            ))

        for guard in transition.guards:
            if not self._guard_checks[guard.name](model, effective_appointment):
                self._reject(assessment_id, event_name, MissingPrerequisiteError(
                    str(assessment_id), guard.name, transition.to_state,
                ))

        now = self._clock.now()
        values = self._side_values(transition, now)
        if appointment_id:
            values["appointment_id"] = appointment_id

        try:
            self._guard.compare_and_swap(
                AssessmentModel, assessment_id, "stage", current, transition.to_state, values,
            )
        except StaleStateError as exc:
            self._reject(assessment_id, event_name, exc)

        logger.info(
            "stage_transition_applied",
            extra={
                "assessment_id": str(assessment_id),
                "event_name": event_name,
                "from_stage": current,
                "to_stage": transition.to_state,
                "is_reversal": transition.is_reversal,
            },
        )
        publish(self._sink, StageChanged(
            assessment_id=assessment_id,
            from_stage=current,
            to_stage=transition.to_state,
            event_name=event_name,
            occurred_at=now,
        ))
        return TransitionResult(
            assessment=self._assessments.get(assessment_id),
            event_name=event_name,
            from_stage=AssessmentStage(current),
            to_stage=AssessmentStage(transition.to_state),
            applied=True,
        )

    def check_transition(self, stage: AssessmentStage | str, event_name: str) -> bool:
        """True when ``event_name`` would succeed (or no-op) from ``stage``."""
        transition = self._table.get(event_name)
        if transition is None:
            raise UnknownTransitionEventError(event_name)
        value = AssessmentStage(stage).value
        return value == transition.to_state or transition.allows_from(value)

    def available_events(self, assessment_id: UUID) -> tuple[str, ...]:
        """Events that may fire from the assessment's current stage."""
        current = self._assessments.get_model(assessment_id).stage
        return tuple(t.event for t in self._table.events_from(current))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _appointment_linked(model: AssessmentModel, appointment_id: str | None) -> bool:
        return bool(appointment_id)

    def _frc_completed(self, model: AssessmentModel, appointment_id: str | None) -> bool:
        record = self._frc.get_for_assessment(model.id)
        return record is not None and record.status is FRCStatus.COMPLETED

    def _ordered(self, states: frozenset[str]) -> tuple[str, ...]:
        return tuple(s for s in self._table.states if s in states)

    @staticmethod
    def _side_values(transition: StageTransition, now: Any) -> dict[str, Any]:
        values: dict[str, Any] = {column: None for column in transition.clears}
        if transition.stamps:
            values[transition.stamps] = now
        return values

    @staticmethod
    def _reject(assessment_id: UUID, event_name: str, error: ClaimsKernelError) -> None:
        logger.warning(
            "stage_transition_rejected",
            extra={
                "assessment_id": str(assessment_id),
                "event_name": event_name,
                "error_code": error.code,
                "reason": str(error),
            },
        )
        raise error
