"""
claims_services.frc_subprocess -- FRC subprocess orchestration.

Responsibility:
    Start, complete and reopen the final repair costing subprocess, and
    route additionals changes into a merge or a ``needs_sync`` flag.  The
    assessment stage is touched at two milestones only:

    ============  ======================  ==================================
    operation     FRC status              Assessment.stage
    ============  ======================  ==================================
    start         (new) -> in_progress    unchanged (estimate_finalized)
    complete      in_progress->completed  -> archived      (complete_frc)
    reopen        completed->in_progress  -> estimate_finalized (reopen_frc)
    ============  ======================  ==================================

Architecture position:
    Services -- cross-module orchestration over ``FRCService`` and
    ``StageTransitionController``.

Invariants enforced:
    - Starting costing never changes the assessment stage.
    - Each operation runs inside a savepoint: when the stage transition
      fails, the status change is rolled back with it.
    - Events are emitted only after the savepoint is released.

Failure modes:
    - InvalidTransitionError: wrong assessment stage or FRC status.
    - DuplicateFRCError: the assessment already has a costing record.
    - StaleStateError / VersionConflictError: concurrent writer won.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from claims_kernel.domain.clock import Clock, SystemClock
from claims_kernel.domain.events import (
    EventSink,
    FRCCompleted,
    FRCReopened,
    FRCStarted,
    publish,
)
from claims_kernel.domain.stages import AssessmentStage
from claims_kernel.exceptions import InvalidTransitionError
from claims_kernel.logging_config import LogContext, get_logger
from claims_modules.assessment.service import AssessmentService
from claims_modules.frc.models import FRCRecord, SignOff, SnapshotInputs
from claims_modules.frc.service import FRCService
from claims_services.stage_transitions import StageTransitionController

logger = get_logger("services.frc_subprocess")

START_ELIGIBLE_STAGE = AssessmentStage.ESTIMATE_FINALIZED


class FRCSubprocessController:
    """Costing subprocess state machine, decoupled from the stage workflow."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        event_sink: EventSink | None = None,
        default_vat_percentage: Decimal = Decimal("15"),
        include_declined_additionals: bool = True,
        stage_controller: StageTransitionController | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sink = event_sink
        self._default_vat = default_vat_percentage
        self._assessments = AssessmentService(session, self._clock)
        self._frc = FRCService(
            session,
            self._clock,
            event_sink=event_sink,
            include_declined_additionals=include_declined_additionals,
        )
        self._stages = stage_controller or StageTransitionController(
            session, self._clock, event_sink,
        )

    @property
    def frc_service(self) -> FRCService:
        return self._frc

    def start(
        self,
        assessment_id: UUID,
        inputs: SnapshotInputs,
        vat_percentage: Any = None,
        quoted_estimate_subtotal: Any = None,
    ) -> FRCRecord:
        """
        Create the costing record and run the first merge (version 1).

        Requires ``Assessment.stage == estimate_finalized`` and leaves it
        there.
        """
        assessment = self._assessments.get(assessment_id)
        if assessment.stage is not START_ELIGIBLE_STAGE:
            logger.warning(
                "frc_start_rejected",
                extra={"assessment_id": str(assessment_id), "stage": assessment.stage.value},
            )
            raise InvalidTransitionError(
                "Assessment", str(assessment_id), assessment.stage.value, "start_frc",
                allowed_from=(START_ELIGIBLE_STAGE.value,),
            )

        vat = self._default_vat if vat_percentage is None else vat_percentage
        with self._session.begin_nested():
            created = self._frc.create_record(
                assessment_id, inputs, vat, quoted_estimate_subtotal,
            )
            record = self._frc.merge_snapshot(
                created.id, created.line_items_version, inputs,
            )

        with LogContext.bind(assessment_id=assessment_id, frc_id=record.id):
            logger.info(
                "frc_started",
                extra={
                    "line_count": len(record.line_items),
                    "version": record.line_items_version,
                },
            )
        publish(self._sink, FRCStarted(
            frc_id=record.id,
            assessment_id=assessment_id,
            occurred_at=record.started_at,
        ))
        return record

    def complete(self, frc_id: UUID, sign_off: SignOff | None = None) -> FRCRecord:
        """``in_progress -> completed``; assessment moves to ``archived``."""
        extra: dict[str, Any] = {"needs_sync": False}
        if sign_off is not None:
            extra.update(
                signed_off_by_name=sign_off.name,
                signed_off_by_email=sign_off.email,
                signed_off_by_role=sign_off.role,
                sign_off_notes=sign_off.notes,
                signed_off_at=self._clock.now(),
            )

        with self._session.begin_nested():
            record = self._frc.apply_status_event(frc_id, "complete", extra)
            self._stages.attempt_transition(record.assessment_id, "complete_frc")

        logger.info(
            "frc_completed",
            extra={
                "frc_id": str(frc_id),
                "assessment_id": str(record.assessment_id),
                "signed_off": sign_off is not None,
            },
        )
        publish(self._sink, FRCCompleted(
            frc_id=frc_id,
            assessment_id=record.assessment_id,
            signed_off_by=sign_off.name if sign_off else None,
            occurred_at=record.completed_at,
        ))
        return record

    def reopen(self, frc_id: UUID) -> FRCRecord:
        """``completed -> in_progress``; assessment reverts to ``estimate_finalized``."""
        with self._session.begin_nested():
            record = self._frc.apply_status_event(frc_id, "reopen")
            self._stages.attempt_transition(record.assessment_id, "reopen_frc")

        logger.info(
            "frc_reopened",
            extra={"frc_id": str(frc_id), "assessment_id": str(record.assessment_id)},
        )
        publish(self._sink, FRCReopened(
            frc_id=frc_id,
            assessment_id=record.assessment_id,
            occurred_at=self._clock.now(),
        ))
        return record

    def notify_additionals_changed(
        self,
        frc_id: UUID,
        expected_version: int,
        inputs: SnapshotInputs,
    ) -> FRCRecord:
        """Merge while in progress; flag ``needs_sync`` once completed."""
        record = self._frc.get(frc_id)
        if record.is_completed:
            return self._frc.mark_needs_sync(frc_id)
        return self._frc.merge_snapshot(frc_id, expected_version, inputs)
