"""
Assessment Module Service -- creation, lookup and state audit.

Thin persistence layer for the ``assessments`` table.  Stage changes do
NOT live here: they go through ``StageTransitionController`` and the
concurrency guard.  This service flushes only; the caller owns commit.

Usage:
    service = AssessmentService(session, clock)
    record = service.create_assessment(request_id="REQ-2025-017")
"""

from __future__ import annotations

from collections import Counter
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from claims_kernel.domain.clock import Clock, SystemClock
from claims_kernel.domain.stages import INITIAL_STAGE, AssessmentStage, requires_appointment
from claims_kernel.exceptions import AssessmentNotFoundError, DuplicateAssessmentError
from claims_kernel.logging_config import get_logger
from claims_kernel.services.base import BaseService
from claims_modules.assessment.models import AssessmentRecord, IntegrityIssue
from claims_modules.assessment.orm import AssessmentModel

logger = get_logger("modules.assessment.service")


class AssessmentService(BaseService):
    """Creates and reads assessments.  Never writes ``stage`` after insert."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # =========================================================================
    # Creation
    # =========================================================================

    def create_assessment(
        self,
        request_id: str,
        assessment_number: str | None = None,
        appointment_id: str | None = None,
    ) -> AssessmentRecord:
        """
        Create an assessment at ``request_submitted``.

        Raises:
            DuplicateAssessmentError: the request already has an assessment.
        """
        existing = self._find_by_request(request_id)
        if existing is not None:
            raise DuplicateAssessmentError(request_id, str(existing.id))

        model = AssessmentModel(
            request_id=request_id,
            assessment_number=assessment_number,
            appointment_id=appointment_id,
            stage=INITIAL_STAGE.value,
        )
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except IntegrityError:
            # A concurrent writer inserted the same request in between
            raise DuplicateAssessmentError(request_id) from None

        logger.info(
            "assessment_created",
            extra={
                "assessment_id": str(model.id),
                "request_id": request_id,
                "stage": model.stage,
            },
        )
        return model.to_dto()

    def get_or_create_for_request(
        self,
        request_id: str,
        assessment_number: str | None = None,
    ) -> tuple[AssessmentRecord, bool]:
        """Return ``(record, created)``; safe to retry."""
        existing = self._find_by_request(request_id)
        if existing is not None:
            return existing.to_dto(), False
        return self.create_assessment(request_id, assessment_number), True

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, assessment_id: UUID) -> AssessmentRecord:
        return self.get_model(assessment_id).to_dto()

    def get_model(self, assessment_id: UUID) -> AssessmentModel:
        """Fresh ORM row.  Raises AssessmentNotFoundError."""
        model = self.session.execute(
            select(AssessmentModel)
            .where(AssessmentModel.id == assessment_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise AssessmentNotFoundError(str(assessment_id))
        return model

    def get_by_request(self, request_id: str) -> AssessmentRecord | None:
        model = self._find_by_request(request_id)
        return model.to_dto() if model else None

    def list_by_stage(self, stage: AssessmentStage | str) -> list[AssessmentRecord]:
        rows = self.session.execute(
            select(AssessmentModel)
            .where(AssessmentModel.stage == AssessmentStage(stage).value)
            .order_by(AssessmentModel.created_at, AssessmentModel.request_id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def _find_by_request(self, request_id: str) -> AssessmentModel | None:
        return self.session.execute(
            select(AssessmentModel).where(AssessmentModel.request_id == request_id)
        ).scalar_one_or_none()


def check_assessment_integrity(session: Session) -> list[IntegrityIssue]:
    """
    Audit stored assessments for broken invariants.

    Reports requests with more than one assessment, rows without a valid
    stage, and appointment-dependent stages lacking an appointment id.
    Read-only; an empty list means the table is consistent.
    """
    rows = session.execute(select(AssessmentModel)).scalars().all()
    issues: list[IntegrityIssue] = []

    counts = Counter(row.request_id for row in rows)
    for request_id, n in sorted(counts.items()):
        if n > 1:
            issues.append(IntegrityIssue(
                kind="duplicate_request",
                detail=f"{n} assessments for one request",
                request_id=request_id,
            ))

    valid = {s.value for s in AssessmentStage}
    for row in rows:
        if row.stage not in valid:
            issues.append(IntegrityIssue(
                kind="invalid_stage",
                detail=f"stage {row.stage!r} is not a declared stage",
                assessment_id=row.id,
                request_id=row.request_id,
            ))
        elif requires_appointment(row.stage) and not row.appointment_id:
            issues.append(IntegrityIssue(
                kind="missing_appointment",
                detail=f"stage {row.stage!r} requires an appointment id",
                assessment_id=row.id,
                request_id=row.request_id,
            ))

    logger.info(
        "assessment_integrity_checked",
        extra={"rows": len(rows), "issues": len(issues)},
    )
    return issues
