"""
Assessment ORM Models (``claims_modules.assessment.orm``).

Responsibility
--------------
SQLAlchemy persistence model for assessments.  Maps to the
``AssessmentRecord`` frozen dataclass.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``claims_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``claims_kernel``.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from claims_kernel.db.base import TrackedBase
from claims_kernel.domain.stages import INITIAL_STAGE, AssessmentStage

_STAGE_VALUES = ", ".join(f"'{s.value}'" for s in AssessmentStage)


class AssessmentModel(TrackedBase):
    """
    ORM model for assessments.

    Guarantees:
        - request_id is unique (uq_assessments_request_id): one assessment
          per request.
        - stage is one of the eleven declared stages (ck_assessments_stage).
        - stage is written only through ConcurrencyGuard.compare_and_swap.
    """

    __tablename__ = "assessments"
    __entity_type__ = "Assessment"

    __table_args__ = (
        UniqueConstraint("request_id", name="uq_assessments_request_id"),
        CheckConstraint(f"stage IN ({_STAGE_VALUES})", name="ck_assessments_stage"),
        Index("idx_assessments_stage", "stage"),
        Index("idx_assessments_appointment_id", "appointment_id"),
    )

    request_id: Mapped[str] = mapped_column(String(100), nullable=False)
    assessment_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    appointment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    stage: Mapped[str] = mapped_column(
        String(50), nullable=False, default=INITIAL_STAGE.value,
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    estimate_finalized_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from claims_modules.assessment.models import AssessmentRecord

        return AssessmentRecord(
            id=self.id,
            request_id=self.request_id,
            stage=AssessmentStage(self.stage),
            appointment_id=self.appointment_id,
            assessment_number=self.assessment_number,
            started_at=self.started_at,
            estimate_finalized_at=self.estimate_finalized_at,
            archived_at=self.archived_at,
            cancelled_at=self.cancelled_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<AssessmentModel {self.request_id} [{self.stage}]>"
