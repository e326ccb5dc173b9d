"""
FRC ORM Models (``claims_modules.frc.orm``).

Responsibility
--------------
SQLAlchemy persistence model for the costing record.  Maps to the
``FRCRecord`` frozen dataclass.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``claims_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``claims_kernel``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from claims_kernel.db.base import TrackedBase
from claims_kernel.db.types import Money, Percentage
from claims_kernel.domain.line_items import COST_CATEGORIES, CostBreakdown, LineItem
from claims_kernel.domain.money import ZERO


class FRCRecordModel(TrackedBase):
    """
    ORM model for the final repair costing record.

    Guarantees:
        - assessment_id is unique (uq_assessment_frc_assessment_id).
        - line_items_version is the sole concurrency token for line_items;
          written only through ConcurrencyGuard.compare_and_set.
        - status is written only through ConcurrencyGuard.compare_and_swap.
        - quoted_estimate_subtotal and vat_percentage are fixed at start.
    """

    __tablename__ = "assessment_frc"
    __entity_type__ = "FRCRecord"

    __table_args__ = (
        UniqueConstraint("assessment_id", name="uq_assessment_frc_assessment_id"),
        CheckConstraint(
            "status IN ('in_progress', 'completed')", name="ck_assessment_frc_status",
        ),
        CheckConstraint("line_items_version >= 0", name="ck_assessment_frc_version"),
    )

    assessment_id: Mapped[UUID] = mapped_column(ForeignKey("assessments.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="in_progress")
    line_items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    line_items_version: Mapped[int] = mapped_column(nullable=False, default=0)

    quoted_estimate_subtotal: Mapped[Money] = mapped_column(nullable=False, default=ZERO)
    vat_percentage: Mapped[Percentage] = mapped_column(nullable=False)

    # Aggregates over agreed lines, refreshed after every merge / line update
    actual_parts_nett: Mapped[Money] = mapped_column(default=ZERO)
    actual_labour: Mapped[Money] = mapped_column(default=ZERO)
    actual_paint: Mapped[Money] = mapped_column(default=ZERO)
    actual_outwork_nett: Mapped[Money] = mapped_column(default=ZERO)
    actual_markup: Mapped[Money] = mapped_column(default=ZERO)
    actual_subtotal: Mapped[Money] = mapped_column(default=ZERO)
    actual_vat_amount: Mapped[Money] = mapped_column(default=ZERO)
    actual_total: Mapped[Money] = mapped_column(default=ZERO)

    actual_additionals_parts_nett: Mapped[Money] = mapped_column(default=ZERO)
    actual_additionals_labour: Mapped[Money] = mapped_column(default=ZERO)
    actual_additionals_paint: Mapped[Money] = mapped_column(default=ZERO)
    actual_additionals_outwork_nett: Mapped[Money] = mapped_column(default=ZERO)
    actual_additionals_markup: Mapped[Money] = mapped_column(default=ZERO)

    quoted_additionals_subtotal: Mapped[Money] = mapped_column(default=ZERO)
    actual_estimate_subtotal: Mapped[Money] = mapped_column(default=ZERO)
    removed_subtotal: Mapped[Money] = mapped_column(default=ZERO)
    # Full per-category split, money as strings
    totals_breakdown: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    needs_sync: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_merge_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    signed_off_by_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    signed_off_by_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    signed_off_by_role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sign_off_notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    signed_off_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def snapshot(self) -> tuple[LineItem, ...]:
        return tuple(LineItem.from_dict(d) for d in (self.line_items or []))

    def _breakdown(self, prefix: str) -> CostBreakdown:
        return CostBreakdown(**{
            name: Decimal(getattr(self, f"{prefix}{name}") or ZERO) for name in COST_CATEGORIES
        })

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from claims_modules.frc.models import FRCRecord, FRCStatus, SignOff

        sign_off = None
        if self.signed_off_by_name:
            sign_off = SignOff(
                name=self.signed_off_by_name,
                email=self.signed_off_by_email,
                role=self.signed_off_by_role,
                notes=self.sign_off_notes,
            )
        return FRCRecord(
            id=self.id,
            assessment_id=self.assessment_id,
            status=FRCStatus(self.status),
            line_items=self.snapshot(),
            line_items_version=self.line_items_version,
            quoted_estimate_subtotal=self.quoted_estimate_subtotal,
            vat_percentage=self.vat_percentage,
            actual=self._breakdown("actual_"),
            actual_subtotal=self.actual_subtotal,
            actual_vat_amount=self.actual_vat_amount,
            actual_total=self.actual_total,
            actual_additionals=self._breakdown("actual_additionals_"),
            needs_sync=self.needs_sync,
            started_at=self.started_at,
            last_merge_at=self.last_merge_at,
            completed_at=self.completed_at,
            sign_off=sign_off,
            signed_off_at=self.signed_off_at,
        )

    def __repr__(self) -> str:
        return (
            f"<FRCRecordModel {self.assessment_id} [{self.status}] "
            f"v{self.line_items_version}>"
        )
