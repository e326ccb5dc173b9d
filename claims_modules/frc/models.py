"""
FRC Domain Models (``claims_modules.frc.models``).

Responsibility
--------------
Frozen dataclass value objects for the final repair costing (FRC)
subprocess: its status, sign-off, the merge inputs read from the estimate
and additionals, and the canonical ``FRCRecord`` DTO.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``FRCStatus`` is independent of ``AssessmentStage``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from claims_kernel.domain.line_items import (
    AdditionalLine,
    CostBreakdown,
    EstimateLine,
    LineItem,
)
from claims_kernel.domain.money import ZERO


class FRCStatus(str, Enum):
    """Costing subprocess states."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SignOff:
    """Who signed the costing off."""
    name: str
    email: str | None = None
    role: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("SignOff requires a name")


@dataclass(frozen=True)
class SnapshotInputs:
    """Read-only merge inputs from the estimate and additionals read models."""
    estimate_lines: tuple[EstimateLine, ...] = ()
    additional_lines: tuple[AdditionalLine, ...] = ()
    excluded_line_ids: frozenset[str] = frozenset()

    @property
    def estimate_quoted_subtotal(self) -> Decimal:
        return sum((line.quoted.subtotal for line in self.estimate_lines), ZERO)


@dataclass(frozen=True)
class FRCRecord:
    """Canonical FRC DTO.

    ``actual`` and ``actual_additionals`` are the aggregates persisted after
    the last merge or line update; ``compute_totals`` recomputes from
    ``line_items`` and never reads them.
    """
    id: UUID
    assessment_id: UUID
    status: FRCStatus
    line_items: tuple[LineItem, ...]
    line_items_version: int
    quoted_estimate_subtotal: Decimal
    vat_percentage: Decimal
    actual: CostBreakdown = field(default_factory=CostBreakdown)
    actual_subtotal: Decimal = ZERO
    actual_vat_amount: Decimal = ZERO
    actual_total: Decimal = ZERO
    actual_additionals: CostBreakdown = field(default_factory=CostBreakdown)
    needs_sync: bool = False
    started_at: datetime | None = None
    last_merge_at: datetime | None = None
    completed_at: datetime | None = None
    sign_off: SignOff | None = None
    signed_off_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status is FRCStatus.COMPLETED

    def line(self, fingerprint: str) -> LineItem | None:
        for item in self.line_items:
            if item.fingerprint == fingerprint:
                return item
        return None
