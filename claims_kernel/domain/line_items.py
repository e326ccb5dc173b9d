"""
Costing line items (``claims_kernel.domain.line_items``).

Responsibility
--------------
Frozen value objects for the costing snapshot: the quoted/actual cost
breakdown of a line, the baseline estimate line and additionals line
inputs, and the merged ``LineItem`` that lives in an FRC snapshot.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  Imports only
``domain/money`` and kernel exceptions.

Invariants enforced
-------------------
* ``fingerprint == f"{source}:{source_line_id}"`` for every ``LineItem``;
  both parts are non-empty and the source is a known ``LineSource``.
* A removal additional always names the baseline line it removes.
* All monetary fields are ``Decimal``; floats are rejected on the way in.
* ``to_dict``/``from_dict`` are exact inverses; money is stored as strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from claims_kernel.domain.money import ZERO, money_str, to_money
from claims_kernel.exceptions import InvalidDecisionError, InvalidFingerprintError


class LineSource(str, Enum):
    """Where a snapshot line came from."""

    ESTIMATE = "estimate"
    ADDITIONAL = "additional"


class LineDecision(str, Enum):
    """Human decision recorded on a snapshot line."""

    AGREE = "agree"
    DECLINE = "decline"
    PENDING = "pending"

    @classmethod
    def parse(cls, value: Any) -> LineDecision:
        if isinstance(value, LineDecision):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidDecisionError(value) from None


class AdditionalApprovalStatus(str, Enum):
    """Insurer approval state of an additionals line (read model input)."""

    APPROVED = "approved"
    DECLINED = "declined"
    PENDING = "pending"


COST_CATEGORIES: tuple[str, ...] = (
    "parts_nett",
    "labour",
    "paint",
    "outwork_nett",
    "markup",
)

FINGERPRINT_SEPARATOR = ":"


def make_fingerprint(source: LineSource | str | None, source_line_id: Any) -> str:
    """Build the stable identity key ``"{source}:{source_line_id}"``."""
    try:
        src = LineSource(source) if source is not None else None
    except ValueError:
        src = None
    line_id = str(source_line_id).strip() if source_line_id is not None else ""
    if src is None or not line_id:
        raise InvalidFingerprintError(
            None if source is None else str(source),
            None if source_line_id is None else str(source_line_id),
        )
    return f"{src.value}{FINGERPRINT_SEPARATOR}{line_id}"


def parse_fingerprint(fingerprint: str) -> tuple[LineSource, str]:
    """Split a fingerprint back into its source and source line id."""
    source, sep, line_id = (fingerprint or "").partition(FINGERPRINT_SEPARATOR)
    if not sep:
        raise InvalidFingerprintError(source or None, None)
    make_fingerprint(source, line_id)
    return LineSource(source), line_id


@dataclass(frozen=True)
class CostBreakdown:
    """Per-category amounts of one line (or of an aggregate).

    Contract: frozen; all fields are Decimal.  No rounding is applied.
    """
    parts_nett: Decimal = ZERO
    labour: Decimal = ZERO
    paint: Decimal = ZERO
    outwork_nett: Decimal = ZERO
    markup: Decimal = ZERO

    @classmethod
    def zero(cls) -> CostBreakdown:
        return cls()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None, prefix: str = "") -> CostBreakdown:
        """Parse ``{prefix}{category}`` keys; absent keys are zero."""
        data = data or {}
        return cls(**{
            name: to_money(data.get(f"{prefix}{name}"), f"{prefix}{name}")
            for name in COST_CATEGORIES
        })

    def to_dict(self, prefix: str = "") -> dict[str, str]:
        return {f"{prefix}{name}": money_str(getattr(self, name)) for name in COST_CATEGORIES}

    @property
    def subtotal(self) -> Decimal:
        """Sum of all categories, markup included."""
        return self.parts_nett + self.labour + self.paint + self.outwork_nett + self.markup

    @property
    def is_zero(self) -> bool:
        return all(getattr(self, name) == ZERO for name in COST_CATEGORIES)

    def negated(self) -> CostBreakdown:
        return CostBreakdown(**{name: -getattr(self, name) for name in COST_CATEGORIES})

    def __add__(self, other: CostBreakdown) -> CostBreakdown:
        if not isinstance(other, CostBreakdown):
            return NotImplemented
        return CostBreakdown(**{
            name: getattr(self, name) + getattr(other, name) for name in COST_CATEGORIES
        })


@dataclass(frozen=True)
class EstimateLine:
    """A line of the finalized baseline estimate (read-only input)."""
    source_line_id: str
    quoted: CostBreakdown
    description: str = ""


@dataclass(frozen=True)
class AdditionalLine:
    """A line of the additionals read model (read-only input).

    Guarantees: ``is_removal`` implies ``removal_for_source_line_id`` is set.
    """
    source_line_id: str
    approval_status: AdditionalApprovalStatus
    quoted: CostBreakdown = field(default_factory=CostBreakdown)
    description: str = ""
    is_removal: bool = False
    removal_for_source_line_id: str | None = None

    def __post_init__(self) -> None:
        if not self.source_line_id:
            raise InvalidFingerprintError(LineSource.ADDITIONAL.value, self.source_line_id)
        if self.is_removal and not self.removal_for_source_line_id:
            raise InvalidFingerprintError(LineSource.ESTIMATE.value, self.removal_for_source_line_id)


@dataclass(frozen=True)
class LineItem:
    """One line of an FRC snapshot.

    Contract: frozen; produced by the snapshot merger.  Other components
    change it only through ``with_decision``/``with_actual`` inside a
    version-guarded update.
    """
    fingerprint: str
    source: LineSource
    source_line_id: str
    decision: LineDecision
    quoted: CostBreakdown
    actual: CostBreakdown
    description: str = ""
    approval_status: AdditionalApprovalStatus | None = None
    is_removal_additional: bool = False
    removal_for_source_line_id: str | None = None
    removed_via_additionals: bool = False

    @property
    def counts_toward_final(self) -> bool:
        """Agreed, and not one half of a removal pair."""
        return (
            self.decision is LineDecision.AGREE
            and not self.removed_via_additionals
            and not self.is_removal_additional
        )

    def with_decision(self, decision: LineDecision) -> LineItem:
        return replace(self, decision=decision)

    def with_actual(self, actual: CostBreakdown) -> LineItem:
        return replace(self, actual=actual)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "fingerprint": self.fingerprint,
            "source": self.source.value,
            "source_line_id": self.source_line_id,
            "description": self.description,
            "decision": self.decision.value,
            "approval_status": self.approval_status.value if self.approval_status else None,
            "is_removal_additional": self.is_removal_additional,
            "removal_for_source_line_id": self.removal_for_source_line_id,
            "removed_via_additionals": self.removed_via_additionals,
        }
        data.update(self.quoted.to_dict("quoted_"))
        data.update(self.actual.to_dict("actual_"))
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LineItem:
        source, line_id = parse_fingerprint(data["fingerprint"])
        status = data.get("approval_status")
        return cls(
            fingerprint=data["fingerprint"],
            source=source,
            source_line_id=line_id,
            description=data.get("description") or "",
            decision=LineDecision.parse(data.get("decision", LineDecision.PENDING)),
            quoted=CostBreakdown.from_mapping(data, "quoted_"),
            actual=CostBreakdown.from_mapping(data, "actual_"),
            approval_status=AdditionalApprovalStatus(status) if status else None,
            is_removal_additional=bool(data.get("is_removal_additional", False)),
            removal_for_source_line_id=data.get("removal_for_source_line_id"),
            removed_via_additionals=bool(data.get("removed_via_additionals", False)),
        )
