"""
FRC Module Service -- costing record persistence, merges and line updates.

Thin glue layer that:
1. Calls FRCSnapshotMerger to rebuild ``line_items``
2. Calls TotalsCalculator to refresh the persisted aggregates
3. Writes through ConcurrencyGuard, keyed on ``line_items_version`` for
   snapshot changes and on ``status`` for subprocess state changes.
   Snapshot writes also require ``status == in_progress`` in the same
   UPDATE, so a concurrent completion cannot be overwritten.

All computation lives in engines.  This service flushes only; the caller
owns the transaction.  Stage changes of the assessment are NOT made here
(see ``claims_services.frc_subprocess``).

Usage:
    service = FRCService(session, clock, event_sink=sink)
    record = service.merge_snapshot(frc_id, expected_version=3, inputs=inputs)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from claims_engines.snapshot_merge import FRCSnapshotMerger
from claims_engines.totals import FRCTotals, TotalsCalculator
from claims_kernel.domain.clock import Clock, SystemClock
from claims_kernel.domain.events import EventSink, LineDecisionUpdated, SnapshotMerged, publish
from claims_kernel.domain.line_items import COST_CATEGORIES, CostBreakdown, LineDecision, LineItem
from claims_kernel.domain.money import money_str, to_money
from claims_kernel.exceptions import (
    DuplicateFRCError,
    FRCNotFoundError,
    InvalidTransitionError,
    LineItemNotFoundError,
    StaleStateError,
)
from claims_kernel.logging_config import get_logger
from claims_kernel.services.base import BaseService
from claims_kernel.services.concurrency_guard import ConcurrencyGuard
from claims_modules.frc.models import FRCRecord, FRCStatus, SnapshotInputs
from claims_modules.frc.orm import FRCRecordModel
from claims_modules.frc.workflows import FRC_STATUS_TABLE

logger = get_logger("modules.frc.service")


def _category_columns(prefix: str, breakdown: CostBreakdown) -> dict[str, Decimal]:
    return {f"{prefix}{name}": getattr(breakdown, name) for name in COST_CATEGORIES}


def totals_columns(totals: FRCTotals) -> dict[str, Any]:
    """Column values for the aggregates persisted on ``assessment_frc``."""
    bd = totals.breakdown
    values: dict[str, Any] = {
        **_category_columns("actual_", totals.final.categories),
        "actual_subtotal": totals.final.subtotal,
        "actual_vat_amount": totals.final.vat,
        "actual_total": totals.final.total,
        **_category_columns("actual_additionals_", bd.actual_additionals),
        "quoted_additionals_subtotal": bd.quoted_additionals.subtotal,
        "actual_estimate_subtotal": bd.actual_estimate.subtotal,
        "removed_subtotal": bd.removed.subtotal,
        "totals_breakdown": {
            "quoted_estimate": bd.quoted_estimate.to_dict(),
            "quoted_additionals": bd.quoted_additionals.to_dict(),
            "actual_estimate": bd.actual_estimate.to_dict(),
            "actual_additionals": bd.actual_additionals.to_dict(),
            "removed": bd.removed.to_dict(),
            "baseline_total": money_str(totals.baseline.total),
            "delta": money_str(totals.delta),
        },
    }
    return values


class FRCService(BaseService):
    """
    Persists the costing record and applies snapshot changes.

    Engine composition:
    - FRCSnapshotMerger: rebuilds line items, preserving decisions
    - TotalsCalculator: baseline / final / breakdown
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        event_sink: EventSink | None = None,
        include_declined_additionals: bool = True,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._sink = event_sink
        self._guard = ConcurrencyGuard(session)
        self._merger = FRCSnapshotMerger(include_declined_additionals=include_declined_additionals)
        self._totals = TotalsCalculator()

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, frc_id: UUID) -> FRCRecord:
        return self.get_model(frc_id).to_dto()

    def get_model(self, frc_id: UUID) -> FRCRecordModel:
        model = self._guard.load(FRCRecordModel, frc_id)
        if model is None:
            raise FRCNotFoundError(str(frc_id))
        return model

    def get_for_assessment(self, assessment_id: UUID) -> FRCRecord | None:
        model = self.session.execute(
            select(FRCRecordModel)
            .where(FRCRecordModel.assessment_id == assessment_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return model.to_dto() if model else None

    def compute_totals(self, frc_id: UUID) -> FRCTotals:
        """Baseline, final and delta from the stored snapshot.  Read-only."""
        model = self.get_model(frc_id)
        return self._totals.compute(
            line_items=model.snapshot(),
            quoted_estimate_subtotal=model.quoted_estimate_subtotal,
            vat_percentage=model.vat_percentage,
        )

    # =========================================================================
    # Creation
    # =========================================================================

    def create_record(
        self,
        assessment_id: UUID,
        inputs: SnapshotInputs,
        vat_percentage: Any,
        quoted_estimate_subtotal: Any = None,
    ) -> FRCRecord:
        """
        Insert an ``in_progress`` record with an empty snapshot at version 0.

        The baseline subtotal is fixed here, from the estimate lines unless
        an explicit value is supplied, and no later merge changes it.

        Raises:
            DuplicateFRCError: the assessment already has a costing record.
        """
        existing = self.get_for_assessment(assessment_id)
        if existing is not None:
            raise DuplicateFRCError(str(assessment_id), str(existing.id))

        if quoted_estimate_subtotal is None:
            subtotal = inputs.estimate_quoted_subtotal
        else:
            subtotal = to_money(quoted_estimate_subtotal, "quoted_estimate_subtotal")

        model = FRCRecordModel(
            assessment_id=assessment_id,
            status=FRCStatus.IN_PROGRESS.value,
            line_items=[],
            line_items_version=0,
            quoted_estimate_subtotal=subtotal,
            vat_percentage=to_money(vat_percentage, "vat_percentage"),
            started_at=self._clock.now(),
            totals_breakdown={},
        )
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except IntegrityError:
            raise DuplicateFRCError(str(assessment_id)) from None

        logger.info(
            "frc_record_created",
            extra={
                "frc_id": str(model.id),
                "assessment_id": str(assessment_id),
                "quoted_estimate_subtotal": str(subtotal),
            },
        )
        return model.to_dto()

    # =========================================================================
    # Snapshot changes (guarded by line_items_version)
    # =========================================================================

    def merge_snapshot(
        self,
        frc_id: UUID,
        expected_version: int,
        inputs: SnapshotInputs,
        manual_refresh: bool = False,
    ) -> FRCRecord:
        """
        Rebuild ``line_items`` from ``inputs`` and bump the version by one.

        Runs unconditionally: an unchanged source still produces a new
        version with identical lines.

        Raises:
            InvalidTransitionError: record is not ``in_progress``.
            VersionConflictError: ``expected_version`` is stale.
            RemovalPairingError / DuplicateFingerprintError: bad inputs;
                nothing is written.
        """
        self._require_in_progress(frc_id, "merge_snapshot")
        now = self._clock.now()
        captured: dict[str, Any] = {}

        def mutator(row: FRCRecordModel) -> dict[str, Any]:
            result = self._merger.merge(
                existing=row.snapshot(),
                estimate_lines=inputs.estimate_lines,
                additional_lines=inputs.additional_lines,
                excluded_line_ids=inputs.excluded_line_ids,
            )
            captured["result"] = result
            return self._snapshot_values(row, result.line_items, needs_sync=False, last_merge_at=now)

        new_version = self._write_snapshot(frc_id, expected_version, mutator, "merge_snapshot")
        record = self.get(frc_id)
        result = captured["result"]

        logger.info(
            "snapshot_merged",
            extra={
                "frc_id": str(frc_id),
                "version": new_version,
                "line_count": len(result.line_items),
                "added": len(result.added),
                "preserved": len(result.preserved),
                "dropped": len(result.dropped),
                "manual_refresh": manual_refresh,
            },
        )
        publish(self._sink, SnapshotMerged(
            frc_id=frc_id,
            assessment_id=record.assessment_id,
            version=new_version,
            line_count=len(result.line_items),
            manual_refresh=manual_refresh,
            occurred_at=now,
        ))
        return record

    def refresh_snapshot(
        self,
        frc_id: UUID,
        expected_version: int,
        inputs: SnapshotInputs,
    ) -> FRCRecord:
        """User-triggered merge.  Same rules, same version check."""
        return self.merge_snapshot(frc_id, expected_version, inputs, manual_refresh=True)

    def update_line(
        self,
        frc_id: UUID,
        fingerprint: str,
        expected_version: int,
        decision: LineDecision | str | None = None,
        actual: CostBreakdown | Mapping[str, Any] | None = None,
    ) -> FRCRecord:
        """
        Record a human decision and/or actual amounts on one line.

        Raises:
            InvalidTransitionError: record is not ``in_progress``.
            LineItemNotFoundError: fingerprint not in the snapshot.
            InvalidDecisionError / InvalidMonetaryValueError: bad input.
            VersionConflictError: ``expected_version`` is stale.
        """
        parsed_decision = LineDecision.parse(decision) if decision is not None else None
        if actual is not None and not isinstance(actual, CostBreakdown):
            actual = CostBreakdown.from_mapping(actual)
        self._require_in_progress(frc_id, "update_line")

        def mutator(row: FRCRecordModel) -> dict[str, Any]:
            items = list(row.snapshot())
            for i, item in enumerate(items):
                if item.fingerprint == fingerprint:
                    break
            else:
                raise LineItemNotFoundError(str(frc_id), fingerprint)
            if parsed_decision is not None:
                item = item.with_decision(parsed_decision)
            if actual is not None:
                item = item.with_actual(actual)
            items[i] = item
            return self._snapshot_values(row, tuple(items))

        new_version = self._write_snapshot(frc_id, expected_version, mutator, "update_line")
        record = self.get(frc_id)
        line = record.line(fingerprint)

        logger.info(
            "line_decision_updated",
            extra={
                "frc_id": str(frc_id),
                "fingerprint": fingerprint,
                "decision": line.decision.value,
                "actual_changed": actual is not None,
                "version": new_version,
            },
        )
        publish(self._sink, LineDecisionUpdated(
            frc_id=frc_id,
            fingerprint=fingerprint,
            decision=line.decision.value,
            version=new_version,
            occurred_at=self._clock.now(),
        ))
        return record

    def mark_needs_sync(self, frc_id: UUID) -> FRCRecord:
        """Flag a completed record whose additionals changed after sign-off."""
        model = self.get_model(frc_id)
        if not model.needs_sync:
            model.needs_sync = True
            self.session.flush()
            logger.info("frc_needs_sync", extra={"frc_id": str(frc_id)})
        return model.to_dto()

    # =========================================================================
    # Status changes (guarded by status)
    # =========================================================================

    def apply_status_event(
        self,
        frc_id: UUID,
        event_name: str,
        extra_values: Mapping[str, Any] | None = None,
    ) -> FRCRecord:
        """
        Fire ``event_name`` from ``FRC_STATUS_TABLE`` on the record.

        Stamped columns get the clock's time and cleared columns are reset,
        in the same guarded statement as the status change.

        Raises:
            InvalidTransitionError: current status not eligible.
            StaleStateError: status changed concurrently.
        """
        transition = FRC_STATUS_TABLE.get(event_name)
        if transition is None:
            raise ValueError(f"Unknown FRC status event: {event_name!r}")

        model = self.get_model(frc_id)
        current = model.status
        if not transition.allows_from(current):
            raise InvalidTransitionError(
                "FRCRecord", str(frc_id), current, event_name,
                allowed_from=tuple(sorted(transition.eligible_from)),
                target_state=transition.to_state,
            )

        values: dict[str, Any] = {column: None for column in transition.clears}
        if transition.stamps:
            values[transition.stamps] = self._clock.now()
        values.update(extra_values or {})

        self._guard.compare_and_swap(
            FRCRecordModel, frc_id, "status", current, transition.to_state, values,
        )
        return self.get(frc_id)

    # =========================================================================
    # Private helpers
    # =========================================================================

    def _require_in_progress(self, frc_id: UUID, operation: str) -> FRCRecordModel:
        model = self.get_model(frc_id)
        if model.status != FRCStatus.IN_PROGRESS.value:
            raise InvalidTransitionError(
                "FRCRecord", str(frc_id), model.status, operation,
                allowed_from=(FRCStatus.IN_PROGRESS.value,),
            )
        return model

    def _write_snapshot(
        self,
        frc_id: UUID,
        expected_version: int,
        mutator: Any,
        operation: str,
    ) -> int:
        """Versioned snapshot write that also requires ``status == in_progress``."""
        try:
            return self._guard.compare_and_set(
                FRCRecordModel, frc_id, expected_version, mutator,
                version_attr="line_items_version",
                require={"status": FRCStatus.IN_PROGRESS.value},
            )
        except StaleStateError as exc:
            raise InvalidTransitionError(
                "FRCRecord", str(frc_id), exc.actual_state, operation,
                allowed_from=(FRCStatus.IN_PROGRESS.value,),
            ) from exc

    def _snapshot_values(
        self,
        row: FRCRecordModel,
        items: tuple[LineItem, ...],
        **extra: Any,
    ) -> dict[str, Any]:
        totals = self._totals.compute(
            line_items=items,
            quoted_estimate_subtotal=row.quoted_estimate_subtotal,
            vat_percentage=row.vat_percentage,
        )
        return {
            "line_items": [item.to_dict() for item in items],
            **totals_columns(totals),
            **extra,
        }
