"""
claims_engines.snapshot_merge -- Costing snapshot merge.

Responsibility:
    Combine the finalized baseline estimate with the current additionals
    read model into one ordered tuple of ``LineItem``s, carrying forward
    every decision and actual amount a person already recorded on a line
    seen in an earlier merge.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Imports only
    ``claims_kernel.domain`` and kernel exceptions.  Version control and
    persistence belong to the FRC service.

Invariants enforced:
    - Identity: a line's identity across runs is its fingerprint
      ``"{source}:{source_line_id}"``.  Fingerprints are unique per snapshot.
    - Preservation: a fingerprint present in the existing snapshot keeps
      its ``decision`` and ``actual`` amounts; quoted amounts and flags are
      refreshed from the current sources.
    - Idempotence: merging the output of a merge with unchanged sources
      yields an equal snapshot.
    - Removal pairing: every removal additional references exactly one
      baseline line and its quoted amounts are that line's exact negation.
      Only an approved removal flags the baseline ``removed_via_additionals``
      so the pair nets to zero; a declined removal carries ``decline`` and
      leaves the baseline counted.  Pending removals, like other pending
      additionals, are not merged.  A removal whose target is missing raises.
    - Insurer-declined additionals always carry ``decline``.

Failure modes:
    - RemovalPairingError: removal target missing from the estimate, or
      two approved removals targeting one baseline line.
    - DuplicateFingerprintError: two source lines with the same identity.

Usage:
    merger = FRCSnapshotMerger()
    result = merger.merge(
        existing=frc.line_items,
        estimate_lines=estimate,
        additional_lines=additionals,
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from claims_kernel.domain.line_items import (
    AdditionalApprovalStatus,
    AdditionalLine,
    EstimateLine,
    LineDecision,
    LineItem,
    LineSource,
    make_fingerprint,
)
from claims_kernel.exceptions import DuplicateFingerprintError, RemovalPairingError
from claims_kernel.logging_config import get_logger
from claims_engines.tracer import traced_engine

logger = get_logger("engines.snapshot_merge")


@dataclass(frozen=True)
class MergeResult:
    """Outcome of one merge run.

    ``added`` are fingerprints seen for the first time, ``preserved`` carried
    a prior decision forward, ``dropped`` were in the old snapshot but are
    no longer candidates.
    """

    line_items: tuple[LineItem, ...]
    added: tuple[str, ...] = ()
    preserved: tuple[str, ...] = ()
    dropped: tuple[str, ...] = ()

    @property
    def fingerprints(self) -> tuple[str, ...]:
        return tuple(li.fingerprint for li in self.line_items)

    def removal_pairs(self) -> list[tuple[LineItem, LineItem]]:
        """(baseline line, removal line) pairs in snapshot order.

        Only approved removals pair; a declined removal leaves its baseline
        line counted.
        """
        by_source_id = {
            li.source_line_id: li
            for li in self.line_items
            if li.source is LineSource.ESTIMATE
        }
        return [
            (by_source_id[li.removal_for_source_line_id], li)
            for li in self.line_items
            if li.is_removal_additional
            and li.approval_status is AdditionalApprovalStatus.APPROVED
        ]


class FRCSnapshotMerger:
    """
    Pure merge of baseline estimate lines and additionals.

    Contract:
        No I/O, no clock, fully deterministic.  Output order is baseline
        lines in estimate order, then additionals in read-model order.
    Non-goals:
        - Does not bump versions or persist; the FRC service does that
          under the concurrency guard.
        - Does not compute totals (see ``claims_engines.totals``).
    """

    def __init__(self, include_declined_additionals: bool = True) -> None:
        self._include_declined = include_declined_additionals

    @traced_engine("frc_snapshot_merge", "1.0", fingerprint_fields=("excluded_line_ids",))
    def merge(
        self,
        *,
        existing: Sequence[LineItem],
        estimate_lines: Sequence[EstimateLine],
        additional_lines: Sequence[AdditionalLine],
        excluded_line_ids: Iterable[str] = (),
    ) -> MergeResult:
        old_by_fingerprint = {li.fingerprint: li for li in existing}
        excluded = frozenset(str(x) for x in excluded_line_ids)

        baseline = self._index_baseline(estimate_lines)
        candidates = [a for a in additional_lines if self._is_candidate(a, excluded)]
        removed_by = self._pair_removals(candidates, baseline)

        merged: list[LineItem] = []
        added: list[str] = []
        preserved: list[str] = []
        seen: set[str] = set()

        def _accept(item: LineItem) -> None:
            if item.fingerprint in seen:
                raise DuplicateFingerprintError(item.fingerprint)
            seen.add(item.fingerprint)
            if item.fingerprint in old_by_fingerprint:
                preserved.append(item.fingerprint)
            else:
                added.append(item.fingerprint)
            merged.append(item)

        for line in estimate_lines:
            _accept(self._baseline_item(line, line.source_line_id in removed_by, old_by_fingerprint))

        for line in candidates:
            if line.is_removal:
                target = baseline[line.removal_for_source_line_id]
                _accept(self._removal_item(line, target, old_by_fingerprint))
            else:
                _accept(self._additional_item(line, old_by_fingerprint))

        dropped = tuple(fp for fp in old_by_fingerprint if fp not in seen)
        if dropped:
            logger.info(
                "snapshot_lines_dropped",
                extra={"dropped": list(dropped)},
            )

        return MergeResult(
            line_items=tuple(merged),
            added=tuple(added),
            preserved=tuple(preserved),
            dropped=dropped,
        )

    # ------------------------------------------------------------------
    # Candidate selection and pairing
    # ------------------------------------------------------------------

    def _is_candidate(self, line: AdditionalLine, excluded: frozenset[str]) -> bool:
        if line.source_line_id in excluded:
            return False
        if line.approval_status is AdditionalApprovalStatus.APPROVED:
            return True
        if line.approval_status is AdditionalApprovalStatus.DECLINED:
            return self._include_declined
        return False

    @staticmethod
    def _index_baseline(estimate_lines: Sequence[EstimateLine]) -> dict[str, EstimateLine]:
        index: dict[str, EstimateLine] = {}
        for line in estimate_lines:
            if line.source_line_id in index:
                raise DuplicateFingerprintError(
                    make_fingerprint(LineSource.ESTIMATE, line.source_line_id)
                )
            index[line.source_line_id] = line
        return index

    @staticmethod
    def _pair_removals(
        candidates: Sequence[AdditionalLine],
        baseline: dict[str, EstimateLine],
    ) -> dict[str, str]:
        """Map baseline source line id -> approved removal additional source line id."""
        removed_by: dict[str, str] = {}
        for line in candidates:
            if not line.is_removal:
                continue
            target = line.removal_for_source_line_id
            if target not in baseline:
                raise RemovalPairingError(line.source_line_id, target)
            if line.approval_status is not AdditionalApprovalStatus.APPROVED:
                continue
            if target in removed_by:
                raise RemovalPairingError(
                    line.source_line_id,
                    target,
                    reason=f"already removed by additional {removed_by[target]}",
                )
            removed_by[target] = line.source_line_id
        return removed_by

    # ------------------------------------------------------------------
    # Line construction
    # ------------------------------------------------------------------

    @staticmethod
    def _baseline_item(
        line: EstimateLine,
        removed: bool,
        old: dict[str, LineItem],
    ) -> LineItem:
        fingerprint = make_fingerprint(LineSource.ESTIMATE, line.source_line_id)
        prior = old.get(fingerprint)
        return LineItem(
            fingerprint=fingerprint,
            source=LineSource.ESTIMATE,
            source_line_id=line.source_line_id,
            description=line.description,
            decision=prior.decision if prior else LineDecision.PENDING,
            quoted=line.quoted,
            actual=prior.actual if prior else line.quoted,
            removed_via_additionals=removed,
        )

    @staticmethod
    def _removal_item(
        line: AdditionalLine,
        target: EstimateLine,
        old: dict[str, LineItem],
    ) -> LineItem:
        fingerprint = make_fingerprint(LineSource.ADDITIONAL, line.source_line_id)
        prior = old.get(fingerprint)
        quoted = target.quoted.negated()
        if line.approval_status is AdditionalApprovalStatus.DECLINED:
            decision = LineDecision.DECLINE
        elif prior is not None:
            decision = prior.decision
        else:
            decision = LineDecision.AGREE
        return LineItem(
            fingerprint=fingerprint,
            source=LineSource.ADDITIONAL,
            source_line_id=line.source_line_id,
            description=line.description or target.description,
            decision=decision,
            quoted=quoted,
            actual=prior.actual if prior else quoted,
            approval_status=line.approval_status,
            is_removal_additional=True,
            removal_for_source_line_id=target.source_line_id,
        )

    @staticmethod
    def _additional_item(line: AdditionalLine, old: dict[str, LineItem]) -> LineItem:
        fingerprint = make_fingerprint(LineSource.ADDITIONAL, line.source_line_id)
        prior = old.get(fingerprint)
        if line.approval_status is AdditionalApprovalStatus.DECLINED:
            decision = LineDecision.DECLINE
        elif prior is not None:
            decision = prior.decision
        else:
            decision = LineDecision.PENDING
        return LineItem(
            fingerprint=fingerprint,
            source=LineSource.ADDITIONAL,
            source_line_id=line.source_line_id,
            description=line.description,
            decision=decision,
            quoted=line.quoted,
            actual=prior.actual if prior else line.quoted,
            approval_status=line.approval_status,
        )
