"""
Pure calculation engines for the costing snapshot.

No I/O, no sessions, no clock.  Services feed them domain values and
persist what comes back.
"""

from claims_engines.snapshot_merge import FRCSnapshotMerger, MergeResult
from claims_engines.totals import (
    BaselineTotals,
    DeltaDirection,
    FinalTotals,
    FRCTotals,
    SourceBreakdown,
    TotalsCalculator,
)
from claims_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "BaselineTotals",
    "DeltaDirection",
    "FRCSnapshotMerger",
    "FRCTotals",
    "FinalTotals",
    "MergeResult",
    "SourceBreakdown",
    "TotalsCalculator",
    "compute_input_fingerprint",
    "traced_engine",
]
