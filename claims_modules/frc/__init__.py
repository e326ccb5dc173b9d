"""FRC module: the final repair costing record and its snapshot."""

from claims_modules.frc.models import FRCRecord, FRCStatus, SignOff, SnapshotInputs
from claims_modules.frc.normalization import (
    normalize_additional_line,
    normalize_estimate_line,
    normalize_snapshot_inputs,
)
from claims_modules.frc.orm import FRCRecordModel
from claims_modules.frc.service import FRCService
from claims_modules.frc.workflows import FRC_STATUS_TABLE

__all__ = [
    "FRC_STATUS_TABLE",
    "FRCRecord",
    "FRCRecordModel",
    "FRCService",
    "FRCStatus",
    "SignOff",
    "SnapshotInputs",
    "normalize_additional_line",
    "normalize_estimate_line",
    "normalize_snapshot_inputs",
]
