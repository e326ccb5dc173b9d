"""
FRC Workflows.

Status machine of the costing subprocess.  Kept separate from the
assessment stage table: starting costing creates a record in
``in_progress`` and leaves the assessment stage alone.
"""

from claims_kernel.domain.workflow import StageTransition, TransitionTable
from claims_modules.frc.models import FRCStatus

COMPLETE = StageTransition(
    event="complete",
    eligible_from=frozenset({FRCStatus.IN_PROGRESS.value}),
    to_state=FRCStatus.COMPLETED.value,
    description="Costing signed off",
    stamps="completed_at",
)

REOPEN = StageTransition(
    event="reopen",
    eligible_from=frozenset({FRCStatus.COMPLETED.value}),
    to_state=FRCStatus.IN_PROGRESS.value,
    description="Costing reopened for changes",
    clears=(
        "completed_at",
        "signed_off_at",
        "signed_off_by_name",
        "signed_off_by_email",
        "signed_off_by_role",
        "sign_off_notes",
    ),
    is_reversal=True,
)

FRC_STATUS_TABLE = TransitionTable(
    name="frc_status",
    states=tuple(s.value for s in FRCStatus),
    initial_state=FRCStatus.IN_PROGRESS.value,
    transitions=(COMPLETE, REOPEN),
)
