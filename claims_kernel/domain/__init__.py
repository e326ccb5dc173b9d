"""
Kernel domain layer -- pure value objects and rules.  ZERO I/O.

Re-exports the types most callers need.
"""

from claims_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from claims_kernel.domain.line_items import (
    COST_CATEGORIES,
    AdditionalApprovalStatus,
    AdditionalLine,
    CostBreakdown,
    EstimateLine,
    LineDecision,
    LineItem,
    LineSource,
    make_fingerprint,
    parse_fingerprint,
)
from claims_kernel.domain.stages import (
    APPOINTMENT_DEPENDENT_STAGES,
    ORDERED_STAGES,
    TERMINAL_STAGES,
    AssessmentStage,
    requires_appointment,
)
from claims_kernel.domain.workflow import Guard, StageTransition, TransitionTable

__all__ = [
    "APPOINTMENT_DEPENDENT_STAGES",
    "COST_CATEGORIES",
    "ORDERED_STAGES",
    "TERMINAL_STAGES",
    "AdditionalApprovalStatus",
    "AdditionalLine",
    "AssessmentStage",
    "Clock",
    "CostBreakdown",
    "DeterministicClock",
    "EstimateLine",
    "Guard",
    "LineDecision",
    "LineItem",
    "LineSource",
    "StageTransition",
    "SystemClock",
    "TransitionTable",
    "make_fingerprint",
    "parse_fingerprint",
    "requires_appointment",
]
