"""
Cross-module orchestration: stage transitions, the costing subprocess,
and the ``AssessmentCore`` facade.
"""

from claims_services.core import AssessmentCore
from claims_services.frc_subprocess import FRCSubprocessController
from claims_services.stage_transitions import StageTransitionController

__all__ = [
    "AssessmentCore",
    "FRCSubprocessController",
    "StageTransitionController",
]
