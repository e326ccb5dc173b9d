"""Assessment module: the assessment record and its stage workflow."""

from claims_modules.assessment.models import AssessmentRecord, IntegrityIssue, TransitionResult
from claims_modules.assessment.normalization import normalize_assessment_row
from claims_modules.assessment.orm import AssessmentModel
from claims_modules.assessment.service import AssessmentService, check_assessment_integrity
from claims_modules.assessment.workflows import ASSESSMENT_STAGE_TABLE

__all__ = [
    "ASSESSMENT_STAGE_TABLE",
    "AssessmentModel",
    "AssessmentRecord",
    "AssessmentService",
    "IntegrityIssue",
    "TransitionResult",
    "check_assessment_integrity",
    "normalize_assessment_row",
]
