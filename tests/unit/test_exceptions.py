"""
Typed exceptions carry a code and structured fields.
"""

import pytest

from claims_kernel.exceptions import (
    ClaimsKernelError,
    ConcurrencyError,
    DuplicateAssessmentError,
    IntegrityViolationError,
    InvalidTransitionError,
    RemovalPairingError,
    StaleStateError,
    TransitionError,
    VersionConflictError,
)


class TestExceptionStructure:

    def test_invalid_transition_to_dict(self):
        err = InvalidTransitionError(
            "Assessment", "a-1", "request_submitted", "start_assessment",
            allowed_from=("inspection_scheduled", "appointment_scheduled"),
            target_state="assessment_in_progress",
        )
        data = err.to_dict()
        assert data["code"] == "INVALID_TRANSITION"
        assert data["current_state"] == "request_submitted"
        assert data["event_name"] == "start_assessment"
        assert data["allowed_from"] == ("inspection_scheduled", "appointment_scheduled")
        assert "start_assessment" in data["message"]

    @pytest.mark.parametrize("err,base", [
        (InvalidTransitionError("Assessment", "x", "a", "e"), TransitionError),
        (VersionConflictError("FRCRecord", "x", 1, 2), ConcurrencyError),
        (StaleStateError("Assessment", "x", "a", "b"), ConcurrencyError),
        (RemovalPairingError("R1", "E9"), IntegrityViolationError),
        (DuplicateAssessmentError("REQ-1"), IntegrityViolationError),
    ])
    def test_hierarchy(self, err, base):
        assert isinstance(err, base)
        assert isinstance(err, ClaimsKernelError)

    def test_codes_are_unique(self):
        def walk(cls):
            for sub in cls.__subclasses__():
                yield sub
                yield from walk(sub)

        codes = [cls.code for cls in walk(ClaimsKernelError)]
        assert len(codes) == len(set(codes))
