"""
Typed Exception Hierarchy for the Claims Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A stuck assessment is invisible until somebody goes looking for it.  The
kernel therefore never skips a rejected transition silently and never asks
callers to parse message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (current state, attempted change)

Example - RIGHT way to handle a rejected transition:
    try:
        controller.attempt_transition(assessment_id, "start_assessment")
    except InvalidTransitionError as e:
        render(code=e.code, stage=e.current_state, allowed=e.allowed_from)
    except StaleStateError as e:
        refetch_and_retry(e.entity_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ClaimsKernelError (base)
    |
    +-- TransitionError
    |   +-- InvalidTransitionError
    |   +-- MissingPrerequisiteError
    |
    +-- ConcurrencyError
    |   +-- VersionConflictError
    |   +-- StaleStateError
    |
    +-- IntegrityViolationError
    |   +-- RemovalPairingError
    |   +-- DuplicateAssessmentError
    |   +-- DuplicateFRCError
    |   +-- DuplicateFingerprintError
    |
    +-- ValidationError
    |   +-- UnknownTransitionEventError
    |   +-- InvalidFingerprintError
    |   +-- InvalidMonetaryValueError
    |   +-- InvalidDecisionError
    |
    +-- NotFoundError
        +-- AssessmentNotFoundError
        +-- FRCNotFoundError
        +-- LineItemNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                      | When Raised
--------------|---------------------------|-------------------------------------------
Transition    | INVALID_TRANSITION        | Current state not in the eligible set
              | MISSING_PREREQUISITE      | e.g. appointment stage without appointment
--------------|---------------------------|-------------------------------------------
Concurrency   | VERSION_CONFLICT          | lineItemsVersion moved since read
              | STALE_STATE               | Stage differs from caller's expectation
--------------|---------------------------|-------------------------------------------
Integrity     | REMOVAL_PAIRING_BROKEN    | Removal additional with no baseline line
              | DUPLICATE_ASSESSMENT      | Second assessment for one request
              | DUPLICATE_FRC             | Second FRC record for one assessment
              | DUPLICATE_FINGERPRINT     | Two candidate lines share a fingerprint
--------------|---------------------------|-------------------------------------------
Validation    | UNKNOWN_TRANSITION_EVENT  | Event name not in the transition table
              | INVALID_FINGERPRINT       | Missing source or source line id
              | INVALID_MONETARY_VALUE    | Non-numeric / float monetary input
              | INVALID_DECISION          | Decision not agree/decline/pending
--------------|---------------------------|-------------------------------------------
Not found     | ASSESSMENT_NOT_FOUND      | No assessment with that id
              | FRC_NOT_FOUND             | No FRC record with that id
              | LINE_ITEM_NOT_FOUND       | Fingerprint absent from snapshot

===============================================================================
PROPAGATION
===============================================================================

Nothing is retried internally and nothing is swallowed.  ConcurrencyError
subclasses mean "refetch, then decide"; the kernel performs no backoff.
"""

from typing import Any


class ClaimsKernelError(Exception):
    """
    Base exception for all claims kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "CLAIMS_KERNEL_ERROR"

    def to_dict(self) -> dict[str, Any]:
        """Structured representation for API responses and log payloads."""
        payload: dict[str, Any] = {"code": self.code, "message": str(self)}
        for key, value in vars(self).items():
            if not key.startswith("_"):
                payload[key] = value
        return payload


# Transition-related exceptions


class TransitionError(ClaimsKernelError):
    """Base exception for stage and subprocess transition errors."""

    code: str = "TRANSITION_ERROR"


class InvalidTransitionError(TransitionError):
    """Requested change is not permitted from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        event_name: str,
        allowed_from: tuple[str, ...] = (),
        target_state: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_state = current_state
        self.event_name = event_name
        self.allowed_from = allowed_from
        self.target_state = target_state
        allowed = ", ".join(allowed_from) if allowed_from else "-"
        super().__init__(
            f"Cannot apply '{event_name}' to {entity_type} {entity_id} "
            f"in state '{current_state}' (allowed from: {allowed})"
        )


class MissingPrerequisiteError(TransitionError):
    """A transition target requires data the record does not have."""

    code: str = "MISSING_PREREQUISITE"

    def __init__(self, assessment_id: str, prerequisite: str, target_stage: str):
        self.assessment_id = assessment_id
        self.prerequisite = prerequisite
        self.target_stage = target_stage
        super().__init__(
            f"Assessment {assessment_id} needs '{prerequisite}' "
            f"before entering '{target_stage}'"
        )


# Concurrency-related exceptions


class ConcurrencyError(ClaimsKernelError):
    """Base exception for optimistic-lock failures.  Caller must refetch."""

    code: str = "CONCURRENCY_ERROR"


class VersionConflictError(ConcurrencyError):
    """Version token did not match at write time."""

    code: str = "VERSION_CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: int,
        actual_version: int | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict on {entity_type} {entity_id}: "
            f"expected {expected_version}, found {actual_version}"
        )


class StaleStateError(ConcurrencyError):
    """Stored state differs from the state the caller acted on."""

    code: str = "STALE_STATE"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_state: str,
        actual_state: str | None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_state = expected_state
        self.actual_state = actual_state
        super().__init__(
            f"Stale state on {entity_type} {entity_id}: "
            f"expected '{expected_state}', found '{actual_state}'"
        )


# Integrity-related exceptions


class IntegrityViolationError(ClaimsKernelError):
    """Base exception for broken structural invariants."""

    code: str = "INTEGRITY_VIOLATION"


class RemovalPairingError(IntegrityViolationError):
    """A removal additional points at a baseline line that does not exist."""

    code: str = "REMOVAL_PAIRING_BROKEN"

    def __init__(
        self,
        removal_source_line_id: str,
        target_source_line_id: str | None,
        reason: str = "baseline line not in estimate",
    ):
        self.removal_source_line_id = removal_source_line_id
        self.target_source_line_id = target_source_line_id
        self.reason = reason
        super().__init__(
            f"Removal additional {removal_source_line_id} -> baseline line "
            f"{target_source_line_id!r}: {reason}"
        )


class DuplicateAssessmentError(IntegrityViolationError):
    """Exactly one assessment may exist per request."""

    code: str = "DUPLICATE_ASSESSMENT"

    def __init__(self, request_id: str, existing_assessment_id: str | None = None):
        self.request_id = request_id
        self.existing_assessment_id = existing_assessment_id
        super().__init__(f"Request {request_id} already has an assessment")


class DuplicateFRCError(IntegrityViolationError):
    """Exactly one FRC record may exist per assessment."""

    code: str = "DUPLICATE_FRC"

    def __init__(self, assessment_id: str, existing_frc_id: str | None = None):
        self.assessment_id = assessment_id
        self.existing_frc_id = existing_frc_id
        super().__init__(f"Assessment {assessment_id} already has an FRC record")


class DuplicateFingerprintError(IntegrityViolationError):
    """Two candidate lines produced the same fingerprint."""

    code: str = "DUPLICATE_FINGERPRINT"

    def __init__(self, fingerprint: str):
        self.fingerprint = fingerprint
        super().__init__(f"Duplicate line fingerprint: {fingerprint}")


# Validation exceptions


class ValidationError(ClaimsKernelError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"


class UnknownTransitionEventError(ValidationError):
    """Event name is not declared in the transition table."""

    code: str = "UNKNOWN_TRANSITION_EVENT"

    def __init__(self, event_name: str):
        self.event_name = event_name
        super().__init__(f"Unknown transition event: {event_name!r}")


class InvalidFingerprintError(ValidationError):
    """Fingerprint components are missing or malformed."""

    code: str = "INVALID_FINGERPRINT"

    def __init__(self, source: str | None, source_line_id: str | None):
        self.source = source
        self.source_line_id = source_line_id
        super().__init__(
            f"Cannot build fingerprint from source={source!r}, "
            f"source_line_id={source_line_id!r}"
        )


class InvalidMonetaryValueError(ValidationError):
    """Monetary field is not a valid fixed-point number."""

    code: str = "INVALID_MONETARY_VALUE"

    def __init__(self, field_name: str, value: Any):
        self.field_name = field_name
        self.value = repr(value)
        super().__init__(f"Invalid monetary value for {field_name}: {value!r}")


class InvalidDecisionError(ValidationError):
    """Line decision is not one of agree/decline/pending."""

    code: str = "INVALID_DECISION"

    def __init__(self, decision: Any):
        self.decision = repr(decision)
        super().__init__(f"Invalid line decision: {decision!r}")


# Lookup exceptions


class NotFoundError(ClaimsKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class AssessmentNotFoundError(NotFoundError):
    """Assessment with given ID was not found."""

    code: str = "ASSESSMENT_NOT_FOUND"

    def __init__(self, assessment_id: str):
        self.assessment_id = assessment_id
        super().__init__(f"Assessment not found: {assessment_id}")


class FRCNotFoundError(NotFoundError):
    """FRC record was not found."""

    code: str = "FRC_NOT_FOUND"

    def __init__(self, frc_id: str):
        self.frc_id = frc_id
        super().__init__(f"FRC record not found: {frc_id}")


class LineItemNotFoundError(NotFoundError):
    """No line with the given fingerprint in the current snapshot."""

    code: str = "LINE_ITEM_NOT_FOUND"

    def __init__(self, frc_id: str, fingerprint: str):
        self.frc_id = frc_id
        self.fingerprint = fingerprint
        super().__init__(f"Line {fingerprint} not found in FRC {frc_id}")
