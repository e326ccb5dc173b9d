"""
Assessment row normalization (``claims_modules.assessment.normalization``).

Responsibility
--------------
Fold the inbound shapes an assessment row arrives in into the one
canonical ``AssessmentRecord``.  Query layers return the appointment
either flat (``appointment_id``) or nested (``appointment: {"id": ...}``);
only this adapter knows that, so the core never branches on input shape.

Failure modes
-------------
* ``ValidationError`` when ``id``/``request_id`` are missing or the stage
  value is not a known stage.
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from claims_kernel.domain.stages import INITIAL_STAGE, AssessmentStage
from claims_kernel.exceptions import ValidationError
from claims_modules.assessment.models import AssessmentRecord

_TIMESTAMP_FIELDS = (
    "started_at",
    "estimate_finalized_at",
    "archived_at",
    "cancelled_at",
    "created_at",
    "updated_at",
)


def _appointment_id(row: Mapping[str, Any]) -> str | None:
    flat = row.get("appointment_id")
    if flat:
        return str(flat)
    nested = row.get("appointment")
    if isinstance(nested, Mapping) and nested.get("id"):
        return str(nested["id"])
    return None


def _stage(value: Any) -> AssessmentStage:
    if value is None or value == "":
        return INITIAL_STAGE
    try:
        return AssessmentStage(value)
    except ValueError:
        raise ValidationError(f"Unknown assessment stage: {value!r}") from None


def normalize_assessment_row(row: Mapping[str, Any]) -> AssessmentRecord:
    """Build an ``AssessmentRecord`` from a flat or nested row mapping."""
    raw_id = row.get("id")
    request_id = row.get("request_id")
    if raw_id is None or not request_id:
        raise ValidationError("Assessment row needs 'id' and 'request_id'")
    try:
        assessment_id = raw_id if isinstance(raw_id, UUID) else UUID(str(raw_id))
    except ValueError:
        raise ValidationError(f"Invalid assessment id: {raw_id!r}") from None

    return AssessmentRecord(
        id=assessment_id,
        request_id=str(request_id),
        stage=_stage(row.get("stage")),
        appointment_id=_appointment_id(row),
        assessment_number=row.get("assessment_number") or row.get("assessment_no"),
        **{name: row.get(name) for name in _TIMESTAMP_FIELDS},
    )
