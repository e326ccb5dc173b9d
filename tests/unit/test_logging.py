"""
Structured logging: JSON lines, context propagation, typed payloads.
"""

import json
import logging
import sys
from decimal import Decimal
from uuid import uuid4

from claims_kernel.exceptions import VersionConflictError
from claims_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _format(record_logger: logging.Logger, msg: str, **kwargs) -> dict:
    record = record_logger.makeRecord(
        record_logger.name, logging.INFO, __file__, 1, msg, (), kwargs.pop("exc_info", None),
        extra=kwargs or None,
    )
    return json.loads(StructuredFormatter().format(record))


class TestStructuredFormatter:

    def test_extra_fields_serialised(self):
        frc_id = uuid4()
        payload = _format(get_logger("test"), "snapshot_merged", frc_id=frc_id, amount=Decimal("1.10"))
        assert payload["message"] == "snapshot_merged"
        assert payload["logger"] == "claims_kernel.test"
        assert payload["frc_id"] == str(frc_id)
        assert payload["amount"] == "1.10"

    def test_context_fields_included(self):
        with LogContext.bind(assessment_id="a-1", correlation_id="req-9"):
            payload = _format(get_logger("test"), "hello")
        assert payload["assessment_id"] == "a-1"
        assert payload["correlation_id"] == "req-9"

    def test_context_restored_after_bind(self):
        with LogContext.bind(frc_id="f-1"):
            pass
        assert "frc_id" not in LogContext.get_all()

    def test_exception_fields(self):
        try:
            raise VersionConflictError("FRCRecord", "f-1", 3, 4)
        except VersionConflictError:
            payload = _format(get_logger("test"), "failed", exc_info=sys.exc_info())
        assert payload["exc_code"] == "VERSION_CONFLICT"
        assert payload["exc_expected_version"] == 3


class TestCapturedLogs:

    def test_records_captured_as_dicts(self, captured_logs):
        get_logger("test").info("event_x", extra={"n": 1})
        records = captured_logs()
        assert any(r["message"] == "event_x" and r["n"] == 1 for r in records)
