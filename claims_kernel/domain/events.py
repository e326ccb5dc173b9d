"""
Domain events (``claims_kernel.domain.events``).

Responsibility
--------------
Frozen records the core emits after a guarded write succeeds, and the
sink protocol external consumers (audit log, badge refresh, navigation)
implement.

Invariants enforced
-------------------
* Events are emitted only after the write they describe succeeded, and
  never for idempotent no-ops.
* Emission is fire-and-forget: a failing sink is logged and ignored; the
  core never depends on an event being consumed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from claims_kernel.logging_config import get_logger

logger = get_logger("domain.events")


@dataclass(frozen=True)
class StageChanged:
    assessment_id: UUID
    from_stage: str
    to_stage: str
    event_name: str
    occurred_at: datetime | None = None


@dataclass(frozen=True)
class SnapshotMerged:
    frc_id: UUID
    assessment_id: UUID
    version: int
    line_count: int
    manual_refresh: bool = False
    occurred_at: datetime | None = None


@dataclass(frozen=True)
class LineDecisionUpdated:
    frc_id: UUID
    fingerprint: str
    decision: str
    version: int
    occurred_at: datetime | None = None


@dataclass(frozen=True)
class FRCStarted:
    frc_id: UUID
    assessment_id: UUID
    occurred_at: datetime | None = None


@dataclass(frozen=True)
class FRCCompleted:
    frc_id: UUID
    assessment_id: UUID
    signed_off_by: str | None = None
    occurred_at: datetime | None = None


@dataclass(frozen=True)
class FRCReopened:
    frc_id: UUID
    assessment_id: UUID
    occurred_at: datetime | None = None


DomainEvent = (
    StageChanged
    | SnapshotMerged
    | LineDecisionUpdated
    | FRCStarted
    | FRCCompleted
    | FRCReopened
)


def event_payload(event: DomainEvent) -> dict[str, Any]:
    """Flat dict form of an event, tagged with its type name."""
    payload = asdict(event)
    payload["event_type"] = type(event).__name__
    return payload


@runtime_checkable
class EventSink(Protocol):
    """Receives domain events.  Implementations live outside the core."""

    def emit(self, event: DomainEvent) -> None:
        ...


class NullEventSink:
    """Discards every event."""

    def emit(self, event: DomainEvent) -> None:
        return None


class CollectingEventSink:
    """Keeps events in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def emit(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()


class LoggingEventSink:
    """Writes each event as a structured ``domain_event`` log record."""

    def emit(self, event: DomainEvent) -> None:
        logger.info("domain_event", extra=event_payload(event))


def publish(sink: EventSink | None, event: DomainEvent) -> None:
    """Deliver ``event`` to ``sink``; consumer failures never propagate."""
    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "event_sink_failed",
            extra={
                "event_type": type(event).__name__,
                "sink": type(sink).__name__,
                "error": str(exc),
            },
        )
