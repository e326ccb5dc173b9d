"""
ConcurrencyGuard -- version-stamped optimistic locking.

Responsibility:
    Guarantees at most one successful mutation per version of a record.
    Two write shapes are supported:

    * ``compare_and_set`` -- integer version token (``FRCRecord.line_items_version``).
      The guard bumps the version by exactly one on success.
    * ``compare_and_swap`` -- state token (``Assessment.stage``,
      ``FRCRecord.status``).  The write succeeds only if the stored value
      still equals the expected one.

    Both compile to a single ``UPDATE ... WHERE id = :id AND token = :expected``;
    the affected row count decides the winner.  No row locks, no queues.

Architecture position:
    Kernel > Services.  Generic over ORM models; MUST NOT import module
    models.

Invariants enforced:
    - Versions never decrease and advance by exactly 1 per successful write.
    - Conflicts are reported synchronously.  The guard never retries and
      never sleeps; the caller refetches and decides.

Failure modes:
    - VersionConflictError when the integer version moved.
    - StaleStateError when the state token, or a column named in
      ``require``, moved.
    - NotFoundError when the record does not exist.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from claims_kernel.db.base import Base
from claims_kernel.exceptions import (
    NotFoundError,
    StaleStateError,
    VersionConflictError,
)
from claims_kernel.logging_config import get_logger

logger = get_logger("services.concurrency_guard")

ModelT = TypeVar("ModelT", bound=Base)

Mutator = Callable[[Any], dict[str, Any]]


def _entity_type(model: type[Base]) -> str:
    return getattr(model, "__entity_type__", model.__tablename__)


class ConcurrencyGuard:
    """Compare-and-set primitive bound to a session."""

    def __init__(self, session: Session):
        self._session = session

    def load(self, model: type[ModelT], record_id: UUID) -> ModelT | None:
        """Read the committed row, bypassing any stale identity-map copy."""
        return self._session.execute(
            select(model)
            .where(model.id == record_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def compare_and_set(
        self,
        model: type[ModelT],
        record_id: UUID,
        expected_version: int,
        mutator: Mutator,
        *,
        version_attr: str = "version",
        require: dict[str, Any] | None = None,
    ) -> int:
        """Apply ``mutator`` if the stored version equals ``expected_version``.

        ``mutator`` receives the freshly loaded row and returns the column
        values to write.  It must not touch the version column.

        ``require`` maps further columns to the values they must still hold;
        they are checked on read and again in the UPDATE's WHERE clause.

        Returns:
            The new version (``expected_version + 1``).

        Raises:
            VersionConflictError: stored version differs, before or during
                the write.
            StaleStateError: a ``require`` column differs, before or during
                the write.
            NotFoundError: no such record.
        """
        entity = _entity_type(model)
        row = self._require(model, record_id)
        require = dict(require or {})

        current = getattr(row, version_attr)
        if current != expected_version:
            self._log_conflict(entity, record_id, version_attr, expected_version, current)
            raise VersionConflictError(entity, str(record_id), expected_version, current)
        for attr, expected in require.items():
            if getattr(row, attr) != expected:
                self._log_conflict(entity, record_id, attr, expected, getattr(row, attr))
                raise StaleStateError(entity, str(record_id), expected, getattr(row, attr))

        values = dict(mutator(row))
        if version_attr in values:
            raise ValueError(f"mutator must not write {version_attr!r}")
        new_version = expected_version + 1
        values[version_attr] = new_version

        clauses = [getattr(model, version_attr) == expected_version]
        clauses.extend(getattr(model, attr) == expected for attr, expected in require.items())
        if not self._guarded_update(model, record_id, clauses, values):
            actual = self._current_value(model, record_id, version_attr)
            if actual == expected_version:
                for attr, expected in require.items():
                    moved = self._current_value(model, record_id, attr)
                    if moved != expected:
                        self._log_conflict(entity, record_id, attr, expected, moved)
                        raise StaleStateError(entity, str(record_id), expected, moved)
            self._log_conflict(entity, record_id, version_attr, expected_version, actual)
            raise VersionConflictError(entity, str(record_id), expected_version, actual)

        self._session.refresh(row)
        logger.debug(
            "compare_and_set_applied",
            extra={
                "entity_type": entity,
                "entity_id": str(record_id),
                "version_attr": version_attr,
                "new_version": new_version,
            },
        )
        return new_version

    def compare_and_swap(
        self,
        model: type[ModelT],
        record_id: UUID,
        attr: str,
        expected_value: str,
        new_value: str,
        extra_values: dict[str, Any] | None = None,
    ) -> None:
        """Set ``attr`` to ``new_value`` if it still equals ``expected_value``.

        ``extra_values`` are written in the same statement.

        Raises:
            StaleStateError: stored value differs, before or during the write.
            NotFoundError: no such record.
        """
        entity = _entity_type(model)
        row = self._require(model, record_id)

        current = getattr(row, attr)
        if current != expected_value:
            self._log_conflict(entity, record_id, attr, expected_value, current)
            raise StaleStateError(entity, str(record_id), expected_value, current)

        values = dict(extra_values or {})
        values[attr] = new_value
        token = getattr(model, attr)
        if not self._guarded_update(model, record_id, [token == expected_value], values):
            actual = self._current_value(model, record_id, attr)
            self._log_conflict(entity, record_id, attr, expected_value, actual)
            raise StaleStateError(entity, str(record_id), expected_value, actual)

        self._session.refresh(row)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require(self, model: type[ModelT], record_id: UUID) -> ModelT:
        row = self.load(model, record_id)
        if row is None:
            raise NotFoundError(f"{_entity_type(model)} not found: {record_id}")
        return row

    def _guarded_update(
        self,
        model: type[Base],
        record_id: UUID,
        clauses: list[Any],
        values: dict[str, Any],
    ) -> bool:
        result = self._session.execute(
            update(model)
            .where(model.id == record_id, *clauses)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _current_value(self, model: type[Base], record_id: UUID, attr: str) -> Any:
        return self._session.execute(
            select(getattr(model, attr)).where(model.id == record_id)
        ).scalar_one_or_none()

    @staticmethod
    def _log_conflict(
        entity: str,
        record_id: UUID,
        token: str,
        expected: Any,
        actual: Any,
    ) -> None:
        logger.warning(
            "version_conflict",
            extra={
                "entity_type": entity,
                "entity_id": str(record_id),
                "token": token,
                "expected": str(expected),
                "actual": str(actual),
            },
        )
