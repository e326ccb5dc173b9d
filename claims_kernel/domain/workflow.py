"""
Canonical workflow types (``claims_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for event-driven state machines: a named transition
event maps a set of eligible source states to one target state.  The
assessment stage table and the FRC subprocess table are both declared with
these types, so guards are defined once.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Event names are unique within a ``TransitionTable``.
* Every ``eligible_from`` member and every ``to_state`` is a declared state.
* Reversal transitions (e.g. reopening costing) are ordinary named events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(frozen=True)
class Guard:
    """A named precondition that must hold before a transition fires.

    Contract: frozen, descriptive only.  The executor evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class StageTransition:
    """A named event: any state in ``eligible_from`` -> ``to_state``.

    ``stamps`` names the timestamp column set when the event fires;
    ``clears`` names the columns reset to NULL (used by reversals).
    """
    event: str
    eligible_from: frozenset[str]
    to_state: str
    description: str = ""
    guards: tuple[Guard, ...] = ()
    stamps: str | None = None
    clears: tuple[str, ...] = ()
    is_reversal: bool = False

    def allows_from(self, state: str) -> bool:
        return state in self.eligible_from


@dataclass(frozen=True)
class TransitionTable:
    """A complete, declarative state machine.

    Contract: frozen; validated at construction.
    Guarantees: ``initial_state`` and all referenced states are declared;
    event names are unique.
    """
    name: str
    states: tuple[str, ...]
    initial_state: str
    transitions: tuple[StageTransition, ...]
    terminal_states: tuple[str, ...] = ()
    _by_event: dict[str, StageTransition] = field(
        default_factory=dict, init=False, repr=False, compare=False,
    )

    def __post_init__(self) -> None:
        declared = set(self.states)
        if self.initial_state not in declared:
            raise ValueError(
                f"{self.name}: initial state {self.initial_state!r} not declared"
            )
        index: dict[str, StageTransition] = {}
        for t in self.transitions:
            if t.event in index:
                raise ValueError(f"{self.name}: duplicate event {t.event!r}")
            unknown = (set(t.eligible_from) | {t.to_state}) - declared
            if unknown:
                raise ValueError(
                    f"{self.name}: event {t.event!r} references undeclared "
                    f"states {sorted(unknown)}"
                )
            if not t.eligible_from:
                raise ValueError(f"{self.name}: event {t.event!r} has no source states")
            index[t.event] = t
        object.__setattr__(self, "_by_event", index)

    def get(self, event: str) -> StageTransition | None:
        return self._by_event.get(event)

    def events(self) -> tuple[str, ...]:
        return tuple(self._by_event)

    def events_from(self, state: str) -> tuple[StageTransition, ...]:
        """All transitions that may fire from ``state``."""
        return tuple(t for t in self.transitions if t.allows_from(state))

    def __iter__(self) -> Iterator[StageTransition]:
        return iter(self.transitions)

    def __len__(self) -> int:
        return len(self.transitions)
