"""Transaction-related types and enumerations."""

from __future__ import annotations

from enum import Enum


class TransactionState(Enum):
    """Transaction lifecycle states.

    State machine:

        ACTIVE ──end() / rollback() / timer──> ENDED
          ^                                      │
          └──────────────begin()─────────────────┘

    Mutations are written to the undo log only while ACTIVE. An ENDED
    transaction still forwards every call to its collection.
    """

    ACTIVE = "active"
    """Timer armed, mutations are recorded for rollback."""

    ENDED = "ended"
    """Deregistered, timer cancelled, nothing new is recorded."""

    def is_active(self) -> bool:
        """Check if mutations are currently being recorded."""
        return self is TransactionState.ACTIVE


class TimeoutAction(str, Enum):
    """What a transaction does when its inactivity timer fires."""

    END = "end"
    """Discard the undo log and end. Applied mutations stay in place."""

    ROLLBACK = "rollback"
    """Replay the undo log, then end."""
