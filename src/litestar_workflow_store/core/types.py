"""Core type definitions for litestar-workflow-store.

This module defines the enums and type aliases shared by the persistence and
lifecycle layers.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import TypeAlias, Union

# StrEnum backport for Python < 3.11
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:

    class StrEnum(str, Enum):
        """String enumeration compatibility for Python < 3.11."""

        def __str__(self) -> str:
            return str(self.value)


__all__ = [
    "LifecycleEventKind",
    "WorkflowId",
]


class LifecycleEventKind(StrEnum):
    """Kinds of lifecycle events raised for a workflow instance.

    Only ``SAVE`` and ``ROLLBACK`` carry meaning for transaction control;
    the remaining kinds are passed through to listeners unexamined.

    Attributes:
        CREATE: A new instance was persisted.
        FETCH: An instance was loaded from storage.
        EXECUTE: An action executed successfully.
        STATE_CHANGE: The instance moved to a new state.
        ADD_HISTORY: A history entry was recorded in memory.
        SAVE: Instance and history writes finished; the transaction may be committed.
        ROLLBACK: An action failed; pending writes must be undone.
        COMPLETED: The instance reached a terminal state.
    """

    CREATE = "create"
    FETCH = "fetch"
    EXECUTE = "execute"
    STATE_CHANGE = "state_change"
    ADD_HISTORY = "add_history"
    SAVE = "save"
    ROLLBACK = "rollback"
    COMPLETED = "completed"


WorkflowId: TypeAlias = Union[int, str]
"""Type alias for persisted identifiers (integers from sequences, strings from random generators)."""
