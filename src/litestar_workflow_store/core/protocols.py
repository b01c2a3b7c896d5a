"""Core protocols for litestar-workflow-store.

This module defines the Protocol-based interfaces for ID generators,
persisters and lifecycle listeners. Using Protocol allows duck typing while
maintaining type safety, so new backends and commit policies can be plugged
in without subclassing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import Connection

    from litestar_workflow_store.core.events import LifecycleEvent
    from litestar_workflow_store.core.models import FetchedWorkflow, HistoryEntry, WorkflowInstance
    from litestar_workflow_store.core.types import WorkflowId


__all__ = ["IdGenerator", "LifecycleListener", "Persister"]


@runtime_checkable
class IdGenerator(Protocol):
    """Two-phase protocol for producing primary keys.

    Every generator implements both phases so the persister never needs to
    know which phase a given backend uses. For a fresh insert at least one of
    the two methods must return an identifier.

    Example:
        >>> class FixedId:
        ...     def pre_fetch_id(self, connection):
        ...         return "abc"
        ...
        ...     def post_fetch_id(self, connection, result):
        ...         return None
    """

    def pre_fetch_id(self, connection: Connection) -> WorkflowId | None:
        """Produce an identifier before the row is inserted.

        Args:
            connection: The persister's live connection.

        Returns:
            The identifier to include in the INSERT, or None to request the
            post-insert path.
        """
        ...

    def post_fetch_id(self, connection: Connection, result: Any) -> WorkflowId | None:
        """Read the identifier assigned by the backend after the insert.

        Only called when ``pre_fetch_id`` returned None.

        Args:
            connection: The persister's live connection.
            result: The result of the INSERT statement.

        Returns:
            The identifier the backend assigned, or None.
        """
        ...


@runtime_checkable
class Persister(Protocol):
    """Protocol for workflow persistence backends."""

    def create(self, instance: WorkflowInstance) -> WorkflowId:
        """Persist a new workflow instance and return its identifier."""
        ...

    def fetch(self, workflow_id: WorkflowId) -> FetchedWorkflow | None:
        """Return the persisted state of a workflow, or None if it does not exist."""
        ...

    def update(self, instance: WorkflowInstance) -> None:
        """Persist the current state of a workflow instance."""
        ...

    def create_history(
        self,
        instance: WorkflowInstance,
        entries: Sequence[HistoryEntry],
    ) -> list[HistoryEntry]:
        """Persist the unsaved history entries of a workflow instance."""
        ...

    def fetch_history(self, instance: WorkflowInstance) -> list[HistoryEntry]:
        """Return the persisted history of a workflow, most recent first."""
        ...

    def commit(self) -> None:
        """Commit the pending transaction."""
        ...

    def rollback(self) -> None:
        """Roll back the pending transaction."""
        ...

    def close(self) -> None:
        """Release the storage connection."""
        ...


@runtime_checkable
class LifecycleListener(Protocol):
    """Protocol for listeners attached to the lifecycle event stream."""

    def __call__(self, event: LifecycleEvent) -> None:
        """Handle a lifecycle event.

        Args:
            event: The event raised for a workflow instance.
        """
        ...
