"""Concrete data models for litestar-workflow-store.

This module provides the in-memory representations handed to and returned by
persisters: the workflow instance, its history entries, and the row snapshot
returned by ``fetch``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from litestar_workflow_store.exceptions import WorkflowStoreError

if TYPE_CHECKING:
    from litestar_workflow_store.core.types import WorkflowId

__all__ = ["FetchedWorkflow", "HistoryEntry", "WorkflowInstance"]


@dataclass
class HistoryEntry:
    """Record of one executed transition.

    Entries are created in memory as a side effect of each transition and
    written in a batch by the persister. ``is_saved`` distinguishes entries
    already durably written from entries pending a write.

    Attributes:
        workflow_id: Identifier of the owning workflow instance.
        action: Name of the action that was executed.
        description: Human-readable description of the transition.
        state: State the workflow was in when the entry was recorded.
        user: User that triggered the transition.
        date: Timestamp of the transition.
        id: Identifier assigned when the entry is persisted.
        is_saved: Whether the entry has been durably written.
    """

    workflow_id: WorkflowId | None
    action: str
    description: str
    state: str
    user: str | None
    date: datetime
    id: WorkflowId | None = None
    is_saved: bool = False

    def set_saved(self) -> None:
        """Mark the entry as durably written."""
        self.is_saved = True


@dataclass
class WorkflowInstance:
    """A workflow instance undergoing state transitions.

    Attributes:
        type: Name of the rule set governing this instance.
        state: Current state name.
        time_zone: IANA time zone used to compute timestamps at write time.
        id: Identifier assigned once, when the instance is first created in storage.
        last_update: Timestamp of the last create/update, set by the persister.
        history: History entries known in memory, saved or pending.

    Example:
        >>> wf = WorkflowInstance(type="ticket", state="NEW")
        >>> entry = wf.add_history("create", "Ticket opened", user="alice")
        >>> entry.is_saved
        False
    """

    type: str
    state: str
    time_zone: str = "UTC"
    id: WorkflowId | None = None
    last_update: datetime | None = None
    history: list[HistoryEntry] = field(default_factory=list)

    @property
    def tzinfo(self) -> ZoneInfo:
        """Resolved time zone of this instance."""
        return ZoneInfo(self.time_zone)

    def now(self) -> datetime:
        """Return the current time in the instance time zone."""
        return datetime.now(self.tzinfo)

    def assign_id(self, workflow_id: WorkflowId) -> None:
        """Set the instance identifier.

        Args:
            workflow_id: The identifier produced at creation.

        Raises:
            WorkflowStoreError: If a different identifier was already assigned.
        """
        if self.id is not None and self.id != workflow_id:
            msg = f"Workflow already has id '{self.id}'; refusing to reassign to '{workflow_id}'"
            raise WorkflowStoreError(msg)
        self.id = workflow_id
        for entry in self.history:
            if entry.workflow_id is None:
                entry.workflow_id = workflow_id

    def add_history(
        self,
        action: str,
        description: str,
        state: str | None = None,
        user: str | None = None,
    ) -> HistoryEntry:
        """Record a transition in memory.

        Args:
            action: Name of the executed action.
            description: Description of the transition.
            state: State to record; defaults to the current state.
            user: User that triggered the transition.

        Returns:
            The new, unsaved history entry.
        """
        entry = HistoryEntry(
            workflow_id=self.id,
            action=action,
            description=description,
            state=state if state is not None else self.state,
            user=user,
            date=self.now(),
        )
        self.history.append(entry)
        return entry

    def unsaved_history(self) -> list[HistoryEntry]:
        """Return the history entries still pending a write."""
        return [entry for entry in self.history if not entry.is_saved]


@dataclass(frozen=True)
class FetchedWorkflow:
    """Persisted state of a workflow instance as returned by ``fetch``.

    Attributes:
        state: Current persisted state.
        last_update: Parsed timestamp of the last write.
    """

    state: str
    last_update: datetime
