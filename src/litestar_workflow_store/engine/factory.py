"""Workflow factory tying persisters to the lifecycle event stream.

The factory keeps one persister per workflow type and raises lifecycle events
through a :class:`~litestar_workflow_store.engine.dispatcher.LifecycleDispatcher`.
Transaction control is left to listeners: the factory raises ``save`` after
successful writes and ``rollback`` when an action or its writes fail, and
never commits on its own.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from litestar_workflow_store.core.models import WorkflowInstance
from litestar_workflow_store.core.types import LifecycleEventKind
from litestar_workflow_store.engine.dispatcher import LifecycleDispatcher
from litestar_workflow_store.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar_workflow_store.core.models import HistoryEntry
    from litestar_workflow_store.core.protocols import LifecycleListener, Persister
    from litestar_workflow_store.core.types import WorkflowId

__all__ = ["WorkflowFactory"]

logger = logging.getLogger(__name__)


class WorkflowFactory:
    """Registry of persisters per workflow type plus the action lifecycle.

    Attributes:
        dispatcher: Dispatcher delivering lifecycle events to listeners.
        _persisters: Map of workflow type to its persister.

    Example:
        >>> factory = WorkflowFactory()
        >>> factory.add_persister("ticket", persister)
        >>> factory.add_listener("ticket", CommitWorkflowSave())
        >>> wf = factory.create_workflow("ticket", "NEW")
        >>> factory.execute_action(wf, "assign", "ASSIGNED", user="alice")
    """

    def __init__(self, dispatcher: LifecycleDispatcher | None = None) -> None:
        """Initialize the factory.

        Args:
            dispatcher: Optional pre-configured dispatcher.
        """
        self.dispatcher = dispatcher or LifecycleDispatcher()
        self._persisters: dict[str, Persister] = {}

    # ------------------------------------------------------------------
    # Registration

    def add_persister(self, workflow_type: str, persister: Persister) -> None:
        """Associate a persister with a workflow type.

        Args:
            workflow_type: The workflow type.
            persister: The persister storing instances of that type.
        """
        self._persisters[workflow_type] = persister

    def get_persister(self, workflow_type: str) -> Persister:
        """Return the persister for a workflow type.

        Raises:
            ConfigurationError: If no persister is registered for the type.
        """
        if workflow_type not in self._persisters:
            msg = f"No persister registered for workflow type '{workflow_type}'"
            raise ConfigurationError(msg)
        return self._persisters[workflow_type]

    def list_types(self) -> list[str]:
        """Return the workflow types with a registered persister."""
        return sorted(self._persisters)

    def add_listener(self, workflow_type: str, listener: LifecycleListener) -> None:
        """Register a lifecycle listener for a workflow type."""
        self.dispatcher.add_listener(workflow_type, listener)

    def notify(
        self,
        workflow: WorkflowInstance,
        kind: LifecycleEventKind | str,
        new_state: str | None = None,
    ) -> None:
        """Raise a lifecycle event for a workflow instance."""
        self.dispatcher.notify(workflow, kind, new_state=new_state, factory=self)

    # ------------------------------------------------------------------
    # Lifecycle

    def create_workflow(self, workflow_type: str, state: str, time_zone: str = "UTC") -> WorkflowInstance:
        """Create and persist a new workflow instance.

        The instance row and an initial history entry are written, then
        ``create`` and ``save`` are raised. If a write or a ``create``
        listener fails ``rollback`` is raised and the error propagates.

        Args:
            workflow_type: The workflow type.
            state: The initial state.
            time_zone: IANA time zone of the instance.

        Returns:
            The persisted instance.
        """
        persister = self.get_persister(workflow_type)
        workflow = WorkflowInstance(type=workflow_type, state=state, time_zone=time_zone)
        try:
            persister.create(workflow)
            workflow.add_history("Create workflow", "Create new workflow")
            persister.create_history(workflow, workflow.unsaved_history())
            self.notify(workflow, LifecycleEventKind.CREATE)
        except Exception:
            self.notify(workflow, LifecycleEventKind.ROLLBACK)
            raise
        self.notify(workflow, LifecycleEventKind.SAVE)
        return workflow

    def fetch_workflow(
        self,
        workflow_type: str,
        workflow_id: WorkflowId,
        time_zone: str = "UTC",
    ) -> WorkflowInstance | None:
        """Load a workflow instance from its persister.

        History is not loaded; use :meth:`fetch_history`.

        Args:
            workflow_type: The workflow type.
            workflow_id: The workflow identifier.
            time_zone: IANA time zone for the loaded instance.

        Returns:
            The instance, or None if it does not exist.
        """
        fetched = self.get_persister(workflow_type).fetch(workflow_id)
        if fetched is None:
            return None
        workflow = WorkflowInstance(
            type=workflow_type,
            state=fetched.state,
            time_zone=time_zone,
            id=workflow_id,
            last_update=fetched.last_update,
        )
        self.notify(workflow, LifecycleEventKind.FETCH)
        return workflow

    def fetch_history(self, workflow: WorkflowInstance) -> list[HistoryEntry]:
        """Return the persisted history of a workflow, most recent first."""
        return self.get_persister(workflow.type).fetch_history(workflow)

    def save_workflow(self, workflow: WorkflowInstance) -> None:
        """Write the instance state and its unsaved history entries.

        No event is raised and nothing is committed here.
        """
        persister = self.get_persister(workflow.type)
        persister.update(workflow)
        persister.create_history(workflow, workflow.unsaved_history())

    def execute_action(
        self,
        workflow: WorkflowInstance,
        action: str,
        new_state: str,
        *,
        description: str = "",
        user: str | None = None,
        handler: Callable[[WorkflowInstance], Any] | None = None,
    ) -> Any:
        """Execute an action and persist the resulting transition.

        On success a history entry is recorded, the instance moves to
        ``new_state`` and is saved, then ``execute``, ``state_change`` and
        ``save`` are raised. On any failure of the handler, the writes or an
        ``execute`` / ``state_change`` listener ``rollback`` is raised and the
        original error propagates. The
        in-memory instance may then hold a state that was never committed.

        Args:
            workflow: The workflow instance.
            action: Name of the action.
            new_state: State to move to on success.
            description: Description recorded in the history entry.
            user: User executing the action.
            handler: Callable performing the action's work.

        Returns:
            Whatever the handler returned.
        """
        old_state = workflow.state
        try:
            result = handler(workflow) if handler is not None else None
            workflow.add_history(action, description or f"Executed action '{action}'", state=old_state, user=user)
            workflow.state = new_state
            self.save_workflow(workflow)
            self.notify(workflow, LifecycleEventKind.EXECUTE, new_state=new_state)
            if new_state != old_state:
                self.notify(workflow, LifecycleEventKind.STATE_CHANGE, new_state=new_state)
        except Exception:
            logger.warning("Action '%s' failed for workflow %s; rolling back", action, workflow.id)
            self.notify(workflow, LifecycleEventKind.ROLLBACK, new_state=new_state)
            raise

        self.notify(workflow, LifecycleEventKind.SAVE, new_state=new_state)
        return result

    def close(self) -> None:
        """Close every registered persister once."""
        seen: set[int] = set()
        for persister in self._persisters.values():
            if id(persister) in seen:
                continue
            seen.add(id(persister))
            persister.close()
