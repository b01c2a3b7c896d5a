"""Lifecycle event dispatcher.

Listeners are registered per workflow type and receive every event raised
for instances of that type, in registration order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from litestar_workflow_store.core.events import LifecycleEvent
from litestar_workflow_store.core.types import LifecycleEventKind

if TYPE_CHECKING:
    from litestar_workflow_store.core.models import WorkflowInstance
    from litestar_workflow_store.core.protocols import LifecycleListener

__all__ = ["LifecycleDispatcher"]

logger = logging.getLogger(__name__)


class LifecycleDispatcher:
    """Deliver lifecycle events to the listeners of a workflow type.

    Exceptions raised by a listener are not caught: they propagate to the
    code that raised the event, and later listeners are not called.

    Attributes:
        _listeners: Map of workflow type to its listeners.
    """

    def __init__(self) -> None:
        """Initialize a dispatcher with no listeners."""
        self._listeners: dict[str, list[LifecycleListener]] = {}

    def add_listener(self, workflow_type: str, listener: LifecycleListener) -> None:
        """Register a listener for a workflow type.

        Registering the same listener twice for a type has no effect.

        Args:
            workflow_type: The workflow type to listen to.
            listener: Callable receiving :class:`LifecycleEvent` objects.
        """
        listeners = self._listeners.setdefault(workflow_type, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_listener(self, workflow_type: str, listener: LifecycleListener) -> None:
        """Unregister a listener from a workflow type.

        Raises:
            KeyError: If the listener is not registered for the type.
        """
        listeners = self._listeners.get(workflow_type, [])
        if listener not in listeners:
            msg = f"Listener {listener!r} is not registered for workflow type '{workflow_type}'"
            raise KeyError(msg)
        listeners.remove(listener)

    def listeners_for(self, workflow_type: str) -> list[LifecycleListener]:
        """Return the listeners registered for a workflow type."""
        return list(self._listeners.get(workflow_type, []))

    def notify(
        self,
        workflow: WorkflowInstance,
        kind: LifecycleEventKind | str,
        new_state: str | None = None,
        factory: Any | None = None,
    ) -> LifecycleEvent:
        """Raise an event for a workflow instance.

        Args:
            workflow: The instance the event is about.
            kind: The event kind. Unknown kinds are delivered as plain strings.
            new_state: Target state of the transition, if any.
            factory: The factory raising the event.

        Returns:
            The event that was delivered.
        """
        try:
            kind = LifecycleEventKind(kind)
        except ValueError:
            kind = str(kind)
        event = LifecycleEvent(
            kind=kind,
            workflow=workflow,
            new_state=new_state,
            factory=factory,
        )
        listeners = self._listeners.get(workflow.type, [])
        logger.debug(
            "Notifying %d listener(s) of '%s' for workflow %s (%s)",
            len(listeners),
            event.kind,
            workflow.id,
            workflow.type,
        )
        for listener in list(listeners):
            listener(event)
        return event
