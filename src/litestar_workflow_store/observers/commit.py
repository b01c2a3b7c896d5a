"""Commit or roll back the database transaction after an action.

:class:`CommitWorkflowSave` cooperates with SQL persisters running with
``autocommit`` off: after each successfully executed action the factory
raises ``save`` and the transaction is committed; when the action fails the
factory raises ``rollback`` and the transaction is rolled back.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from litestar_workflow_store.core.types import LifecycleEventKind
from litestar_workflow_store.exceptions import ConfigurationError, WorkflowStoreError

if TYPE_CHECKING:
    from litestar_workflow_store.core.events import LifecycleEvent

__all__ = ["CommitWorkflowSave"]

logger = logging.getLogger(__name__)


class CommitWorkflowSave:
    """Listener turning ``save``/``rollback`` events into commit/rollback calls.

    The listener holds no state: the persister is resolved for every event
    from the factory that raised it, keyed by the workflow type. Every other
    event kind is ignored. To change the commit policy (batching, deferred
    commit) replace this listener; neither the engine nor the persister
    needs to change.

    Example:
        >>> factory.add_listener("ticket", CommitWorkflowSave())
    """

    def __call__(self, event: LifecycleEvent) -> None:
        """Handle a lifecycle event.

        Args:
            event: The event raised for a workflow instance.

        Raises:
            ConfigurationError: If the event carries no factory to resolve the persister.
            PersistenceError: If the commit or rollback fails.
        """
        if event.kind not in (LifecycleEventKind.SAVE, LifecycleEventKind.ROLLBACK):
            return

        workflow = event.workflow
        if event.factory is None:
            msg = f"Cannot resolve persister for workflow type '{workflow.type}': event has no factory"
            raise ConfigurationError(msg)
        persister = event.factory.get_persister(workflow.type)

        committing = event.kind == LifecycleEventKind.SAVE
        try:
            if committing:
                persister.commit()
            else:
                persister.rollback()
        except WorkflowStoreError:
            logger.exception(
                "Failed to %s transaction for workflow %s",
                "commit" if committing else "roll back",
                workflow.id,
            )
            raise

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
