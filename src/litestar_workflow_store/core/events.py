"""Lifecycle events raised after a workflow action executes.

Events are delivered to listeners registered for the workflow's type. The
transaction-commit listener reacts to ``save`` and ``rollback``; other kinds
are available for logging, monitoring or triggering side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from litestar_workflow_store.core.models import WorkflowInstance
    from litestar_workflow_store.core.types import LifecycleEventKind

__all__ = ["LifecycleEvent"]


@dataclass
class LifecycleEvent:
    """A notification raised for a workflow instance.

    Attributes:
        kind: What happened (``save``, ``rollback``, ...). Kinds outside
            :class:`LifecycleEventKind` are kept as plain strings.
        workflow: The workflow instance the event was raised for.
        new_state: Target state of the transition, if any.
        factory: The factory that raised the event; listeners use it to
            resolve collaborators such as the persister for the workflow type.
        timestamp: When the event was raised.

    Example:
        >>> event = LifecycleEvent(
        ...     kind=LifecycleEventKind.SAVE,
        ...     workflow=WorkflowInstance(type="ticket", state="NEW"),
        ... )
    """

    kind: LifecycleEventKind | str
    workflow: WorkflowInstance
    new_state: str | None = None
    factory: Any | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
