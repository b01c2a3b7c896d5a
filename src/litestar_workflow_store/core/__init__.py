"""Core domain module for litestar-workflow-store.

This module exports the data models, lifecycle events, protocols and types
shared by persisters, listeners and the factory.
"""

from __future__ import annotations

from litestar_workflow_store.core.events import LifecycleEvent
from litestar_workflow_store.core.models import FetchedWorkflow, HistoryEntry, WorkflowInstance
from litestar_workflow_store.core.protocols import IdGenerator, LifecycleListener, Persister
from litestar_workflow_store.core.types import LifecycleEventKind, WorkflowId

__all__ = [
    "FetchedWorkflow",
    "HistoryEntry",
    "IdGenerator",
    "LifecycleEvent",
    "LifecycleEventKind",
    "LifecycleListener",
    "Persister",
    "WorkflowId",
    "WorkflowInstance",
]
