"""Lifecycle coordination for workflow instances.

This module provides the dispatcher delivering lifecycle events to listeners
and the factory that ties persisters to those events.
"""

from __future__ import annotations

from litestar_workflow_store.engine.dispatcher import LifecycleDispatcher
from litestar_workflow_store.engine.factory import WorkflowFactory

__all__ = [
    "LifecycleDispatcher",
    "WorkflowFactory",
]
