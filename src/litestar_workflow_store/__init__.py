"""Litestar Workflow Store - transactional persistence for workflow engines.

This package records the current state and the full transition history of
workflow instances in a relational database, and couples transaction
commit/rollback to the outcome of workflow actions.

Key Features:
    - SQL persister with configurable table and column names
    - Backend-aware ID generation (sequences, auto-increment, random ids)
    - Explicit autocommit or transactional mode
    - Lifecycle events with a commit-on-save listener
    - Litestar plugin for dependency injection and teardown

Example:
    >>> from litestar_workflow_store import (
    ...     CommitWorkflowSave,
    ...     PersisterConfig,
    ...     SQLPersister,
    ...     WorkflowFactory,
    ... )
    >>>
    >>> persister = SQLPersister(PersisterConfig(dsn="sqlite:///tickets.db", autocommit=False))
    >>> factory = WorkflowFactory()
    >>> factory.add_persister("ticket", persister)
    >>> factory.add_listener("ticket", CommitWorkflowSave())
    >>> wf = factory.create_workflow("ticket", "NEW")
"""

from __future__ import annotations

from litestar_workflow_store.__metadata__ import __project__, __version__
from litestar_workflow_store.core import (
    FetchedWorkflow,
    HistoryEntry,
    LifecycleEvent,
    LifecycleEventKind,
    WorkflowInstance,
)
from litestar_workflow_store.engine import LifecycleDispatcher, WorkflowFactory
from litestar_workflow_store.exceptions import (
    ConfigurationError,
    PersistenceError,
    WorkflowStoreError,
)
from litestar_workflow_store.observers import CommitWorkflowSave
from litestar_workflow_store.persistence import PersisterConfig, SQLPersister
from litestar_workflow_store.plugin import WorkflowStorePlugin, WorkflowStorePluginConfig

__all__ = (
    "CommitWorkflowSave",
    "ConfigurationError",
    "FetchedWorkflow",
    "HistoryEntry",
    "LifecycleDispatcher",
    "LifecycleEvent",
    "LifecycleEventKind",
    "PersistenceError",
    "PersisterConfig",
    "SQLPersister",
    "WorkflowFactory",
    "WorkflowInstance",
    "WorkflowStoreError",
    "WorkflowStorePlugin",
    "WorkflowStorePluginConfig",
    "__project__",
    "__version__",
)
