"""Lifecycle listeners shipped with litestar-workflow-store."""

from __future__ import annotations

from litestar_workflow_store.observers.commit import CommitWorkflowSave

__all__ = ["CommitWorkflowSave"]
