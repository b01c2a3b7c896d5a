"""Tests for the transaction-commit listener."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest

from litestar_workflow_store.core.events import LifecycleEvent
from litestar_workflow_store.core.types import LifecycleEventKind
from litestar_workflow_store.engine.factory import WorkflowFactory
from litestar_workflow_store.exceptions import ConfigurationError, PersistenceError
from litestar_workflow_store.observers.commit import CommitWorkflowSave

if TYPE_CHECKING:
    from conftest import RecordingPersister

    from litestar_workflow_store.core.models import WorkflowInstance
    from litestar_workflow_store.persistence.persister import SQLPersister


@pytest.fixture
def factory(recording_persister: RecordingPersister) -> WorkflowFactory:
    """Factory with the recording persister registered for tickets."""
    factory = WorkflowFactory()
    factory.add_persister("ticket", recording_persister)
    return factory


@pytest.mark.unit
class TestCommitWorkflowSave:
    """Tests for CommitWorkflowSave event handling."""

    def test_save_commits(
        self,
        factory: WorkflowFactory,
        recording_persister: RecordingPersister,
        ticket: WorkflowInstance,
    ) -> None:
        """Test a save event commits exactly once."""
        CommitWorkflowSave()(LifecycleEvent(kind=LifecycleEventKind.SAVE, workflow=ticket, factory=factory))

        assert recording_persister.calls == ["commit"]

    def test_rollback_rolls_back(
        self,
        factory: WorkflowFactory,
        recording_persister: RecordingPersister,
        ticket: WorkflowInstance,
    ) -> None:
        """Test a rollback event rolls back exactly once."""
        CommitWorkflowSave()(LifecycleEvent(kind=LifecycleEventKind.ROLLBACK, workflow=ticket, factory=factory))

        assert recording_persister.calls == ["rollback"]

    @pytest.mark.parametrize(
        "kind",
        [
            LifecycleEventKind.CREATE,
            LifecycleEventKind.FETCH,
            LifecycleEventKind.EXECUTE,
            LifecycleEventKind.STATE_CHANGE,
            LifecycleEventKind.ADD_HISTORY,
            LifecycleEventKind.COMPLETED,
            "approved",
        ],
    )
    def test_other_events_ignored(
        self,
        kind: LifecycleEventKind | str,
        factory: WorkflowFactory,
        recording_persister: RecordingPersister,
        ticket: WorkflowInstance,
    ) -> None:
        """Test every other event kind leaves the transaction alone."""
        CommitWorkflowSave()(LifecycleEvent(kind=kind, workflow=ticket, factory=factory))

        assert recording_persister.calls == []

    def test_other_events_need_no_factory(self, ticket: WorkflowInstance) -> None:
        """Test ignored events do not require a factory."""
        CommitWorkflowSave()(LifecycleEvent(kind=LifecycleEventKind.EXECUTE, workflow=ticket))

    def test_missing_factory(self, ticket: WorkflowInstance) -> None:
        """Test a save event without factory is a configuration error."""
        with pytest.raises(ConfigurationError, match="no factory"):
            CommitWorkflowSave()(LifecycleEvent(kind=LifecycleEventKind.SAVE, workflow=ticket))

    def test_unknown_workflow_type(self, factory: WorkflowFactory) -> None:
        """Test a save event for a type without persister is a configuration error."""
        from litestar_workflow_store.core.models import WorkflowInstance

        invoice = WorkflowInstance(type="invoice", state="DRAFT")

        with pytest.raises(ConfigurationError, match="invoice"):
            CommitWorkflowSave()(LifecycleEvent(kind=LifecycleEventKind.SAVE, workflow=invoice, factory=factory))

    def test_commit_failure_propagates(
        self,
        factory: WorkflowFactory,
        ticket: WorkflowInstance,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test a failing commit is logged and re-raised."""
        failing = MagicMock()
        failing.commit.side_effect = PersistenceError("Commit failed", operation="commit")
        factory.add_persister("ticket", failing)

        with caplog.at_level(logging.ERROR), pytest.raises(PersistenceError, match="Commit failed"):
            CommitWorkflowSave()(LifecycleEvent(kind=LifecycleEventKind.SAVE, workflow=ticket, factory=factory))

        assert "Failed to commit transaction" in caplog.text

    def test_repr(self) -> None:
        """Test the listener repr."""
        assert repr(CommitWorkflowSave()) == "CommitWorkflowSave()"


@pytest.mark.integration
class TestCommitWorkflowSaveWithDatabase:
    """Tests for the listener driving a real transactional persister."""

    def test_save_then_rollback(self, persister: SQLPersister, ticket: WorkflowInstance) -> None:
        """Test committed writes survive a later rollback of new writes."""
        factory = WorkflowFactory()
        factory.add_persister("ticket", persister)
        listener = CommitWorkflowSave()

        persister.create(ticket)
        listener(LifecycleEvent(kind=LifecycleEventKind.SAVE, workflow=ticket, factory=factory))
        ticket.state = "ASSIGNED"
        persister.update(ticket)
        listener(LifecycleEvent(kind=LifecycleEventKind.ROLLBACK, workflow=ticket, factory=factory))

        fetched = persister.fetch(ticket.id)  # type: ignore[arg-type]
        assert fetched is not None
        assert fetched.state == "NEW"
