"""Tests for workflow instance and history entry models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from litestar_workflow_store.core.models import FetchedWorkflow, HistoryEntry, WorkflowInstance
from litestar_workflow_store.exceptions import WorkflowStoreError


@pytest.mark.unit
class TestHistoryEntry:
    """Tests for HistoryEntry."""

    def test_new_entry_is_unsaved(self) -> None:
        """Test an entry starts unsaved and without id."""
        entry = HistoryEntry(
            workflow_id=1,
            action="assign",
            description="Assigned to alice",
            state="NEW",
            user="bob",
            date=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        )

        assert entry.id is None
        assert entry.is_saved is False

    def test_set_saved(self) -> None:
        """Test set_saved flips the saved flag."""
        entry = HistoryEntry(1, "close", "", "OPEN", None, datetime.now(timezone.utc))

        entry.set_saved()

        assert entry.is_saved is True


@pytest.mark.unit
class TestWorkflowInstance:
    """Tests for WorkflowInstance."""

    def test_defaults(self, ticket: WorkflowInstance) -> None:
        """Test a new instance has no id, timestamp or history."""
        assert ticket.id is None
        assert ticket.last_update is None
        assert ticket.history == []
        assert ticket.time_zone == "UTC"

    def test_now_uses_time_zone(self) -> None:
        """Test now() is aware and expressed in the instance time zone."""
        wf = WorkflowInstance(type="ticket", state="NEW", time_zone="Europe/Berlin")

        now = wf.now()

        assert now.tzinfo is not None
        assert str(now.tzinfo) == "Europe/Berlin"

    def test_add_history_defaults_to_current_state(self, ticket: WorkflowInstance) -> None:
        """Test add_history records the current state when none is given."""
        entry = ticket.add_history("assign", "Assigned", user="alice")

        assert entry.state == "NEW"
        assert entry.user == "alice"
        assert entry.workflow_id is None
        assert entry.date.tzinfo is not None
        assert ticket.history == [entry]

    def test_add_history_explicit_state(self, ticket: WorkflowInstance) -> None:
        """Test add_history keeps an explicitly supplied state."""
        entry = ticket.add_history("close", "Closed", state="OPEN")

        assert entry.state == "OPEN"

    def test_assign_id_fills_pending_history(self, ticket: WorkflowInstance) -> None:
        """Test assign_id propagates the id to entries recorded before creation."""
        entry = ticket.add_history("create", "Created")

        ticket.assign_id(7)

        assert ticket.id == 7
        assert entry.workflow_id == 7

    def test_assign_same_id_twice(self, ticket: WorkflowInstance) -> None:
        """Test reassigning the same id is accepted."""
        ticket.assign_id(3)
        ticket.assign_id(3)

        assert ticket.id == 3

    def test_reassign_different_id_rejected(self, ticket: WorkflowInstance) -> None:
        """Test the id cannot change once assigned."""
        ticket.assign_id(3)

        with pytest.raises(WorkflowStoreError, match="refusing to reassign"):
            ticket.assign_id(4)

        assert ticket.id == 3

    def test_unsaved_history(self, ticket: WorkflowInstance) -> None:
        """Test unsaved_history skips saved entries and keeps order."""
        first = ticket.add_history("a", "first")
        second = ticket.add_history("b", "second")
        third = ticket.add_history("c", "third")
        second.set_saved()

        assert ticket.unsaved_history() == [first, third]


@pytest.mark.unit
class TestFetchedWorkflow:
    """Tests for FetchedWorkflow."""

    def test_is_immutable(self) -> None:
        """Test the fetched snapshot cannot be modified."""
        from dataclasses import FrozenInstanceError

        fetched = FetchedWorkflow(state="OPEN", last_update=datetime(2024, 1, 1, 9, 30))

        with pytest.raises(FrozenInstanceError):
            fetched.state = "CLOSED"  # type: ignore[misc]
