"""Tests for lifecycle events and the dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from litestar_workflow_store.core.events import LifecycleEvent
from litestar_workflow_store.core.models import WorkflowInstance
from litestar_workflow_store.core.protocols import LifecycleListener
from litestar_workflow_store.core.types import LifecycleEventKind
from litestar_workflow_store.engine.dispatcher import LifecycleDispatcher
from litestar_workflow_store.observers.commit import CommitWorkflowSave

if TYPE_CHECKING:
    from collections.abc import Callable


def _recorder(log: list[tuple[str, LifecycleEventKind]], name: str) -> Callable[[LifecycleEvent], None]:
    def listener(event: LifecycleEvent) -> None:
        log.append((name, event.kind))

    return listener


@pytest.mark.unit
class TestLifecycleEventKind:
    """Tests for LifecycleEventKind."""

    def test_values(self) -> None:
        """Test event kinds compare equal to their string names."""
        assert LifecycleEventKind.SAVE == "save"
        assert LifecycleEventKind("rollback") is LifecycleEventKind.ROLLBACK
        assert str(LifecycleEventKind.STATE_CHANGE) == "state_change"

    def test_all_kinds(self) -> None:
        """Test the full set of event kinds."""
        assert {kind.value for kind in LifecycleEventKind} == {
            "create",
            "fetch",
            "execute",
            "state_change",
            "add_history",
            "save",
            "rollback",
            "completed",
        }


@pytest.mark.unit
class TestLifecycleEvent:
    """Tests for LifecycleEvent."""

    def test_defaults(self, ticket: WorkflowInstance) -> None:
        """Test optional fields default to None and timestamp is set."""
        event = LifecycleEvent(kind=LifecycleEventKind.SAVE, workflow=ticket)

        assert event.new_state is None
        assert event.factory is None
        assert event.timestamp.tzinfo is not None


@pytest.mark.unit
class TestLifecycleDispatcher:
    """Tests for LifecycleDispatcher."""

    def test_notify_calls_listeners_in_order(self, ticket: WorkflowInstance) -> None:
        """Test listeners receive events in registration order."""
        log: list[tuple[str, LifecycleEventKind]] = []
        dispatcher = LifecycleDispatcher()
        dispatcher.add_listener("ticket", _recorder(log, "first"))
        dispatcher.add_listener("ticket", _recorder(log, "second"))

        event = dispatcher.notify(ticket, "save", new_state="DONE", factory="factory")

        assert log == [("first", LifecycleEventKind.SAVE), ("second", LifecycleEventKind.SAVE)]
        assert event.kind is LifecycleEventKind.SAVE
        assert event.workflow is ticket
        assert event.new_state == "DONE"
        assert event.factory == "factory"

    def test_listeners_are_scoped_to_type(self, ticket: WorkflowInstance) -> None:
        """Test listeners of other workflow types are not called."""
        log: list[tuple[str, LifecycleEventKind]] = []
        dispatcher = LifecycleDispatcher()
        dispatcher.add_listener("invoice", _recorder(log, "invoice"))

        dispatcher.notify(ticket, LifecycleEventKind.CREATE)

        assert log == []

    def test_duplicate_registration_ignored(self, ticket: WorkflowInstance) -> None:
        """Test registering the same listener twice delivers once."""
        log: list[tuple[str, LifecycleEventKind]] = []
        listener = _recorder(log, "only")
        dispatcher = LifecycleDispatcher()
        dispatcher.add_listener("ticket", listener)
        dispatcher.add_listener("ticket", listener)

        dispatcher.notify(ticket, LifecycleEventKind.FETCH)

        assert log == [("only", LifecycleEventKind.FETCH)]
        assert dispatcher.listeners_for("ticket") == [listener]

    def test_remove_listener(self, ticket: WorkflowInstance) -> None:
        """Test a removed listener no longer receives events."""
        log: list[tuple[str, LifecycleEventKind]] = []
        listener = _recorder(log, "gone")
        dispatcher = LifecycleDispatcher()
        dispatcher.add_listener("ticket", listener)

        dispatcher.remove_listener("ticket", listener)
        dispatcher.notify(ticket, LifecycleEventKind.SAVE)

        assert log == []
        with pytest.raises(KeyError):
            dispatcher.remove_listener("ticket", listener)

    def test_listener_error_propagates(self, ticket: WorkflowInstance) -> None:
        """Test a failing listener stops delivery and reaches the caller."""
        log: list[tuple[str, LifecycleEventKind]] = []

        def failing(event: LifecycleEvent) -> None:
            raise RuntimeError("listener failed")

        dispatcher = LifecycleDispatcher()
        dispatcher.add_listener("ticket", failing)
        dispatcher.add_listener("ticket", _recorder(log, "after"))

        with pytest.raises(RuntimeError, match="listener failed"):
            dispatcher.notify(ticket, LifecycleEventKind.SAVE)

        assert log == []

    def test_custom_kind_delivered_as_string(self, ticket: WorkflowInstance) -> None:
        """Test a kind outside LifecycleEventKind reaches listeners unchanged."""
        received: list[LifecycleEvent] = []
        dispatcher = LifecycleDispatcher()
        dispatcher.add_listener("ticket", received.append)
        dispatcher.add_listener("ticket", CommitWorkflowSave())

        event = dispatcher.notify(ticket, "approved")

        assert received == [event]
        assert event.kind == "approved"
        assert not isinstance(event.kind, LifecycleEventKind)

    def test_plain_function_satisfies_protocol(self) -> None:
        """Test a plain callable is a LifecycleListener."""
        assert isinstance(_recorder([], "x"), LifecycleListener)
