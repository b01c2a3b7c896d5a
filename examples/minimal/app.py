"""Minimal example of litestar-workflow-store integration.

This example keeps support tickets in a SQLite database. Every action runs
inside one transaction that is committed when the action succeeds and rolled
back when it fails.

Run with:
    cd examples/minimal
    litestar run

Or:
    uvicorn app:app --reload
"""

from __future__ import annotations

import logging
from typing import Any

from litestar import Controller, Litestar, get, post
from litestar.exceptions import ClientException, NotFoundException

from litestar_workflow_store import (
    PersisterConfig,
    WorkflowFactory,
    WorkflowInstance,
    WorkflowStorePlugin,
    WorkflowStorePluginConfig,
)

# =============================================================================
# Transitions
# =============================================================================

TRANSITIONS: dict[tuple[str, str], str] = {
    ("NEW", "assign"): "ASSIGNED",
    ("ASSIGNED", "resolve"): "RESOLVED",
    ("RESOLVED", "reopen"): "ASSIGNED",
    ("RESOLVED", "close"): "CLOSED",
}
"""Map of (current state, action) to the resulting state."""


def _ticket_to_dict(ticket: WorkflowInstance) -> dict[str, Any]:
    return {
        "id": ticket.id,
        "state": ticket.state,
        "last_update": ticket.last_update.isoformat() if ticket.last_update else None,
    }


# =============================================================================
# API Controller
# =============================================================================


class TicketController(Controller):
    """REST API for support tickets."""

    path = "/tickets"
    tags = ["Tickets"]

    @post("/")
    async def open_ticket(self, workflow_factory: WorkflowFactory) -> dict[str, Any]:
        """Open a new ticket."""
        ticket = workflow_factory.create_workflow("ticket", "NEW")
        return _ticket_to_dict(ticket)

    @get("/{ticket_id:int}")
    async def get_ticket(self, ticket_id: int, workflow_factory: WorkflowFactory) -> dict[str, Any]:
        """Get a ticket and its history, most recent first."""
        ticket = workflow_factory.fetch_workflow("ticket", ticket_id)
        if ticket is None:
            raise NotFoundException(f"Ticket {ticket_id} not found")
        result = _ticket_to_dict(ticket)
        result["history"] = [
            {
                "action": entry.action,
                "description": entry.description,
                "state": entry.state,
                "user": entry.user,
                "date": entry.date.isoformat(),
            }
            for entry in workflow_factory.fetch_history(ticket)
        ]
        return result

    @post("/{ticket_id:int}/{action:str}")
    async def run_action(
        self,
        ticket_id: int,
        action: str,
        data: dict[str, Any],
        workflow_factory: WorkflowFactory,
    ) -> dict[str, Any]:
        """Execute an action on a ticket."""
        ticket = workflow_factory.fetch_workflow("ticket", ticket_id)
        if ticket is None:
            raise NotFoundException(f"Ticket {ticket_id} not found")
        new_state = TRANSITIONS.get((ticket.state, action))
        if new_state is None:
            raise ClientException(f"Action '{action}' is not allowed in state '{ticket.state}'")

        workflow_factory.execute_action(
            ticket,
            action,
            new_state,
            description=data.get("comment", ""),
            user=data.get("user"),
        )
        return _ticket_to_dict(ticket)


# =============================================================================
# Application
# =============================================================================


def create_app(dsn: str = "sqlite:///tickets.db?check_same_thread=false") -> Litestar:
    """Create the Litestar application.

    Args:
        dsn: Database URL for the ticket persister.

    Returns:
        Configured Litestar application with the workflow store plugin.
    """
    logging.basicConfig(level=logging.INFO)
    plugin_config = WorkflowStorePluginConfig(
        persisters={"ticket": PersisterConfig(dsn=dsn, autocommit=False)},
        create_schema=True,
    )
    return Litestar(
        route_handlers=[TicketController],
        plugins=[WorkflowStorePlugin(config=plugin_config)],
        debug=True,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
