"""Table definitions for workflow persistence.

Tables are built at persister construction from the configured table and
column names, so every statement is rendered from the same resolved names and
identifier quoting is left to the dialect.

Column order follows the positional field lists in
:mod:`litestar_workflow_store.persistence.config`:

- workflow: id, type, state, last_update
- workflow_history: id, workflow_id, action, description, state, user, date
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import Column, Index, Integer, MetaData, Sequence, String, Table, Text

if TYPE_CHECKING:
    from sqlalchemy.sql.type_api import TypeEngine

    from litestar_workflow_store.persistence.config import PersisterConfig

__all__ = ["WorkflowTables", "build_tables"]

# Timestamps are stored as text rendered with the configured date format.
_DATE_TYPE = String(64)


@dataclass(frozen=True)
class WorkflowTables:
    """Resolved workflow and history tables.

    Attributes:
        metadata: MetaData owning both tables (and sequences, if any).
        workflow: The workflow instance table.
        history: The workflow history table.
    """

    metadata: MetaData
    workflow: Table
    history: Table

    @property
    def workflow_columns(self) -> list[Column]:
        """Workflow columns in positional order."""
        return list(self.workflow.columns)

    @property
    def history_columns(self) -> list[Column]:
        """History columns in positional order."""
        return list(self.history.columns)


def build_tables(
    config: PersisterConfig,
    *,
    string_ids: bool = False,
    sequences: bool = False,
) -> WorkflowTables:
    """Build the workflow and history tables from a configuration.

    Args:
        config: Persister configuration supplying table and column names.
        string_ids: Use string primary keys (random id backends) instead of integers.
        sequences: Also declare the configured sequences so ``create_all`` emits them.

    Returns:
        The resolved tables.
    """
    metadata = MetaData()
    id_type: TypeEngine = String(max(config.id_length, 32)) if string_ids else Integer()

    wf_id, wf_type, wf_state, wf_update = config.workflow_fields
    workflow = Table(
        config.workflow_table,
        metadata,
        Column(wf_id, id_type, primary_key=True, autoincrement=not string_ids),
        Column(wf_type, String(50), nullable=False),
        Column(wf_state, String(30), nullable=False),
        Column(wf_update, _DATE_TYPE),
    )

    h_id, h_wf_id, h_action, h_description, h_state, h_user, h_date = config.history_fields
    history = Table(
        config.history_table,
        metadata,
        Column(h_id, id_type, primary_key=True, autoincrement=not string_ids),
        Column(h_wf_id, id_type, nullable=False),
        Column(h_action, String(25), nullable=False),
        Column(h_description, Text),
        Column(h_state, String(30), nullable=False),
        Column(h_user, String(50)),
        Column(h_date, _DATE_TYPE),
        Index(f"ix_{config.history_table}_{h_wf_id}", h_wf_id),
    )

    if sequences:
        Sequence(config.workflow_sequence, metadata=metadata)
        Sequence(config.history_sequence, metadata=metadata)

    return WorkflowTables(metadata=metadata, workflow=workflow, history=history)
