"""Database persistence layer for litestar-workflow-store.

This module provides the SQL persister, its configuration, the table
definitions built from that configuration, and the ID generators selected per
database backend.
"""

from __future__ import annotations

from litestar_workflow_store.persistence.config import (
    DEFAULT_DATE_FORMAT,
    DEFAULT_HISTORY_FIELDS,
    DEFAULT_WORKFLOW_FIELDS,
    PersisterConfig,
)
from litestar_workflow_store.persistence.generators import (
    GENERATOR_REGISTRY,
    AutoGeneratedIdGenerator,
    RandomIdGenerator,
    SequenceIdGenerator,
    assign_generators,
    register_generators,
)
from litestar_workflow_store.persistence.persister import SQLPersister
from litestar_workflow_store.persistence.schema import WorkflowTables, build_tables

__all__ = [
    "DEFAULT_DATE_FORMAT",
    "DEFAULT_HISTORY_FIELDS",
    "DEFAULT_WORKFLOW_FIELDS",
    "GENERATOR_REGISTRY",
    "AutoGeneratedIdGenerator",
    "PersisterConfig",
    "RandomIdGenerator",
    "SQLPersister",
    "SequenceIdGenerator",
    "WorkflowTables",
    "assign_generators",
    "build_tables",
    "register_generators",
]
