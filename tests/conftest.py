"""Shared test fixtures for litestar-workflow-store test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import create_engine, text

from litestar_workflow_store.core.models import FetchedWorkflow

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from litestar_workflow_store.core.models import HistoryEntry, WorkflowInstance
    from litestar_workflow_store.persistence.config import PersisterConfig
    from litestar_workflow_store.persistence.persister import SQLPersister


class RecordingPersister:
    """In-memory persister recording every call, for listener and factory tests."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.rows: dict[int, str] = {}
        self.history: list[HistoryEntry] = []
        self.closed = False
        self._next_id = 0

    def create(self, instance: WorkflowInstance) -> int:
        self.calls.append("create")
        self._next_id += 1
        instance.assign_id(self._next_id)
        self.rows[self._next_id] = instance.state
        return self._next_id

    def fetch(self, workflow_id: int) -> FetchedWorkflow | None:
        self.calls.append("fetch")
        if workflow_id not in self.rows:
            return None
        return FetchedWorkflow(state=self.rows[workflow_id], last_update=datetime.now(timezone.utc))

    def update(self, instance: WorkflowInstance) -> None:
        self.calls.append("update")
        self.rows[instance.id] = instance.state  # type: ignore[index]

    def create_history(self, instance: WorkflowInstance, entries: Sequence[HistoryEntry]) -> list[HistoryEntry]:
        self.calls.append("create_history")
        for entry in entries:
            if not entry.is_saved:
                entry.id = len(self.history) + 1
                entry.set_saved()
                self.history.append(entry)
        return list(entries)

    def fetch_history(self, instance: WorkflowInstance) -> list[HistoryEntry]:
        self.calls.append("fetch_history")
        return sorted(self.history, key=lambda e: (e.date, e.id), reverse=True)

    def commit(self) -> None:
        self.calls.append("commit")

    def rollback(self) -> None:
        self.calls.append("rollback")

    def close(self) -> None:
        self.calls.append("close")
        self.closed = True


@pytest.fixture
def recording_persister() -> RecordingPersister:
    """Persister double recording calls."""
    return RecordingPersister()


@pytest.fixture
def ticket() -> WorkflowInstance:
    """A fresh, unpersisted ticket workflow."""
    from litestar_workflow_store.core.models import WorkflowInstance

    return WorkflowInstance(type="ticket", state="NEW", time_zone="UTC")


@pytest.fixture
def persister_config() -> PersisterConfig:
    """Transactional configuration against an in-memory SQLite database."""
    from litestar_workflow_store.persistence.config import PersisterConfig

    return PersisterConfig(dsn="sqlite://", autocommit=False)


@pytest.fixture
def persister(persister_config: PersisterConfig) -> Iterator[SQLPersister]:
    """Transactional persister with the default schema created."""
    from litestar_workflow_store.persistence.persister import SQLPersister

    persister = SQLPersister(persister_config)
    persister.create_schema()
    yield persister
    persister.close()


@pytest.fixture
def autocommit_persister() -> Iterator[SQLPersister]:
    """Autocommit persister with the default schema created."""
    from litestar_workflow_store.persistence.config import PersisterConfig
    from litestar_workflow_store.persistence.persister import SQLPersister

    persister = SQLPersister(PersisterConfig(dsn="sqlite://"))
    persister.create_schema()
    yield persister
    persister.close()


@pytest.fixture
def db_url(tmp_path: Any) -> str:
    """URL of a file-backed SQLite database shared between connections and threads."""
    return f"sqlite:///{tmp_path / 'workflows.db'}?check_same_thread=false"


@pytest.fixture
def file_persister(db_url: str) -> Iterator[SQLPersister]:
    """Transactional persister on a file database, so other connections see only committed rows."""
    from litestar_workflow_store.persistence.config import PersisterConfig
    from litestar_workflow_store.persistence.persister import SQLPersister

    persister = SQLPersister(PersisterConfig(dsn=db_url, autocommit=False))
    persister.create_schema()
    yield persister
    persister.close()


@pytest.fixture
def committed_rows(db_url: str) -> Iterator[Callable[[str], int]]:
    """Count the committed rows of a table through an independent connection."""
    engine = create_engine(db_url)

    def count(table: str) -> int:
        with engine.connect() as conn:
            return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()

    yield count
    engine.dispose()
