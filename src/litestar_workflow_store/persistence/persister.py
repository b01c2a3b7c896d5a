"""SQL persister for workflow instances and their history.

The persister owns a single SQLAlchemy connection for its whole lifetime and
maps :class:`~litestar_workflow_store.core.models.WorkflowInstance` and
:class:`~litestar_workflow_store.core.models.HistoryEntry` objects to rows of
two configurable tables. Statements are built from the tables resolved at
construction; the only backend-specific behavior is the choice of ID
generator.

When ``autocommit`` is off the connection's transaction stays open across
operations until :meth:`SQLPersister.commit` or :meth:`SQLPersister.rollback`
is called, normally by the transaction-commit listener reacting to a
lifecycle event. The persister never closes a transaction on its own.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, insert, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from litestar_workflow_store.core.models import FetchedWorkflow, HistoryEntry
from litestar_workflow_store.exceptions import ConfigurationError, PersistenceError
from litestar_workflow_store.persistence.config import PersisterConfig
from litestar_workflow_store.persistence.generators import (
    RandomIdGenerator,
    SequenceIdGenerator,
    assign_generators,
)
from litestar_workflow_store.persistence.schema import build_tables

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.engine import Connection, CursorResult, Engine
    from sqlalchemy.sql import Executable

    from litestar_workflow_store.core.models import WorkflowInstance
    from litestar_workflow_store.core.protocols import IdGenerator
    from litestar_workflow_store.core.types import WorkflowId

__all__ = ["SQLPersister"]


class SQLPersister:
    """Persist workflows and workflow history to a relational database.

    Attributes:
        config: The resolved persister configuration.
        name: Name of this persister, used for its logger.
        log: Logger handle owned by this persister.
        driver: Backend driver name used to select ID generators.
        workflow_id_generator: Generator for workflow ids.
        history_id_generator: Generator for history ids.
        tables: Workflow and history tables resolved from the configuration.

    Example:
        >>> persister = SQLPersister(PersisterConfig(dsn="sqlite://", autocommit=False))
        >>> persister.create_schema()
        >>> wf = WorkflowInstance(type="ticket", state="NEW")
        >>> persister.create(wf)
        1
        >>> persister.commit()
    """

    def __init__(
        self,
        config: PersisterConfig,
        *,
        engine: Engine | None = None,
        logger: logging.Logger | None = None,
        name: str | None = None,
    ) -> None:
        """Connect to the database and resolve generators and tables.

        Args:
            config: The persister configuration.
            engine: An existing engine to connect through instead of creating
                one from ``config.dsn``. The persister does not dispose it.
            logger: Logger to use. Defaults to a child of this module's logger.
            name: Name of the persister. Defaults to the workflow table name.

        Raises:
            ConfigurationError: If no ``dsn`` and no engine were supplied, or the
                ``dsn`` cannot be parsed.
            PersistenceError: If connecting to the database fails.
        """
        self.config = config
        self.name = name or config.workflow_table
        self.log = logger or logging.getLogger(f"{__name__}.{self.name}")
        self._owns_engine = engine is None
        self._engine = engine if engine is not None else self._create_engine()
        self._connection: Connection | None = self._connect()

        self.driver = config.driver or self._engine.dialect.name
        self.log.debug("Pulled driver '%s' from database URL", self.driver)

        self.workflow_id_generator: IdGenerator
        self.history_id_generator: IdGenerator
        self.workflow_id_generator, self.history_id_generator = assign_generators(self.driver, config)
        self.log.info(
            "Assigned workflow generator '%s'; history generator '%s'",
            type(self.workflow_id_generator).__name__,
            type(self.history_id_generator).__name__,
        )

        self.tables = build_tables(
            config,
            string_ids=isinstance(self.workflow_id_generator, RandomIdGenerator),
            sequences=isinstance(self.workflow_id_generator, SequenceIdGenerator),
        )
        self.log.info(
            "Assigned workflow table '%s'; history table '%s'",
            config.workflow_table,
            config.history_table,
        )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], **kwargs: Any) -> SQLPersister:
        """Build a persister from a loose persister declaration.

        Args:
            mapping: Persister options keyed by name (see :class:`PersisterConfig`).
            **kwargs: Passed through to the constructor.

        Returns:
            The connected persister.
        """
        return cls(PersisterConfig.from_mapping(mapping), **kwargs)

    # ------------------------------------------------------------------
    # Connection management

    def _create_engine(self) -> Engine:
        self.config.validate(require_dsn=True)
        try:
            url = make_url(self.config.dsn)  # type: ignore[arg-type]
            if self.config.user is not None:
                url = url.set(username=self.config.user)
            if self.config.password is not None:
                url = url.set(password=self.config.password)
            return create_engine(url)
        except ArgumentError as exc:
            msg = f"Invalid database URL in 'dsn': {exc}"
            raise ConfigurationError(msg) from exc

    def _connect(self) -> Connection:
        try:
            connection = self._engine.connect()
            if self.config.autocommit:
                connection = connection.execution_options(isolation_level="AUTOCOMMIT")
        except SQLAlchemyError as exc:
            raise PersistenceError("Cannot connect to database", operation="connect", cause=exc) from exc
        self.log.debug("Connected to database '%s' and assigned to persister ok", self._engine.url)
        return connection

    @property
    def connection(self) -> Connection:
        """The live connection owned by this persister.

        Raises:
            PersistenceError: If the persister has been closed.
        """
        if self._connection is None:
            raise PersistenceError("Persister has been closed", operation="connection")
        return self._connection

    @property
    def autocommit(self) -> bool:
        """Whether every write is implicitly its own transaction."""
        return self.config.autocommit

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._connection is None

    def close(self) -> None:
        """Release the connection and dispose the engine if this persister created it.

        A transaction still open when the persister is closed is rolled back
        by the connection.
        """
        if self._connection is None:
            return
        try:
            self._connection.close()
        finally:
            self._connection = None
            if self._owns_engine:
                self._engine.dispose()
        self.log.debug("Closed connection for persister '%s'", self.name)

    def __enter__(self) -> SQLPersister:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def create_schema(self) -> None:
        """Create the workflow and history tables (and sequences) if missing.

        Intended for development and tests; production schemas are expected to
        be managed by migrations.
        """
        try:
            self.tables.metadata.create_all(self.connection)
            if not self.autocommit:
                self.connection.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Cannot create schema", operation="create_schema", cause=exc) from exc

    # ------------------------------------------------------------------
    # Helpers

    def _execute(self, operation: str, statement: Executable) -> CursorResult[Any]:
        if self.log.isEnabledFor(logging.DEBUG):
            compiled = statement.compile(dialect=self._engine.dialect)  # type: ignore[attr-defined]
            self.log.debug("Will use SQL: %s", compiled)
            self.log.debug("Will use parameters: %s", compiled.params)
        try:
            return self.connection.execute(statement)
        except SQLAlchemyError as exc:
            self.log.error("Caught error during %s: %s", operation, exc)
            raise PersistenceError("Statement failed", operation=operation, cause=exc) from exc

    def _pre_fetch_id(self, operation: str, generator: IdGenerator) -> WorkflowId | None:
        try:
            return generator.pre_fetch_id(self.connection)
        except SQLAlchemyError as exc:
            raise PersistenceError("Cannot fetch ID before insert", operation=operation, cause=exc) from exc

    def _post_fetch_id(self, operation: str, generator: IdGenerator, result: CursorResult[Any]) -> WorkflowId:
        try:
            new_id = generator.post_fetch_id(self.connection, result)
        except SQLAlchemyError as exc:
            raise PersistenceError("Cannot fetch ID after insert", operation=operation, cause=exc) from exc
        if new_id is None:
            msg = f"No ID found using generator '{type(generator).__name__}'"
            raise PersistenceError(msg, operation=operation)
        return new_id

    def _format_date(self, value: datetime) -> str:
        return value.strftime(self.config.date_format)

    def _parse_date(self, value: Any) -> datetime | None:
        if value is None or isinstance(value, datetime):
            return value
        try:
            return datetime.strptime(value, self.config.date_format)
        except (TypeError, ValueError) as exc:
            msg = f"Cannot parse date {value!r} with format '{self.config.date_format}'"
            raise PersistenceError(msg, operation="parse_date", cause=exc) from exc

    # ------------------------------------------------------------------
    # Persistence implementation

    def create(self, instance: WorkflowInstance) -> WorkflowId:
        """Insert a new workflow row and assign its identifier.

        Args:
            instance: The workflow instance to persist.

        Returns:
            The identifier assigned to the instance.

        Raises:
            PersistenceError: If the insert fails or no identifier can be obtained.
        """
        id_col, type_col, state_col, update_col = self.tables.workflow_columns
        now = instance.now()
        values: dict[str, Any] = {
            type_col.name: instance.type,
            state_col.name: instance.state,
            update_col.name: self._format_date(now),
        }

        generator = self.workflow_id_generator
        workflow_id = self._pre_fetch_id("create", generator)
        if workflow_id is not None:
            values[id_col.name] = workflow_id
            self.log.debug("Got ID from pre_fetch_id: %s", workflow_id)

        result = self._execute("create", insert(self.tables.workflow).values(values))
        if workflow_id is None:
            workflow_id = self._post_fetch_id("create", generator, result)
        result.close()

        instance.assign_id(workflow_id)
        instance.last_update = now
        self.log.info("Workflow %s created ok", workflow_id)
        return workflow_id

    def fetch(self, workflow_id: WorkflowId) -> FetchedWorkflow | None:
        """Load the persisted state of a workflow.

        Args:
            workflow_id: The workflow identifier.

        Returns:
            The persisted state and last update, or None if no row matches.

        Raises:
            PersistenceError: If the query fails.
        """
        id_col, _, state_col, update_col = self.tables.workflow_columns
        stmt = select(state_col, update_col).where(id_col == workflow_id)
        row = self._execute("fetch", stmt).first()
        if row is None:
            return None
        return FetchedWorkflow(state=row[0], last_update=self._parse_date(row[1]))  # type: ignore[arg-type]

    def update(self, instance: WorkflowInstance) -> None:
        """Write the current state of a workflow and a fresh timestamp.

        Args:
            instance: The workflow instance, which must already have an id.

        Raises:
            PersistenceError: If the instance has no id or the update fails.
        """
        if instance.id is None:
            raise PersistenceError("Workflow has no id; create it before updating", operation="update")
        id_col, _, state_col, update_col = self.tables.workflow_columns
        now = instance.now()
        stmt = (
            update(self.tables.workflow)
            .where(id_col == instance.id)
            .values({state_col.name: instance.state, update_col.name: self._format_date(now)})
        )
        self._execute("update", stmt).close()
        instance.last_update = now
        self.log.info("Workflow %s updated ok", instance.id)

    def create_history(
        self,
        instance: WorkflowInstance,
        entries: Sequence[HistoryEntry],
    ) -> list[HistoryEntry]:
        """Insert the unsaved history entries of a workflow.

        Entries are processed in the order supplied. Entries already saved are
        left untouched, so repeating the call with overlapping entries inserts
        nothing twice. The first failure aborts the remaining entries.

        Args:
            instance: The owning workflow instance.
            entries: History entries, saved or not.

        Returns:
            The supplied entries, with ids set on the newly saved ones.

        Raises:
            PersistenceError: If an insert fails or no identifier can be obtained.
        """
        id_col, wf_col, action_col, desc_col, state_col, user_col, date_col = self.tables.history_columns
        generator = self.history_id_generator
        for entry in entries:
            if entry.is_saved:
                continue
            values: dict[str, Any] = {
                wf_col.name: instance.id,
                action_col.name: entry.action,
                desc_col.name: entry.description,
                state_col.name: entry.state,
                user_col.name: entry.user,
                date_col.name: self._format_date(entry.date),
            }
            history_id = self._pre_fetch_id("create_history", generator)
            if history_id is not None:
                values[id_col.name] = history_id

            result = self._execute("create_history", insert(self.tables.history).values(values))
            if history_id is None:
                history_id = self._post_fetch_id("create_history", generator, result)
            result.close()

            entry.id = history_id
            entry.workflow_id = instance.id
            entry.set_saved()
            self.log.info("Workflow history entry %s created ok", history_id)
        return list(entries)

    def fetch_history(self, instance: WorkflowInstance) -> list[HistoryEntry]:
        """Load the persisted history of a workflow, most recent first.

        Entries stored with the same date (the default format has minute
        precision) are ordered by id descending. That matches insertion order
        for sequence and auto-increment ids but not for random ids.

        Args:
            instance: The workflow instance.

        Returns:
            Saved history entries ordered by date descending; empty if none exist.

        Raises:
            PersistenceError: If the query fails.
        """
        columns = self.tables.history_columns
        stmt = select(*columns).where(columns[1] == instance.id).order_by(columns[6].desc(), columns[0].desc())
        result = self._execute("fetch_history", stmt)
        self.log.debug("Prepared and executed ok")

        history: list[HistoryEntry] = []
        for row in result:
            self.log.debug("Fetched history object '%s'", row[0])
            history.append(
                HistoryEntry(
                    id=row[0],
                    workflow_id=row[1],
                    action=row[2],
                    description=row[3],
                    state=row[4],
                    user=row[5],
                    date=self._parse_date(row[6]),  # type: ignore[arg-type]
                    is_saved=True,
                )
            )
        return history

    # ------------------------------------------------------------------
    # Transactions

    def commit(self) -> None:
        """Commit the open transaction; a no-op in autocommit mode.

        Raises:
            PersistenceError: If the commit fails.
        """
        if self.autocommit:
            return
        try:
            self.connection.commit()
        except SQLAlchemyError as exc:
            self.log.error("Caught error committing transaction: %s", exc)
            raise PersistenceError("Commit failed", operation="commit", cause=exc) from exc
        self.log.debug("Committed transaction.")

    def rollback(self) -> None:
        """Roll back the open transaction.

        In autocommit mode there is nothing to undo: a warning is logged and
        no rollback is issued.

        Raises:
            PersistenceError: If the rollback fails.
        """
        if self.autocommit:
            self.log.warning('Transaction NOT rolled back due to "autocommit" being enabled.')
            return
        try:
            self.connection.rollback()
        except SQLAlchemyError as exc:
            self.log.error("Caught error rolling back transaction: %s", exc)
            raise PersistenceError("Rollback failed", operation="rollback", cause=exc) from exc
        self.log.debug("Rolled back transaction.")
