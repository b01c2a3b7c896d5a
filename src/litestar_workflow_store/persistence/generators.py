"""Identifier generators and the backend registry that selects them.

Each generator implements the two-phase ``pre_fetch_id``/``post_fetch_id``
protocol. Which generator a persister uses is decided once, at construction,
from the backend driver name: sequence backends fetch the next value before
the insert, auto-increment backends read the assigned id after it, and any
unknown backend falls back to random string ids.
"""

from __future__ import annotations

import secrets
import string
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from litestar_workflow_store.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Connection

    from litestar_workflow_store.core.protocols import IdGenerator
    from litestar_workflow_store.core.types import WorkflowId
    from litestar_workflow_store.persistence.config import PersisterConfig

    GeneratorFactory = Callable[[PersisterConfig], tuple[IdGenerator, IdGenerator]]

__all__ = [
    "GENERATOR_REGISTRY",
    "AutoGeneratedIdGenerator",
    "RandomIdGenerator",
    "SequenceIdGenerator",
    "assign_generators",
    "register_generators",
]

POSTGRES_SEQUENCE_SELECT = "SELECT NEXTVAL('%s')"
ORACLE_SEQUENCE_SELECT = "SELECT %s.NEXTVAL FROM dual"


class SequenceIdGenerator:
    """Fetch the next value of a database sequence before inserting.

    Attributes:
        sequence_name: Name of the sequence object.
        sequence_select: SQL template with a single ``%s`` for the sequence name.
    """

    def __init__(self, sequence_name: str, sequence_select: str) -> None:
        """Initialize the generator.

        Args:
            sequence_name: Name of the sequence object.
            sequence_select: SQL template with a single ``%s`` for the sequence name.
        """
        self.sequence_name = sequence_name
        self.sequence_select = sequence_select

    def pre_fetch_id(self, connection: Connection) -> WorkflowId | None:
        sql = self.sequence_select % self.sequence_name
        return connection.execute(text(sql)).scalar()

    def post_fetch_id(self, connection: Connection, result: Any) -> WorkflowId | None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sequence_name={self.sequence_name!r})"


class AutoGeneratedIdGenerator:
    """Read the id a backend assigned to the row just inserted.

    The id is either an attribute of the insert result (``result_property``,
    e.g. ``lastrowid``) or the value of a function evaluated on the connection
    (``func_property``, e.g. ``last_insert_rowid``). Exactly one must be given.
    """

    def __init__(self, result_property: str | None = None, func_property: str | None = None) -> None:
        """Initialize the generator.

        Args:
            result_property: Attribute of the insert result holding the new id.
            func_property: SQL function returning the last id on the connection.

        Raises:
            ConfigurationError: Unless exactly one of the two is given.
        """
        if bool(result_property) == bool(func_property):
            msg = "AutoGeneratedIdGenerator needs exactly one of 'result_property' or 'func_property'"
            raise ConfigurationError(msg)
        self.result_property = result_property
        self.func_property = func_property

    def pre_fetch_id(self, connection: Connection) -> WorkflowId | None:
        return None

    def post_fetch_id(self, connection: Connection, result: Any) -> WorkflowId | None:
        if self.result_property:
            return getattr(result, self.result_property, None)
        return connection.execute(text(f"SELECT {self.func_property}()")).scalar()

    def __repr__(self) -> str:
        source = f"result_property={self.result_property!r}" if self.result_property else f"func_property={self.func_property!r}"
        return f"{type(self).__name__}({source})"


class RandomIdGenerator:
    """Generate a random alphanumeric id before inserting.

    No check against existing rows is made. At the default length of 8 the
    collision probability is accepted as negligible; it is not guaranteed.
    Random ids carry no insertion order, so history entries sharing a stored
    date come back from ``fetch_history`` in no particular order.
    """

    alphabet = string.ascii_letters + string.digits

    def __init__(self, id_length: int = 8) -> None:
        """Initialize the generator.

        Args:
            id_length: Number of characters in each id.
        """
        if id_length <= 0:
            msg = f"id_length must be positive, got {id_length}"
            raise ConfigurationError(msg)
        self.id_length = id_length

    def pre_fetch_id(self, connection: Connection) -> WorkflowId | None:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.id_length))

    def post_fetch_id(self, connection: Connection, result: Any) -> WorkflowId | None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id_length={self.id_length})"


def _sequence_generators(sequence_select: str) -> GeneratorFactory:
    def factory(config: PersisterConfig) -> tuple[IdGenerator, IdGenerator]:
        return (
            SequenceIdGenerator(config.workflow_sequence, sequence_select),
            SequenceIdGenerator(config.history_sequence, sequence_select),
        )

    return factory


def _mysql_generators(config: PersisterConfig) -> tuple[IdGenerator, IdGenerator]:
    generator = AutoGeneratedIdGenerator(result_property="lastrowid")
    return generator, generator


def _sqlite_generators(config: PersisterConfig) -> tuple[IdGenerator, IdGenerator]:
    generator = AutoGeneratedIdGenerator(func_property="last_insert_rowid")
    return generator, generator


def _random_generators(config: PersisterConfig) -> tuple[IdGenerator, IdGenerator]:
    return RandomIdGenerator(config.id_length), RandomIdGenerator(config.id_length)


GENERATOR_REGISTRY: dict[str, GeneratorFactory] = {
    "postgresql": _sequence_generators(POSTGRES_SEQUENCE_SELECT),
    "oracle": _sequence_generators(ORACLE_SEQUENCE_SELECT),
    "mysql": _mysql_generators,
    "mariadb": _mysql_generators,
    "sqlite": _sqlite_generators,
}
"""Map of lowercase driver names to generator factories."""

_DRIVER_ALIASES = {
    "pg": "postgresql",
    "postgres": "postgresql",
}


def _normalize(driver: str | None) -> str:
    name = (driver or "").strip().lower()
    return _DRIVER_ALIASES.get(name, name)


def register_generators(driver: str, factory: GeneratorFactory) -> None:
    """Register the generator factory for a backend driver.

    Args:
        driver: Driver name as reported by the SQLAlchemy dialect (case-insensitive).
        factory: Callable building the (workflow, history) generator pair from a config.

    Example:
        >>> register_generators("mssql", lambda config: (MyGen(), MyGen()))
    """
    GENERATOR_REGISTRY[_normalize(driver)] = factory


def assign_generators(driver: str | None, config: PersisterConfig) -> tuple[IdGenerator, IdGenerator]:
    """Select the workflow and history generators for a backend.

    Explicitly configured generators win. Otherwise the registry entry for the
    driver is used, and random generators when the driver is unknown.

    Args:
        driver: Driver name of the backend.
        config: The persister configuration.

    Returns:
        The (workflow, history) generator pair.
    """
    if config.workflow_id_generator is not None and config.history_id_generator is not None:
        return config.workflow_id_generator, config.history_id_generator

    factory = GENERATOR_REGISTRY.get(_normalize(driver), _random_generators)
    workflow_gen, history_gen = factory(config)
    return (
        config.workflow_id_generator or workflow_gen,
        config.history_id_generator or history_gen,
    )
