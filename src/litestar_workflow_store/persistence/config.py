"""Configuration for SQL persisters.

The configuration is resolved once, when a persister is constructed. Table
and column names never vary per call.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from litestar_workflow_store.exceptions import ConfigurationError

if TYPE_CHECKING:
    from litestar_workflow_store.core.protocols import IdGenerator

__all__ = [
    "DEFAULT_DATE_FORMAT",
    "DEFAULT_HISTORY_FIELDS",
    "DEFAULT_WORKFLOW_FIELDS",
    "PersisterConfig",
]

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M"
"""Minute precision, kept for deployments that never configured a format."""

DEFAULT_WORKFLOW_FIELDS: tuple[str, ...] = ("workflow_id", "type", "state", "last_update")
"""Instance columns in positional order: id, type, state, last update."""

DEFAULT_HISTORY_FIELDS: tuple[str, ...] = (
    "workflow_hist_id",
    "workflow_id",
    "action",
    "description",
    "state",
    "workflow_user",
    "history_date",
)
"""History columns in positional order: id, workflow id, action, description, state, user, date."""

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off", ""})


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    msg = f"Persister option '{name}' must be a boolean, got {value!r}"
    raise ConfigurationError(msg)


def _to_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        msg = f"Persister option '{name}' must be an integer, got {value!r}"
        raise ConfigurationError(msg) from exc


@dataclass
class PersisterConfig:
    """Configuration for a SQL persister.

    Attributes:
        dsn: SQLAlchemy database URL. Required.
        user: Optional user name merged into the URL.
        password: Optional password merged into the URL.
        date_format: strftime/strptime pattern used to render and parse timestamps.
        autocommit: Whether every write is implicitly its own transaction.
        workflow_table: Table holding workflow instances.
        history_table: Table holding workflow history.
        workflow_sequence: Sequence for workflow ids (sequence backends only).
        history_sequence: Sequence for history ids (sequence backends only).
        id_length: Length of random ids (random backend only).
        driver: Driver name overriding the one reported by the connection.
        workflow_fields: Instance column names, in positional order.
        history_fields: History column names, in positional order.
        workflow_id_generator: Explicit generator for workflow ids.
        history_id_generator: Explicit generator for history ids.

    ``autocommit`` and ``id_length`` accept the strings a declarative file
    would supply and are coerced on construction.

    Example:
        >>> config = PersisterConfig(dsn="sqlite:///workflows.db", autocommit=False)
        >>> config.workflow_table
        'workflow'
    """

    dsn: str | None = None
    user: str | None = None
    password: str | None = None
    date_format: str = DEFAULT_DATE_FORMAT
    autocommit: bool = True
    workflow_table: str = "workflow"
    history_table: str = "workflow_history"
    workflow_sequence: str = "workflow_seq"
    history_sequence: str = "workflow_history_seq"
    id_length: int = 8
    driver: str | None = None
    workflow_fields: tuple[str, ...] = DEFAULT_WORKFLOW_FIELDS
    history_fields: tuple[str, ...] = DEFAULT_HISTORY_FIELDS
    workflow_id_generator: IdGenerator | None = None
    history_id_generator: IdGenerator | None = None

    def __post_init__(self) -> None:
        self.workflow_fields = tuple(self.workflow_fields)
        self.history_fields = tuple(self.history_fields)
        self.autocommit = _to_bool("autocommit", self.autocommit)
        self.id_length = _to_int("id_length", self.id_length)
        self.validate()

    def validate(self, *, require_dsn: bool = False) -> None:
        """Check the configuration for missing or contradictory values.

        Args:
            require_dsn: Also require a ``dsn``. Persisters that are handed an
                existing engine do not need one.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        if require_dsn and not self.dsn:
            msg = (
                "Persister configuration must include key 'dsn' "
                "which maps to the database URL used to connect."
            )
            raise ConfigurationError(msg)
        if len(self.workflow_fields) != len(DEFAULT_WORKFLOW_FIELDS):
            msg = f"workflow_fields must name {len(DEFAULT_WORKFLOW_FIELDS)} columns, got {len(self.workflow_fields)}"
            raise ConfigurationError(msg)
        if len(self.history_fields) != len(DEFAULT_HISTORY_FIELDS):
            msg = f"history_fields must name {len(DEFAULT_HISTORY_FIELDS)} columns, got {len(self.history_fields)}"
            raise ConfigurationError(msg)
        if self.id_length <= 0:
            msg = f"id_length must be positive, got {self.id_length}"
            raise ConfigurationError(msg)
        if not self.workflow_table or not self.history_table:
            msg = "workflow_table and history_table must not be empty"
            raise ConfigurationError(msg)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> PersisterConfig:
        """Build a configuration from a loose persister declaration.

        String values are coerced as in the constructor (``autocommit="0"``,
        ``id_length="12"``). Empty values fall back to the
        defaults and unknown keys are ignored.

        Args:
            mapping: Persister options keyed by name.

        Returns:
            The validated configuration.

        Raises:
            ConfigurationError: If ``dsn`` is missing or a value cannot be coerced.
        """
        known = {f.name for f in fields(cls)}
        options: dict[str, Any] = {
            key: value for key, value in mapping.items() if key in known and value not in (None, "")
        }
        config = cls(**options)
        config.validate(require_dsn=True)
        return config
