"""Exception hierarchy for litestar-workflow-store."""

from __future__ import annotations

__all__ = (
    "ConfigurationError",
    "PersistenceError",
    "WorkflowStoreError",
)


class WorkflowStoreError(Exception):
    """Base exception for all litestar-workflow-store errors.

    All exceptions raised by litestar-workflow-store inherit from this class.
    This allows users to catch all persistence-related errors with a single except clause.
    """


class ConfigurationError(WorkflowStoreError):
    """Raised when required configuration is missing or contradictory.

    This is raised while a persister, generator or factory is being set up,
    e.g. when no ``dsn`` was supplied or a workflow type has no persister.
    It is fatal to startup and never recovered automatically.
    """


class PersistenceError(WorkflowStoreError):
    """Raised when the storage layer fails.

    Covers connection failures, statement failures, commit and rollback failures,
    and ID generators that could not produce an identifier. The underlying
    exception is kept on ``cause`` and chained as ``__cause__``.

    Attributes:
        operation: Name of the persister operation that failed.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        """Initialize the exception with failure details.

        Args:
            message: Human-readable description of the failure.
            operation: Name of the persister operation that failed.
            cause: The underlying exception that caused the failure, if any.
        """
        self.operation = operation
        self.cause = cause
        msg = message
        if operation:
            msg = f"{operation}: {msg}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
        if cause is not None:
            self.__cause__ = cause
