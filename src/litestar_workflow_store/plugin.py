"""Litestar plugin for workflow persistence.

This module provides the WorkflowStorePlugin, which builds a
:class:`~litestar_workflow_store.engine.factory.WorkflowFactory` with one SQL
persister per configured workflow type, injects it into route handlers and
closes every persister when the application shuts down.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from litestar_workflow_store.engine.factory import WorkflowFactory
from litestar_workflow_store.observers.commit import CommitWorkflowSave
from litestar_workflow_store.persistence.persister import SQLPersister

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

    from litestar_workflow_store.persistence.config import PersisterConfig

__all__ = ["WorkflowStorePlugin", "WorkflowStorePluginConfig"]


@dataclass
class WorkflowStorePluginConfig:
    """Configuration for the WorkflowStorePlugin.

    Attributes:
        factory: Optional pre-configured WorkflowFactory. If not provided,
            a new one will be created.
        persisters: Map of workflow type to persister configuration. One
            :class:`SQLPersister` is created per entry on app startup.
        commit_on_save: Attach a :class:`CommitWorkflowSave` listener to every
            configured workflow type. Defaults to True.
        create_schema: Create missing tables when the persisters are built.
            Meant for development. Defaults to False.
        dependency_key_factory: The key used for dependency injection of
            the WorkflowFactory. Defaults to "workflow_factory".
    """

    factory: WorkflowFactory | None = None
    persisters: dict[str, PersisterConfig] = field(default_factory=dict)
    commit_on_save: bool = True
    create_schema: bool = False
    dependency_key_factory: str = "workflow_factory"


class WorkflowStorePlugin(InitPluginProtocol):
    """Litestar plugin for workflow persistence.

    Example:
        Basic usage::

            from litestar import Litestar, post
            from litestar_workflow_store import (
                PersisterConfig,
                WorkflowFactory,
                WorkflowStorePlugin,
                WorkflowStorePluginConfig,
            )


            @post("/tickets")
            async def open_ticket(workflow_factory: WorkflowFactory) -> dict:
                wf = workflow_factory.create_workflow("ticket", "NEW")
                return {"id": wf.id, "state": wf.state}


            app = Litestar(
                route_handlers=[open_ticket],
                plugins=[
                    WorkflowStorePlugin(
                        config=WorkflowStorePluginConfig(
                            persisters={
                                "ticket": PersisterConfig(dsn="sqlite:///tickets.db", autocommit=False),
                            }
                        )
                    )
                ],
            )
    """

    __slots__ = ("_config", "_factory")

    def __init__(self, config: WorkflowStorePluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or WorkflowStorePluginConfig()
        self._factory: WorkflowFactory | None = None

    @property
    def factory(self) -> WorkflowFactory:
        """Get the workflow factory.

        Returns:
            The WorkflowFactory instance.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._factory is None:
            msg = "WorkflowStorePlugin has not been initialized. Access factory after app startup."
            raise RuntimeError(msg)
        return self._factory

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin when the Litestar app starts.

        This method:
        1. Creates or uses the provided WorkflowFactory
        2. Creates a persister for every configured workflow type
        3. Attaches the commit listener when ``commit_on_save`` is set
        4. Adds the factory dependency provider
        5. Registers a shutdown hook closing all persisters

        If building a persister fails, every persister registered on the factory
        so far is closed before the error propagates.

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        self._factory = self._config.factory or WorkflowFactory()

        try:
            for workflow_type, persister_config in self._config.persisters.items():
                persister = SQLPersister(persister_config, name=workflow_type)
                self._factory.add_persister(workflow_type, persister)
                if self._config.create_schema:
                    persister.create_schema()
                if self._config.commit_on_save:
                    self._factory.add_listener(workflow_type, CommitWorkflowSave())
        except Exception:
            self._factory.close()
            raise

        def provide_factory() -> WorkflowFactory:
            return self._factory  # type: ignore[return-value]

        app_config.dependencies[self._config.dependency_key_factory] = Provide(
            provide_factory,
            sync_to_thread=False,
        )
        app_config.on_shutdown.append(self._on_shutdown)

        return app_config

    def _on_shutdown(self) -> None:
        if self._factory is not None:
            self._factory.close()
