"""
Composition root: single place where concrete implementations are wired.

Builds settings and the database connection from config and provides the
connect/close lifecycle used by the process entry point. No DI container
library, explicit wiring only.
"""
from __future__ import annotations

from typing import Callable

from k8s_app.app.config.settings import Settings
from k8s_app.app.infrastructure.persistence.factory import create_database_connection
from k8s_app.app.infrastructure.persistence.mongo.observers import log_state_change
from k8s_app.app.ports.database_connection import DatabaseConnection


class ServiceDependencies:
    """Holds wired dependencies and their lifecycle. Built only in composition root."""

    def __init__(self, *, settings: Settings, database: DatabaseConnection) -> None:
        self._settings = settings
        self._database = database
        self._database_connected = False
        self._unsubscribe: Callable[[], None] | None = database.on_state_change(log_state_change)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def database(self) -> DatabaseConnection:
        return self._database

    async def connect(self) -> None:
        await self._database.connect()
        self._database_connected = True

    async def close(self) -> None:
        if self._database_connected:
            await self._database.close()
            self._database_connected = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


def create_service_dependencies(settings: Settings | None = None) -> ServiceDependencies:
    """
    Composition root: build all service dependencies in one place.
    Caller owns lifecycle (connect/close). The database backend is selected
    from settings (database_backend).
    """
    _settings = settings or Settings()
    database = create_database_connection(_settings)

    return ServiceDependencies(settings=_settings, database=database)
