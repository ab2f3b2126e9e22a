"""Database connection factory: selects implementation from config. Only place that imports concrete connections."""
from __future__ import annotations

from k8s_app.app.config.settings import Settings
from k8s_app.app.infrastructure.persistence.mongo.mongo_connection import MongoConnection
from k8s_app.app.ports.database_connection import DatabaseConnection


def create_database_connection(settings: Settings) -> DatabaseConnection:
    backend = settings.database_backend.strip().lower()

    if backend in ("mongo", "mongodb"):
        return MongoConnection(settings)

    raise ValueError(f"Unsupported database backend: {backend}")
