"""Diagnostic observer for database connection state changes."""
from __future__ import annotations

from loguru import logger

from k8s_app.app.core import SERVICE_NAME
from k8s_app.app.ports.database_connection import ConnectionState


def log_state_change(
    previous: ConnectionState,
    current: ConnectionState,
    error: BaseException | None,
) -> None:
    """Log connected/error/disconnected transitions. No other behaviour hangs off this."""
    log = logger.bind(service_name=SERVICE_NAME, event="db_state", previous=previous.value, current=current.value)
    if current == ConnectionState.CONNECTED:
        log.info("Mongoose connected to DB")
    elif current == ConnectionState.ERRORED:
        log.error("Mongoose connection error: {}", error)
    elif current == ConnectionState.DISCONNECTED:
        log.info("Mongoose disconnected")
