"""Exceptions raised by the service bootstrap."""
from __future__ import annotations


class ServiceError(Exception):
    """Base class for service errors."""


class DatabaseConnectionError(ServiceError):
    """The database could not be reached during startup. Fatal: the process exits non-zero."""

    def __init__(self, uri: str, cause: BaseException | None = None) -> None:
        self.uri = uri
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"could not connect to {uri}{detail}")


class ConnectionLostError(ServiceError):
    """The driver lost its writable server after startup. Logged only; the service keeps running."""


class ListenerStartError(ServiceError):
    """The HTTP listener could not bind its socket. Fatal: the process exits non-zero."""
