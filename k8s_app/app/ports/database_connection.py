"""Port: database connection lifecycle. Implementations live in infrastructure."""
from __future__ import annotations

from enum import Enum
from typing import Callable, Protocol


class ConnectionState(str, Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    ERRORED = "ERRORED"


StateChangeHandler = Callable[[ConnectionState, ConnectionState, "BaseException | None"], None]


class DatabaseConnection(Protocol):
    """Interface for DB connection lifecycle and state observation."""

    @property
    def state(self) -> ConnectionState: ...

    @property
    def ready(self) -> bool: ...

    def on_state_change(self, handler: StateChangeHandler) -> Callable[[], None]: ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...
