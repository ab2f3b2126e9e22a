import asyncio
import inspect
import re
from typing import Any, Callable

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient

from k8s_app.app.config.settings import Settings
from k8s_app.app.core import SERVICE_NAME
from k8s_app.app.core.errors import ConnectionLostError, DatabaseConnectionError
from k8s_app.app.infrastructure.persistence.mongo.topology_listener import TopologyStateListener
from k8s_app.app.ports.database_connection import ConnectionState, StateChangeHandler

_CREDENTIALS = re.compile(r"(://[^:/@]+):[^@/]*@")


def redact_uri(uri: str) -> str:
    """Mask the password part of a connection string."""
    return _CREDENTIALS.sub(r"\1:****@", uri)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class MongoConnection:
    """DatabaseConnection implementation using MongoDB.

    Owns one motor client. State transitions come from ``connect``/``close`` and
    from the driver's topology monitor, and are fanned out to handlers registered
    with ``on_state_change``. A failed ``connect`` is not retried.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._state = ConnectionState.DISCONNECTED
        self._client: AsyncIOMotorClient | None = None
        self._handlers: list[StateChangeHandler] = []
        self._closing = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def on_state_change(self, handler: StateChangeHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def _remove() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _remove

    async def connect(self) -> None:
        if self._state == ConnectionState.CONNECTED:
            return
        self._closing = False
        self._transition(ConnectionState.CONNECTING)
        uri = self._settings.mongo_uri
        _log(
            "db_connecting",
            uri=redact_uri(uri),
            server_selection_timeout_ms=self._settings.database_server_selection_timeout_ms,
        )
        try:
            self._client = AsyncIOMotorClient(
                uri,
                serverSelectionTimeoutMS=self._settings.database_server_selection_timeout_ms,
                socketTimeoutMS=self._settings.database_socket_timeout_ms,
                event_listeners=[
                    TopologyStateListener(asyncio.get_running_loop(), self._on_topology_changed),
                ],
            )
            await self._client.admin.command("ping")
        except Exception as e:
            logger.bind(service_name=SERVICE_NAME, event="db_connect_failed").error(
                "MongoDB Connection Error: {}", e
            )
            self._transition(ConnectionState.ERRORED, e)
            await self._release_client()
            self._transition(ConnectionState.DISCONNECTED)
            raise DatabaseConnectionError(redact_uri(uri), e) from e

        self._transition(ConnectionState.CONNECTED)
        logger.bind(service_name=SERVICE_NAME, event="db_connected").info("MongoDB Atlas Connected")

    async def close(self) -> None:
        self._closing = True
        await self._release_client()
        self._transition(ConnectionState.DISCONNECTED)

    async def _release_client(self) -> None:
        if self._client:
            res = self._client.close()
            if inspect.isawaitable(res):
                await res
            self._client = None

    def _on_topology_changed(self, available: bool, error: BaseException | None) -> None:
        # connect() owns the CONNECTING outcome; close() owns the final DISCONNECTED
        if self._closing or self._client is None or self._state == ConnectionState.CONNECTING:
            return
        if not available and self._state == ConnectionState.CONNECTED:
            self._transition(
                ConnectionState.ERRORED,
                error or ConnectionLostError("no writable server available"),
            )
            self._transition(ConnectionState.DISCONNECTED)
        elif available and self._state in (ConnectionState.DISCONNECTED, ConnectionState.ERRORED):
            self._transition(ConnectionState.CONNECTED)

    def _transition(self, state: ConnectionState, error: BaseException | None = None) -> None:
        previous = self._state
        if previous == state:
            return
        self._state = state
        _log("db_state_changed", previous=previous.value, current=state.value)
        for handler in list(self._handlers):
            try:
                handler(previous, state, error)
            except Exception as e:
                logger.exception("state change handler failed: {}", e)
