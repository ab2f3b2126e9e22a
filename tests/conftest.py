from __future__ import annotations

import logging
import socket
import sys
from typing import Any, Callable

import pytest
from fastapi import FastAPI
from loguru import logger

from k8s_app.app.config.settings import Settings
from k8s_app.app.core.errors import DatabaseConnectionError
from k8s_app.app.ports.database_connection import ConnectionState
from k8s_app.app.main import create_app

TEST_MONGO_URI = "mongodb://localhost:27017/test"


def make_settings(**overrides: Any) -> Settings:
    """Settings from explicit values only (keys are env var names); ignores any local .env."""
    values: dict[str, Any] = {"MONGO_URI": TEST_MONGO_URI}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeDatabase:
    """Implements DatabaseConnection for tests. Full protocol so connect/close/observers work for callers."""

    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self._state = ConnectionState.DISCONNECTED
        self._handlers: list[Callable[..., None]] = []
        self._fail_with = fail_with
        self.connect_calls = 0
        self.close_calls = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def on_state_change(self, handler: Callable[..., None]) -> Callable[[], None]:
        self._handlers.append(handler)
        return lambda: self._handlers.remove(handler)

    def set_state(self, state: ConnectionState, error: BaseException | None = None) -> None:
        previous = self._state
        if previous == state:
            return
        self._state = state
        for handler in list(self._handlers):
            handler(previous, state, error)

    async def connect(self) -> None:
        self.connect_calls += 1
        self.set_state(ConnectionState.CONNECTING)
        if self._fail_with is not None:
            self.set_state(ConnectionState.ERRORED, self._fail_with)
            self.set_state(ConnectionState.DISCONNECTED)
            raise DatabaseConnectionError("mongodb://unreachable:27017", self._fail_with)
        self.set_state(ConnectionState.CONNECTED)

    async def close(self) -> None:
        self.close_calls += 1
        self.set_state(ConnectionState.DISCONNECTED)


class FakeListener:
    """Stands in for HttpListener; records construction and start/stop calls without binding a socket."""

    def __init__(self, app: FastAPI, *, host: str, port: int, log_level: str = "info") -> None:
        self.app = app
        self.host = host
        self.port = port
        self.log_level = log_level
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True


class ListenerFactory:
    def __init__(self) -> None:
        self.created: list[FakeListener] = []

    def __call__(self, app: FastAPI, **kwargs: Any) -> FakeListener:
        listener = FakeListener(app, **kwargs)
        self.created.append(listener)
        return listener


@pytest.fixture()
def fake_database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture()
def listener_factory() -> ListenerFactory:
    return ListenerFactory()


@pytest.fixture()
def test_app(fake_database: FakeDatabase) -> FastAPI:
    return create_app(fake_database)


@pytest.fixture()
def log_messages():
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture()
def clean_env(monkeypatch, tmp_path):
    """Drop service env vars and run from an empty directory so no .env is picked up."""
    for name in (
        "MONGO_URI",
        "PORT",
        "HOST",
        "DATABASE_SERVER_SELECTION_TIMEOUT_MS",
        "DATABASE_SOCKET_TIMEOUT_MS",
        "DATABASE_BACKEND",
        "LOG_LEVEL",
        "LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def occupied_port():
    """A localhost port held by a listening socket for the duration of the test."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen()
        yield sock.getsockname()[1]


@pytest.fixture()
def restore_logging():
    """Undo sink and stdlib-handler changes made by configure_logging."""
    saved = {
        name: (logging.getLogger(name).handlers[:], logging.getLogger(name).propagate)
        for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
    }
    yield
    logger.remove()
    logger.add(sys.stderr)
    for name, (handlers, propagate) in saved.items():
        std_logger = logging.getLogger(name)
        std_logger.handlers = handlers
        std_logger.propagate = propagate
