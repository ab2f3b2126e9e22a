"""HTTP listener: uvicorn server run as a task on the service's event loop."""
from __future__ import annotations

import asyncio
import contextlib
import socket
from typing import Any, Iterator

import uvicorn
from fastapi import FastAPI
from loguru import logger

from k8s_app.app.core import SERVICE_NAME
from k8s_app.app.core.errors import ListenerStartError


class _Server(uvicorn.Server):
    """uvicorn server that leaves signal handling to ShutdownSignal and reports bind failures as exceptions."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        pass

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        # uvicorn calls sys.exit() when it cannot bind, which would bypass the caller
        try:
            await super().startup(sockets=sockets)
        except SystemExit as e:
            raise ListenerStartError(f"could not bind {self.config.host}:{self.config.port}") from e


class HttpListener:
    def __init__(self, app: FastAPI, *, host: str, port: int, log_level: str = "info") -> None:
        # log_config=None: uvicorn's loggers are routed through loguru by configure_logging
        self._config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level=log_level.lower(),
            log_config=None,
            lifespan="off",
        )
        self._server = _Server(self._config)
        self._task: asyncio.Task[Any] | None = None

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._config.port

    @property
    def started(self) -> bool:
        return self._server.started

    async def start(self) -> None:
        """Bind the socket and return once the server accepts connections.

        Raises ListenerStartError when the socket cannot be bound.
        """
        self._task = asyncio.create_task(self._server.serve())
        while not self._server.started:
            if self._task.done():
                task, self._task = self._task, None
                task.result()
                raise ListenerStartError(f"listener exited before binding {self.host}:{self.port}")
            await asyncio.sleep(0.05)
        logger.bind(service_name=SERVICE_NAME, event="listener_started", host=self.host, port=self.port).info(
            "Server started on port {}", self.port
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._server.should_exit = True
        try:
            await self._task
        finally:
            self._task = None
            logger.bind(service_name=SERVICE_NAME, event="listener_stopped").info("")
