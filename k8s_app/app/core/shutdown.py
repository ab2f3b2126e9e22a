"""Process shutdown signal.

Turns SIGINT/SIGTERM into an ``asyncio.Event`` that the main flow awaits, so the
release sequence (listener stop, database close) runs in ordinary control flow
instead of inside a signal handler.
"""
from __future__ import annotations

import asyncio
import signal
from typing import Any

from loguru import logger

from k8s_app.app.core import SERVICE_NAME

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class ShutdownSignal:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._signal_name: str | None = None
        self._installed: list[signal.Signals] = []

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    @property
    def signal_name(self) -> str | None:
        return self._signal_name

    def request(self, signal_name: str = "manual") -> None:
        if self._event.is_set():
            return
        self._signal_name = signal_name
        _log("shutdown_signal", signal=signal_name)
        self._event.set()

    def install(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Route SIGINT/SIGTERM on the running loop to ``request``."""
        loop = loop or asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request, sig.name)
            except NotImplementedError:
                continue
            self._installed.append(sig)

    def uninstall(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        loop = loop or asyncio.get_running_loop()
        while self._installed:
            loop.remove_signal_handler(self._installed.pop())

    async def wait(self) -> str | None:
        await self._event.wait()
        return self._signal_name
