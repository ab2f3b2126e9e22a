"""Driver topology monitoring bridged onto the asyncio loop.

pymongo calls topology listeners from its monitor threads. The listener only
summarises the new topology and hands it to the loop; all state changes happen
in the loop thread.
"""
from __future__ import annotations

import asyncio
from typing import Callable

from pymongo import monitoring
from pymongo.topology_description import TopologyDescription

TopologyCallback = Callable[[bool, "BaseException | None"], None]


def summarize_topology(description: TopologyDescription) -> tuple[bool, BaseException | None]:
    """Return (writable server available, first server error reported)."""
    available = description.has_writable_server()
    error = next(
        (sd.error for sd in description.server_descriptions().values() if sd.error is not None),
        None,
    )
    return available, error


class TopologyStateListener(monitoring.TopologyListener):
    def __init__(self, loop: asyncio.AbstractEventLoop, callback: TopologyCallback) -> None:
        self._loop = loop
        self._callback = callback

    def opened(self, event: monitoring.TopologyOpenedEvent) -> None:
        pass

    def description_changed(self, event: monitoring.TopologyDescriptionChangedEvent) -> None:
        available, error = summarize_topology(event.new_description)
        self._dispatch(available, error)

    def closed(self, event: monitoring.TopologyClosedEvent) -> None:
        pass

    def _dispatch(self, available: bool, error: BaseException | None) -> None:
        if self._loop.is_closed():
            return
        try:
            self._loop.call_soon_threadsafe(self._callback, available, error)
        except RuntimeError:
            # loop closed between the check and the call
            return
