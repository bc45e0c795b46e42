"""Console spinner shown while a request is outstanding.

Runs as its own asyncio task. It only sees an on/off signal and the shared
cancellation token, never request or response data.
"""
from __future__ import annotations

import asyncio
import sys
from typing import TextIO

from goll.cancellation import CancellationToken

FRAMES = ("|", "/", "-", "\\")


class Spinner:
    def __init__(
        self,
        token: CancellationToken,
        stream: TextIO | None = None,
        interval: float = 0.1,
        enabled: bool | None = None,
    ) -> None:
        self._token = token
        self._stream = stream or sys.stdout
        self._interval = interval
        if enabled is None:
            isatty = getattr(self._stream, "isatty", None)
            enabled = bool(isatty and isatty())
        self._enabled = enabled
        self._task: asyncio.Task | None = None
        self._stopping: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self._enabled or self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._spin())

    async def stop(self) -> None:
        if self._task is None:
            return
        assert self._stopping is not None
        self._stopping.set()
        await self._task
        self._task = None

    async def _spin(self) -> None:
        assert self._stopping is not None
        i = 0
        while not self._token.cancelled and not self._stopping.is_set():
            self._stream.write("\r" + FRAMES[i % len(FRAMES)])
            self._stream.flush()
            i += 1
            try:
                await asyncio.wait_for(self._stopping.wait(), self._interval)
            except asyncio.TimeoutError:
                pass
        self._stream.write("\r \r")
        self._stream.flush()


__all__ = ["Spinner", "FRAMES"]
