"""Run-wide cancellation: one token, cancelled at most once.

``CancellationController`` bridges SIGINT/SIGTERM to a shared
``CancellationToken``. The first signal cancels the token and removes the
handlers, so a second signal gets the default behaviour (KeyboardInterrupt
for SIGINT, termination for SIGTERM).

Usage (inside a running event loop)::

    with CancellationController() as token:
        await runner.run(token, folders)
"""
from __future__ import annotations

import asyncio
import logging
import signal
from threading import RLock
from typing import Any, Dict, Iterable, List

from goll.errors import CancellationError

logger = logging.getLogger(__name__)


def _default_signals() -> tuple[int, ...]:
    sigs = [signal.SIGINT]
    if hasattr(signal, "SIGTERM"):
        sigs.append(signal.SIGTERM)
    return tuple(sigs)


class CancellationToken:
    """Shared, cancel-once flag observable from coroutines."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._lock = RLock()

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._reason is not None

    @property
    def reason(self) -> str | None:
        with self._lock:
            return self._reason

    def cancel(self, reason: str = "interrupted") -> bool:
        """Cancel the token. Returns False if it was already cancelled."""
        with self._lock:
            if self._reason is not None:
                return False
            self._reason = reason
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise CancellationError(reason=self._reason or "interrupted")


class CancellationController:
    def __init__(
        self,
        signals: Iterable[int] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self._signals = (
            tuple(signals) if signals is not None else _default_signals()
        )
        self.token = token or CancellationToken()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._installed: List[int] = []
        # Signals installed via signal.signal (no loop support) -> old handler
        self._previous: Dict[int, Any] = {}

    def install(
        self, loop: asyncio.AbstractEventLoop | None = None
    ) -> CancellationToken:
        self._loop = loop or asyncio.get_running_loop()
        for sig in self._signals:
            try:
                self._loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                # add_signal_handler is unavailable on Windows loops
                self._install_fallback(sig)
            else:
                self._installed.append(sig)
        return self.token

    def _install_fallback(self, sig: int) -> None:
        loop = self._loop
        assert loop is not None

        def _handler(signum: int, _frame: Any) -> None:
            loop.call_soon_threadsafe(self._on_signal, signum)

        try:
            self._previous[sig] = signal.signal(sig, _handler)
        except ValueError:
            logger.debug("cannot install handler for signal %s", sig)
            return
        self._installed.append(sig)

    def _on_signal(self, sig: int) -> None:
        if self.token.cancel("interrupted"):
            logger.warning(
                "received %s, cancelling run", signal.Signals(sig).name
            )
        self.uninstall()

    def uninstall(self) -> None:
        for sig in self._installed:
            if sig in self._previous:
                signal.signal(sig, self._previous.pop(sig))
            elif self._loop is not None and not self._loop.is_closed():
                self._loop.remove_signal_handler(sig)
        self._installed.clear()

    def __enter__(self) -> CancellationToken:
        return self.install()

    def __exit__(self, *exc_info: Any) -> None:
        self.uninstall()


__all__ = ["CancellationToken", "CancellationController"]
