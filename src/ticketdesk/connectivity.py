"""Network reachability as a live boolean.

The monitor holds only the latest status. Consumers that care about
transitions (the store replays queued edits on offline → online) track the
previous value themselves.

Two flavours:

- :class:`ConnectivityMonitor` is fed by the host environment calling
  :meth:`~ConnectivityMonitor.set_online` on every transition event.
- :class:`ProbeConnectivityMonitor` feeds itself by polling an async probe,
  by default a TCP connect to a well-known host.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from ticketdesk.core.logging import get_logger
from ticketdesk.core.reactive import LiveValue, Stream

logger = get_logger(__name__)

Probe = Callable[[], Awaitable[bool]]


class ConnectivityMonitor:
    """Latest-value reachability signal.

    Example:
        monitor = ConnectivityMonitor(initial=True)
        monitor.is_online.subscribe(lambda online: print("online" if online else "offline"))
        monitor.go_offline()
    """

    def __init__(self, initial: bool = True):
        self._online: LiveValue[bool] = LiveValue(bool(initial), name="is_online")

    @property
    def is_online(self) -> Stream[bool]:
        return self._online

    def current_status(self) -> bool:
        return self._online.value

    def set_online(self, online: bool) -> None:
        """Report a transition event from the host environment."""
        if self._online.set(bool(online)):
            logger.info("connectivity_changed", online=bool(online))

    def go_online(self) -> None:
        self.set_online(True)

    def go_offline(self) -> None:
        self.set_online(False)


class ProbeConnectivityMonitor(ConnectivityMonitor):
    """Monitor that polls *probe* every *interval* seconds.

    A probe that raises counts as offline.
    """

    def __init__(self, probe: Probe, *, interval: float = 5.0, initial: bool = True):
        super().__init__(initial=initial)
        self._probe = probe
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check(self) -> bool:
        """Run the probe once and publish its result."""
        try:
            online = bool(await self._probe())
        except Exception as e:
            logger.debug("connectivity_probe_failed", error=str(e))
            online = False
        self.set_online(online)
        return online

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._poll())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _poll(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self._interval)


def tcp_probe(host: str, port: int, *, timeout: float = 2.0) -> Probe:
    """Probe that succeeds when a TCP connection to *host*:*port* opens in time."""

    async def probe() -> bool:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        return True

    return probe


__all__ = ["ConnectivityMonitor", "ProbeConnectivityMonitor", "tcp_probe", "Probe"]
