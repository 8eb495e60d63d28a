"""
Factory functions that assemble a store from settings.

Manifesto:
    :class:`~ticketdesk.store.TicketStore` takes its collaborators
    explicitly. These factories are the one place that maps configuration
    onto concrete classes, so the CLI (and any embedding application) never
    wires paths by hand.

Features:
    - ``create_gateway()`` -- JSON-file gateway over ``tickets_file``
    - ``create_offline_store()`` -- SQLite store at ``cache_path``
    - ``create_connectivity()`` -- fixed-status monitor
    - ``create_probe_monitor()`` -- self-polling TCP monitor
    - ``create_store()`` -- all of the above, wired together

Tags:
    ticketdesk, configuration, factory-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ticketdesk.connectivity import ConnectivityMonitor, ProbeConnectivityMonitor, tcp_probe
from ticketdesk.core.settings import get_settings
from ticketdesk.gateway import JsonFileGateway
from ticketdesk.storage import SQLiteOfflineStore
from ticketdesk.store import TicketStore

if TYPE_CHECKING:
    from ticketdesk.core.settings import TicketDeskSettings


def create_gateway(settings: TicketDeskSettings, *, reachable: bool = True) -> JsonFileGateway:
    """JSON-file gateway; ``reachable=False`` makes every call raise NetworkError."""
    return JsonFileGateway(
        settings.resolved_tickets_file(),
        latency=settings.gateway_latency,
        reachable=reachable,
    )


def create_offline_store(settings: TicketDeskSettings) -> SQLiteOfflineStore:
    return SQLiteOfflineStore(settings.resolved_cache_path())


def create_connectivity(online: bool = True) -> ConnectivityMonitor:
    return ConnectivityMonitor(initial=online)


def create_probe_monitor(settings: TicketDeskSettings) -> ProbeConnectivityMonitor:
    """Monitor that polls ``probe_host:probe_port`` every ``probe_interval`` seconds."""
    probe = tcp_probe(settings.probe_host, settings.probe_port, timeout=settings.probe_timeout)
    return ProbeConnectivityMonitor(probe, interval=settings.probe_interval)


def create_store(
    settings: TicketDeskSettings | None = None,
    *,
    online: bool = True,
) -> TicketStore:
    """Wire a :class:`TicketStore` from *settings* (default: environment).

    With ``online=False`` the gateway is unreachable and the monitor starts
    offline, so edits queue and loads fall back to the offline store.
    """
    settings = settings or get_settings()
    return TicketStore(
        create_gateway(settings, reachable=online),
        create_offline_store(settings),
        create_connectivity(online),
    )


__all__ = [
    "create_gateway",
    "create_offline_store",
    "create_connectivity",
    "create_probe_monitor",
    "create_store",
]
