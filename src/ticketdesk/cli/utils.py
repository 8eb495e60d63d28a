"""
CLI utility helpers -- settings, store lifecycle and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from ticketdesk.connectivity import ConnectivityMonitor
from ticketdesk.core.errors import TicketDeskError
from ticketdesk.core.logging import configure_logging
from ticketdesk.core.models import (
    PRIORITY_LABELS,
    STATUS_LABELS,
    TICKET_STATUSES,
    PendingChange,
    SyncState,
    Ticket,
    TicketStatus,
)
from ticketdesk.core.settings import TicketDeskSettings
from ticketdesk.factory import create_connectivity, create_gateway, create_offline_store
from ticketdesk.store import TicketStore

console = Console()
err_console = Console(stderr=True)


# ── Settings / store helpers ─────────────────────────────────────────────


def load_settings() -> TicketDeskSettings:
    """Read settings from the environment and configure logging from them."""
    try:
        settings = TicketDeskSettings()
    except ValueError as e:
        err_console.print(f"[bold red]Configuration error[/bold red]: {e}")
        raise typer.Exit(code=2) from e
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


@asynccontextmanager
async def open_store(
    settings: TicketDeskSettings,
    *,
    online: bool = True,
    connectivity: ConnectivityMonitor | None = None,
) -> AsyncIterator[TicketStore]:
    """A started store whose offline cache is closed on exit."""
    cache = create_offline_store(settings)
    store = TicketStore(
        create_gateway(settings, reachable=online),
        cache,
        connectivity or create_connectivity(online),
    )
    try:
        async with store:
            yield store
    finally:
        await cache.close()


def fail(message: str, *, code: int = 1, error: TicketDeskError | None = None) -> NoReturn:
    """Print an error and exit with *code*."""
    label = error.category.value if error is not None else "ERROR"
    err_console.print(f"[bold red]Error[/bold red] ({label}): {message}")
    raise typer.Exit(code=code)


# ── Output helpers ───────────────────────────────────────────────────────


def output_tickets(
    tickets: Sequence[Ticket],
    columns: Sequence[str],
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render tickets as a Rich table, or as their wire JSON form."""
    if as_json:
        console.print_json(json.dumps([t.to_dict() for t in tickets], default=str))
        return

    if not tickets:
        console.print("[dim]No tickets.[/dim]")
        return

    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    table.add_column("sync")
    for ticket in tickets:
        table.add_row(*(format_cell(col, ticket.field_value(col)) for col in columns), _sync_marker(ticket))
    console.print(table)


def output_pending(changes: Sequence[PendingChange], *, as_json: bool = False) -> None:
    if as_json:
        console.print_json(json.dumps([c.to_dict() for c in changes], default=str))
        return

    if not changes:
        console.print("[dim]No pending changes.[/dim]")
        return

    table = Table(title="Pending changes", pad_edge=False)
    for col in ("key", "ticket", "fields", "original updatedAt"):
        table.add_column(col, overflow="fold")
    for change in changes:
        table.add_row(
            str(change.key),
            change.ticket_id,
            ", ".join(sorted(change.patch)),
            change.original_updated_at,
        )
    console.print(table)


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")


def format_cell(column: str, value: Any) -> str:
    """Display text for one table cell; status and priority get their labels."""
    if value is None:
        return ""
    if column == "status" and value in TICKET_STATUSES:
        return STATUS_LABELS[TicketStatus(value)]
    if column == "priority" and value in PRIORITY_LABELS:
        return f"{value} {PRIORITY_LABELS[value]}"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


# ── Private helpers ──────────────────────────────────────────────────────


def _sync_marker(ticket: Ticket) -> str:
    if ticket.sync_state is SyncState.PENDING:
        return "[yellow]pending[/yellow]"
    if ticket.sync_state is SyncState.OPTIMISTIC:
        return "[blue]saving[/blue]"
    return ""
