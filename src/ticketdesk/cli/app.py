"""
Root Typer application for the ticketdesk CLI.

Every command builds its own store from the environment
(``TICKETDESK_DATA_DIR`` and friends), runs one operation and closes the
offline cache again. ``--offline`` makes the gateway unreachable, so loads
come from the cache and edits are queued for the next ``sync``.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from typer import Typer

from ticketdesk import __version__
from ticketdesk.cli.utils import (
    console,
    fail,
    load_settings,
    open_store,
    output_pending,
    output_tickets,
    print_dict,
)
from ticketdesk.core.errors import StorageError, ValidationError
from ticketdesk.core.filters import SortKey
from ticketdesk.core.models import SyncState
from ticketdesk.factory import create_offline_store, create_probe_monitor
from ticketdesk.generator import write_tickets
from ticketdesk.store import TicketStore
from ticketdesk.validators import require_valid_edit

app = Typer(
    name="ticketdesk",
    help="ticketdesk: offline-first support ticket sync.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("ticketdesk")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"ticketdesk {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """ticketdesk CLI: list, edit and sync tickets."""


# ── Tickets ──────────────────────────────────────────────────────────────


@app.command("list")
def list_tickets(
    search: str = typer.Option("", "--search", "-q", help="Case-insensitive title search"),
    status: list[str] = typer.Option([], "--status", "-s", help="Status filter (repeatable)"),
    priority: list[int] = typer.Option([], "--priority", "-p", help="Priority filter (repeatable)"),
    tag: list[str] = typer.Option([], "--tag", "-t", help="Tag filter, any-of (repeatable)"),
    created_from: str | None = typer.Option(None, "--from", help="createdAt lower bound"),
    created_to: str | None = typer.Option(None, "--to", help="createdAt upper bound"),
    sort: list[str] = typer.Option([], "--sort", help="column[:asc|desc] (repeatable)"),
    offline: bool = typer.Option(False, "--offline", help="Read from the offline cache only"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List tickets with filtering and sorting."""
    settings = load_settings()

    async def run() -> None:
        async with open_store(settings, online=not offline) as store:
            await _load(store)
            try:
                store.set_filters(
                    search_text=search,
                    statuses=status,
                    priorities=priority,
                    tags=tag,
                    date_range={"from": created_from, "to": created_to},
                )
                if sort:
                    store.set_sort(SortKey.parse(s) for s in sort)
            except ValueError as e:
                fail(str(e), code=2)
            output_tickets(
                store.filtered_tickets.value,
                store.visible_columns.value,
                as_json=json_out,
                title=f"Tickets ({len(store.filtered_tickets.value)} of {len(store.tickets.value)})",
            )

    asyncio.run(run())


@app.command()
def edit(
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    title: str | None = typer.Option(None, "--title"),
    status: str | None = typer.Option(None, "--status", "-s"),
    priority: int | None = typer.Option(None, "--priority", "-p"),
    assignee: str | None = typer.Option(None, "--assignee", "-a"),
    blocked_reason: str | None = typer.Option(None, "--blocked-reason"),
    tag: list[str] = typer.Option([], "--tag", "-t", help="Replace tags (repeatable)"),
    clear_tags: bool = typer.Option(False, "--clear-tags", help="Remove all tags"),
    offline: bool = typer.Option(False, "--offline", help="Queue the edit instead of sending it"),
) -> None:
    """Edit a ticket; failed writes are queued for ``sync``."""
    patch: dict[str, object] = {}
    if title is not None:
        patch["title"] = title.strip()
    if status is not None:
        patch["status"] = status
    if priority is not None:
        patch["priority"] = priority
    if assignee is not None:
        patch["assignee"] = assignee.strip() or None
    if blocked_reason is not None:
        patch["_blockedReason"] = blocked_reason.strip()
    if tag or clear_tags:
        patch["tags"] = list(dict.fromkeys(t.strip().lower() for t in tag if t.strip()))
    if not patch:
        fail("Nothing to change", code=2)

    settings = load_settings()

    async def run() -> None:
        async with open_store(settings, online=not offline) as store:
            await _load(store)
            ticket = next((t for t in store.tickets.value if t.id == ticket_id), None)
            if ticket is None:
                fail(f"Ticket not found: {ticket_id}")
            try:
                require_valid_edit(ticket, patch)
                state = await store.update_one(ticket_id, patch)
            except ValidationError as e:
                fail(e.message, error=e)
            except StorageError as e:
                fail(e.message, error=e)
            if state is SyncState.PENDING:
                console.print(f"[yellow]{ticket_id}[/yellow] saved locally; queued for sync")
            else:
                console.print(f"[green]{ticket_id}[/green] updated")

    asyncio.run(run())


@app.command()
def sync(
    probe: bool = typer.Option(
        False, "--probe", help="Check network reachability first; keep the queue when offline"
    ),
) -> None:
    """Replay queued edits against the gateway, then reload."""
    settings = load_settings()

    async def run() -> None:
        monitor = None
        if probe:
            monitor = create_probe_monitor(settings)
            if not await monitor.check():
                fail(
                    f"Network unreachable ({settings.probe_host}:{settings.probe_port}); "
                    "queued edits kept"
                )
        async with open_store(settings, connectivity=monitor) as store:
            try:
                report = await store.sync_pending_changes()
            except StorageError as e:
                fail(e.message, error=e)
            await _load(store)
            print_dict(
                {
                    "attempted": report.attempted,
                    "succeeded": report.succeeded,
                    "dropped": report.dropped,
                },
                title="Sync",
            )

    asyncio.run(run())


@app.command()
def pending(json_out: bool = typer.Option(False, "--json")) -> None:
    """Show edits waiting to be synced."""
    settings = load_settings()

    async def run() -> None:
        cache = create_offline_store(settings)
        try:
            changes = await cache.read_pending()
        except StorageError as e:
            fail(e.message, error=e)
        finally:
            await cache.close()
        output_pending(changes, as_json=json_out)

    asyncio.run(run())


# ── Data ─────────────────────────────────────────────────────────────────


@app.command()
def generate(
    output: Path | None = typer.Argument(None, help="Target file (default: the tickets file)"),
    count: int = typer.Option(10_500, "--count", "-n", min=0),
    bad_dates: int = typer.Option(200, "--bad-dates", min=0),
    missing_fields: int = typer.Option(200, "--missing-fields", min=0),
    messy_tags: int = typer.Option(200, "--messy-tags", min=0),
    duplicates: int = typer.Option(100, "--duplicates", min=0),
    seed: int | None = typer.Option(None, "--seed"),
) -> None:
    """Write a synthetic tickets file, deliberately dirty."""
    settings = load_settings()
    target = output or settings.resolved_tickets_file()
    stats = write_tickets(
        target,
        count,
        bad_dates=bad_dates,
        missing_fields=missing_fields,
        inconsistent_tags=messy_tags,
        duplicate_ids=duplicates,
        seed=seed,
    )
    print_dict(
        {
            "file": target,
            "total": stats.total,
            "bad_dates": stats.bad_dates,
            "missing_fields": stats.missing_fields,
            "inconsistent_tags": stats.inconsistent_tags,
            "duplicate_ids": stats.duplicate_ids,
        },
        title="Generated",
    )


# ── Private helpers ──────────────────────────────────────────────────────


async def _load(store: TicketStore) -> None:
    try:
        await store.load()
    except StorageError as e:
        fail(e.message, error=e)
    if store.error.value:
        fail(store.error.value)
