"""
Offline-first synchronization engine.

Manifesto:
    Three surfaces change independently: canonical state in memory, the
    offline store on disk, and the remote gateway. The store keeps them
    consistent under unreliable connectivity without ever losing a user's
    edit to a transport failure:

    - **One owner:** only :class:`TicketStore` mutates canonical state, always
      as a whole-state replacement, so readers never see half an update.
    - **Optimistic writes:** an edit is visible before the network answers.
    - **Queue on failure:** a failed write is marked pending and queued.
    - **Replay on reconnect:** the offline → online edge drains the queue,
      oldest first, one item at a time.
    - **Last write wins:** a replayed item is removed whatever the outcome.

Architecture::

    gateway.fetch_all ──▶ sanitize_tickets ──▶ state ──▶ offline mirror
                                                 │
                                                 ├──▶ filtered_tickets / all_tags / ...
                                                 │
    update_one ──▶ optimistic state ──▶ gateway.update_one
                                           ├── ok ──▶ CLEAN + mirror upsert
                                           └── fail ─▶ PENDING + queue append

    connectivity offline → online ──▶ sync_pending_changes (if queue non-empty)

Per-ticket state (``Ticket.sync_state``)::

    CLEAN ─edit─▶ OPTIMISTIC ─ack─▶ CLEAN
                      └─fail─▶ PENDING ─replay (any outcome)─▶ CLEAN

Concurrency decisions:
    - Edits to the same ticket reach the gateway one at a time, in call
      order (per-ticket ``asyncio.Lock``). The in-memory overlay still happens
      immediately at call time.
    - At most one replay pass runs at a time. A replay requested while one is
      running joins it instead of starting an overlapping pass.

Examples:
    >>> store = TicketStore(gateway, InMemoryOfflineStore(), ConnectivityMonitor())
    >>> async with store:
    ...     await store.load()
    ...     await store.update_one("TKT-001", {"title": "Server crash on login (prod)"})
    ...     store.filtered_tickets.value[0].sync_state
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from ticketdesk.connectivity import ConnectivityMonitor
from ticketdesk.core.errors import StorageError, categorize_error
from ticketdesk.core.filters import (
    DEFAULT_COLUMNS,
    DEFAULT_SORT,
    INITIAL_FILTERS,
    SortKey,
    TicketFilters,
)
from ticketdesk.core.logging import LogContext, get_logger
from ticketdesk.core.models import PendingChange, SyncState, Ticket
from ticketdesk.core.reactive import LiveValue, Stream, Subscription
from ticketdesk.core.timestamps import to_iso8601, utc_now
from ticketdesk.gateway import RemoteGateway
from ticketdesk.projection import collect_tags, find_ticket, project, toggle_column, toggle_sort
from ticketdesk.sanitizer import sanitize_tickets
from ticketdesk.storage.base import OfflineStore

logger = get_logger(__name__)

ERROR_OFFLINE_NO_CACHE = "Offline and no cached tickets available"


@dataclass(frozen=True)
class TicketState:
    """Everything the store owns, replaced as a whole on every change."""

    tickets: tuple[Ticket, ...] = ()
    filters: TicketFilters = INITIAL_FILTERS
    sort: tuple[SortKey, ...] = DEFAULT_SORT
    visible_columns: tuple[str, ...] = DEFAULT_COLUMNS
    selected_ticket_id: str | None = None
    loading: bool = False
    error: str | None = None
    pending_count: int = 0


@dataclass(frozen=True)
class ReplayReport:
    """Outcome of one pass over the pending queue."""

    attempted: int = 0
    succeeded: int = 0
    dropped: int = 0


class TicketStore:
    """State container and sync engine.

    Constructed explicitly with its collaborators; call :meth:`start` (or use
    ``async with``) to follow connectivity, and :meth:`close` at shutdown.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        cache: OfflineStore,
        connectivity: ConnectivityMonitor,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._gateway = gateway
        self._cache = cache
        self._connectivity = connectivity
        self._clock = clock

        self._state: LiveValue[TicketState] = LiveValue(TicketState(), name="state")
        self._streams: list[Stream[Any]] = []

        # ── Selectors ────────────────────────────────────────────
        self.tickets: Stream[tuple[Ticket, ...]] = self._select("tickets", lambda s: s.tickets)
        self.loading: Stream[bool] = self._select("loading", lambda s: s.loading)
        self.error: Stream[str | None] = self._select("error", lambda s: s.error)
        self.filters: Stream[TicketFilters] = self._select("filters", lambda s: s.filters)
        self.sort: Stream[tuple[SortKey, ...]] = self._select("sort", lambda s: s.sort)
        self.visible_columns: Stream[tuple[str, ...]] = self._select(
            "visible_columns", lambda s: s.visible_columns
        )
        self.selected_ticket_id: Stream[str | None] = self._select(
            "selected_ticket_id", lambda s: s.selected_ticket_id
        )
        self.pending_count: Stream[int] = self._select("pending_count", lambda s: s.pending_count)

        view_inputs = self._select("view_inputs", lambda s: (s.tickets, s.filters, s.sort))
        self.filtered_tickets: Stream[tuple[Ticket, ...]] = self._derive(
            view_inputs, "filtered_tickets", lambda args: project(*args)
        )
        selection = self._select("selection", lambda s: (s.tickets, s.selected_ticket_id))
        self.selected_ticket: Stream[Ticket | None] = self._derive(
            selection, "selected_ticket", lambda args: find_ticket(*args)
        )
        self.all_tags: Stream[tuple[str, ...]] = self._derive(self.tickets, "all_tags", collect_tags)

        self._edit_locks: dict[str, asyncio.Lock] = {}
        self._edit_seq: dict[str, int] = {}
        self._in_flight: Counter[str] = Counter()
        self._replay_task: asyncio.Task[ReplayReport] | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self._connectivity_sub: Subscription | None = None
        self._was_online = connectivity.current_status()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> TicketState:
        return self._state.value

    @property
    def state_stream(self) -> Stream[TicketState]:
        return self._state

    def start(self) -> None:
        """Follow connectivity; replays are triggered on offline → online."""
        if self._connectivity_sub is None:
            self._was_online = self._connectivity.current_status()
            self._connectivity_sub = self._connectivity.is_online.subscribe(self._on_connectivity)

    async def close(self) -> None:
        """Stop following connectivity and wait for in-flight replays."""
        if self._connectivity_sub is not None:
            self._connectivity_sub.unsubscribe()
            self._connectivity_sub = None
        pending = [t for t in self._background if not t.done()]
        if self._replay_task is not None and not self._replay_task.done():
            pending.append(self._replay_task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        for stream in reversed(self._streams):
            stream.close()
        self._state.close()

    async def __aenter__(self) -> TicketStore:
        self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    async def load(self) -> None:
        """Fetch, sanitize and install the ticket set; fall back to the cache.

        Raises:
            StorageError: the gateway failed and the offline store could not
                be read either. ``error`` is set before raising.
        """
        async with LogContext(operation="load"):
            self._patch(loading=True, error=None)
            try:
                raw = await self._gateway.fetch_all()
            except Exception as e:
                logger.warning(
                    "ticket_load_failed",
                    error=str(e),
                    category=categorize_error(e).value,
                )
                await self._load_from_cache()
                return

            tickets = tuple(sanitize_tickets(raw, now=self._clock()))
            self._patch(tickets=tickets, loading=False)
            logger.info("tickets_loaded", count=len(tickets))
            await self._best_effort("replace_all", self._cache.replace_all(tickets))

    async def ensure_loaded(self) -> bool:
        """Load unless tickets are already present. Returns True when tickets are available."""
        if not self.state.tickets:
            await self.load()
        return bool(self.state.tickets)

    def load_from_snapshot(self, tickets: Iterable[Ticket | Mapping[str, Any]]) -> None:
        """Install *tickets* directly, bypassing gateway and sanitizer."""
        installed = tuple(t if isinstance(t, Ticket) else Ticket.from_dict(t) for t in tickets)
        self._patch(tickets=installed, loading=False, error=None)

    async def _load_from_cache(self) -> None:
        try:
            cached = await self._cache.read_all()
        except StorageError:
            self._patch(loading=False, error=ERROR_OFFLINE_NO_CACHE)
            raise
        if cached:
            self._patch(tickets=tuple(cached), loading=False, error=None)
            logger.info("tickets_loaded_from_cache", count=len(cached))
        else:
            self._patch(loading=False, error=ERROR_OFFLINE_NO_CACHE)
            logger.warning("ticket_cache_empty")

    # ------------------------------------------------------------------ #
    # View configuration
    # ------------------------------------------------------------------ #

    def set_filters(self, filters: TicketFilters | None = None, **changes: Any) -> None:
        """Replace the filters, or merge a partial update given as keywords."""
        base = filters if filters is not None else self.state.filters
        self._patch(filters=base.merged(**changes) if changes else base)

    def reset_filters(self) -> None:
        self._patch(filters=INITIAL_FILTERS)

    def set_sort(self, sort: Iterable[SortKey | str]) -> None:
        self._patch(sort=tuple(k if isinstance(k, SortKey) else SortKey.parse(k) for k in sort))

    def toggle_sort_column(self, column: str) -> None:
        self._patch(sort=toggle_sort(self.state.sort, column))

    def toggle_column(self, column: str) -> None:
        self._patch(visible_columns=toggle_column(self.state.visible_columns, column))

    def select_ticket(self, ticket_id: str | None) -> None:
        self._patch(selected_ticket_id=ticket_id)

    # ------------------------------------------------------------------ #
    # Edits
    # ------------------------------------------------------------------ #

    async def update_one(self, ticket_id: str, patch: Mapping[str, Any]) -> SyncState | None:
        """Apply *patch* optimistically, then confirm it with the gateway.

        The optimistic ticket is published before the first suspension. A
        gateway failure never propagates: the ticket becomes PENDING and the
        change is queued. A ticket that already has queued changes stays
        PENDING even when this edit is confirmed. Returns the ticket's
        resulting sync state, or None when no ticket has that id.

        Raises:
            ValidationError: *patch* carries an invalid status or priority.
            StorageError: the change could not be queued.
        """
        patch = {k: v for k, v in patch.items() if k != "id"}
        current = self._find(ticket_id)
        if current is None:
            logger.warning("ticket_update_unknown", ticket_id=ticket_id)
            return None

        original_updated_at = current.updated_at
        # a ticket with queued changes stays PENDING until replay clears it
        overlay_state = (
            SyncState.PENDING if current.sync_state is SyncState.PENDING else SyncState.OPTIMISTIC
        )
        optimistic = replace(
            current.apply_patch(patch),
            updated_at=to_iso8601(self._clock()),
            sync_state=overlay_state,
        )
        seq = self._edit_seq.get(ticket_id, 0) + 1
        self._edit_seq[ticket_id] = seq
        self._in_flight[ticket_id] += 1
        self._put_ticket(optimistic)

        lock = self._edit_locks.setdefault(ticket_id, asyncio.Lock())
        try:
            async with lock:
                try:
                    await self._gateway.update_one(ticket_id, patch)
                except Exception as e:
                    logger.warning(
                        "ticket_update_failed",
                        ticket_id=ticket_id,
                        error=str(e),
                        category=categorize_error(e).value,
                    )
                    return await self._queue_failed_edit(
                        ticket_id, patch, original_updated_at, seq
                    )
        finally:
            self._in_flight[ticket_id] -= 1
            if self._in_flight[ticket_id] <= 0:
                del self._in_flight[ticket_id]

        confirmed = self._settle(ticket_id)
        logger.info("ticket_updated", ticket_id=ticket_id)
        if confirmed is not None:
            await self._best_effort("upsert_one", self._cache.upsert_one(confirmed))
            return confirmed.sync_state
        return None

    async def _queue_failed_edit(
        self,
        ticket_id: str,
        patch: dict[str, Any],
        original_updated_at: str,
        seq: int,
    ) -> SyncState:
        def mark_pending(ticket: Ticket) -> Ticket:
            # a newer edit already overlaid this one; don't roll its fields back
            if self._edit_seq.get(ticket_id) == seq:
                ticket = ticket.apply_patch(patch)
            return ticket.with_sync_state(SyncState.PENDING)

        pending = self._update_ticket(ticket_id, mark_pending)
        change = PendingChange(
            ticket_id=ticket_id,
            patch=patch,
            original_updated_at=original_updated_at,
            timestamp=self._clock().timestamp() * 1000,
        )
        key = await self._cache.append(change)
        logger.info("pending_change_queued", ticket_id=ticket_id, queue_key=key)
        if pending is not None:
            await self._best_effort("upsert_one", self._cache.upsert_one(pending))
        await self.refresh_pending_count()
        return SyncState.PENDING

    def _settle(self, ticket_id: str) -> Ticket | None:
        """OPTIMISTIC → CLEAN once no edit for the ticket is still in flight."""
        if ticket_id in self._in_flight:
            return self._find(ticket_id)

        def settle(ticket: Ticket) -> Ticket:
            if ticket.sync_state is SyncState.OPTIMISTIC:
                return ticket.with_sync_state(SyncState.CLEAN)
            return ticket

        return self._update_ticket(ticket_id, settle)

    # ------------------------------------------------------------------ #
    # Replay
    # ------------------------------------------------------------------ #

    async def sync_pending_changes(self) -> ReplayReport:
        """Replay the pending queue oldest-first, one change at a time.

        Every attempted change leaves the queue whether or not the gateway
        accepts it. A call made while a pass is running waits for that pass
        and returns its report.
        """
        if self._replay_task is not None and not self._replay_task.done():
            logger.debug("replay_joined")
            return await self._replay_task
        self._replay_task = asyncio.get_running_loop().create_task(self._replay())
        return await self._replay_task

    async def refresh_pending_count(self) -> int:
        count = await self._cache.count()
        self._patch(pending_count=count)
        return count

    async def _replay(self) -> ReplayReport:
        async with LogContext(operation="sync_pending_changes"):
            changes = await self._cache.read_pending()
            remaining = Counter(change.ticket_id for change in changes)
            succeeded = dropped = 0
            logger.info("replay_started", queued=len(changes))

            for change in changes:
                try:
                    await self._gateway.update_one(change.ticket_id, change.patch)
                except Exception as e:
                    dropped += 1
                    logger.warning(
                        "replay_item_dropped",
                        ticket_id=change.ticket_id,
                        queue_key=change.key,
                        error=str(e),
                    )
                else:
                    succeeded += 1
                    logger.debug("replay_item_synced", ticket_id=change.ticket_id, queue_key=change.key)

                if change.key is not None:
                    await self._cache.remove(change.key)
                remaining[change.ticket_id] -= 1
                if remaining[change.ticket_id] <= 0:
                    replayed = self._update_ticket(change.ticket_id, _clear_pending)
                    if replayed is not None:
                        await self._best_effort("upsert_one", self._cache.upsert_one(replayed))
                await self.refresh_pending_count()

            report = ReplayReport(attempted=len(changes), succeeded=succeeded, dropped=dropped)
            logger.info(
                "replay_finished",
                attempted=report.attempted,
                succeeded=report.succeeded,
                dropped=report.dropped,
            )
            return report

    def _on_connectivity(self, online: bool) -> None:
        was_online, self._was_online = self._was_online, online
        if not online or was_online:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("replay_skipped_no_event_loop")
            return
        task = loop.create_task(self._replay_if_queued())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _replay_if_queued(self) -> None:
        try:
            if await self._cache.count() > 0:
                await self.sync_pending_changes()
        except Exception as e:
            logger.error("auto_replay_failed", error=str(e), category=categorize_error(e).value)

    # ------------------------------------------------------------------ #
    # State helpers
    # ------------------------------------------------------------------ #

    def _select(self, name: str, fn: Callable[[TicketState], Any]) -> Stream[Any]:
        stream = self._state.map(fn, name=name)
        self._streams.append(stream)
        return stream

    def _derive(self, source: Stream[Any], name: str, fn: Callable[[Any], Any]) -> Stream[Any]:
        stream = source.map(fn, name=name)
        self._streams.append(stream)
        return stream

    def _patch(self, **changes: Any) -> None:
        self._state.update(lambda state: replace(state, **changes))

    def _find(self, ticket_id: str) -> Ticket | None:
        return find_ticket(self.state.tickets, ticket_id)

    def _put_ticket(self, ticket: Ticket) -> None:
        self._patch(
            tickets=tuple(ticket if t.id == ticket.id else t for t in self.state.tickets)
        )

    def _update_ticket(self, ticket_id: str, fn: Callable[[Ticket], Ticket]) -> Ticket | None:
        current = self._find(ticket_id)
        if current is None:
            return None
        updated = fn(current)
        if updated is not current:
            self._put_ticket(updated)
        return updated

    async def _best_effort(self, operation: str, write: Any) -> None:
        """Await a mirror write; failures are logged, never raised."""
        try:
            await write
        except Exception as e:
            logger.warning(
                "offline_mirror_write_failed",
                cache_operation=operation,
                error=str(e),
                category=categorize_error(e).value,
            )


def _clear_pending(ticket: Ticket) -> Ticket:
    if ticket.sync_state is SyncState.PENDING:
        return ticket.with_sync_state(SyncState.CLEAN)
    return ticket


__all__ = ["TicketStore", "TicketState", "ReplayReport", "ERROR_OFFLINE_NO_CACHE"]
