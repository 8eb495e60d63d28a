"""Tests for ticketdesk.storage: offline store contract on both backends."""

import sqlite3

import pytest
import pytest_asyncio

from ticketdesk.core.errors import StorageError
from ticketdesk.core.models import PendingChange, SyncState, Ticket
from ticketdesk.storage import SCHEMA_VERSION, InMemoryOfflineStore, OfflineStore, SQLiteOfflineStore


def _ticket(ticket_id: str, title: str = "Some ticket", **kw) -> Ticket:
    return Ticket(
        id=ticket_id,
        title=title,
        created_at="2024-06-15T10:00:00.000Z",
        updated_at="2024-06-15T10:00:00.000Z",
        **kw,
    )


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def offline(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryOfflineStore()
    else:
        backend = SQLiteOfflineStore(tmp_path / "offline.db")
    yield backend
    await backend.close()


# ------------------------------------------------------------------ #
# Shared contract
# ------------------------------------------------------------------ #


class TestOfflineStoreContract:
    @pytest.mark.asyncio
    async def test_satisfies_protocol(self, offline):
        assert isinstance(offline, OfflineStore)

    @pytest.mark.asyncio
    async def test_replace_all_then_read_all(self, offline):
        tickets = [_ticket("TKT-2"), _ticket("TKT-1", sync_state=SyncState.PENDING)]
        await offline.replace_all(tickets)
        assert await offline.read_all() == tickets

    @pytest.mark.asyncio
    async def test_replace_all_discards_previous(self, offline):
        await offline.replace_all([_ticket("TKT-1")])
        await offline.replace_all([_ticket("TKT-9")])
        assert [t.id for t in await offline.read_all()] == ["TKT-9"]

    @pytest.mark.asyncio
    async def test_upsert_one(self, offline):
        await offline.replace_all([_ticket("TKT-1"), _ticket("TKT-2")])
        await offline.upsert_one(_ticket("TKT-1", "Renamed ticket"))
        await offline.upsert_one(_ticket("TKT-3"))
        tickets = await offline.read_all()
        assert [t.id for t in tickets] == ["TKT-1", "TKT-2", "TKT-3"]
        assert tickets[0].title == "Renamed ticket"

    @pytest.mark.asyncio
    async def test_empty_store(self, offline):
        assert await offline.read_all() == []
        assert await offline.read_pending() == []
        assert await offline.count() == 0

    @pytest.mark.asyncio
    async def test_append_assigns_increasing_keys(self, offline):
        first = await offline.append(PendingChange("TKT-1", {"title": "a"}, "", 100.0))
        second = await offline.append(PendingChange("TKT-1", {"title": "b"}, "", 200.0))
        assert second > first
        assert await offline.count() == 2

    @pytest.mark.asyncio
    async def test_read_pending_oldest_first(self, offline):
        await offline.append(PendingChange("TKT-2", {"priority": 2}, "u2", 300.0))
        await offline.append(PendingChange("TKT-1", {"title": "x"}, "u1", 100.0))
        await offline.append(PendingChange("TKT-3", {"tags": ["a"]}, "u3", 200.0))
        pending = await offline.read_pending()
        assert [c.ticket_id for c in pending] == ["TKT-1", "TKT-3", "TKT-2"]
        assert pending[0].patch == {"title": "x"}
        assert pending[0].original_updated_at == "u1"
        assert all(c.key is not None for c in pending)

    @pytest.mark.asyncio
    async def test_equal_timestamps_keep_insertion_order(self, offline):
        for ticket_id in ("A", "B", "C"):
            await offline.append(PendingChange(ticket_id, {}, "", 100.0))
        assert [c.ticket_id for c in await offline.read_pending()] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, offline):
        key = await offline.append(PendingChange("TKT-1", {}, "", 1.0))
        await offline.append(PendingChange("TKT-2", {}, "", 2.0))
        await offline.remove(key)
        await offline.remove(key)
        assert [c.ticket_id for c in await offline.read_pending()] == ["TKT-2"]
        await offline.clear_pending()
        assert await offline.count() == 0


# ------------------------------------------------------------------ #
# SQLite specifics
# ------------------------------------------------------------------ #


class TestSQLiteOfflineStore:
    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "offline.db"
        first = SQLiteOfflineStore(path)
        await first.replace_all([_ticket("TKT-1")])
        await first.append(PendingChange("TKT-1", {"title": "queued"}, "", 5.0))
        await first.close()

        second = SQLiteOfflineStore(path)
        assert [t.id for t in await second.read_all()] == ["TKT-1"]
        assert (await second.read_pending())[0].patch == {"title": "queued"}
        await second.close()

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "offline.db"
        store = SQLiteOfflineStore(path)
        await store.count()
        await store.close()
        assert path.exists()

    @pytest.mark.asyncio
    async def test_sets_schema_version(self, tmp_path):
        path = tmp_path / "offline.db"
        store = SQLiteOfflineStore(path)
        await store.count()
        await store.close()
        with sqlite3.connect(path) as conn:
            assert conn.execute("PRAGMA user_version").fetchone()[0] == SCHEMA_VERSION

    @pytest.mark.asyncio
    async def test_version_mismatch_recreates_tables(self, tmp_path):
        path = tmp_path / "offline.db"
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE tickets (legacy TEXT)")
        conn.execute("INSERT INTO tickets VALUES ('old')")
        conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1}")
        conn.commit()
        conn.close()

        store = SQLiteOfflineStore(path)
        assert await store.read_all() == []
        await store.replace_all([_ticket("TKT-1")])
        assert [t.id for t in await store.read_all()] == ["TKT-1"]
        await store.close()

    @pytest.mark.asyncio
    async def test_unusable_path_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = SQLiteOfflineStore(blocker / "offline.db")
        with pytest.raises(StorageError) as exc_info:
            await store.read_all()
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_reconnects_after_close(self, tmp_path):
        store = SQLiteOfflineStore(tmp_path / "offline.db")
        await store.replace_all([_ticket("TKT-1")])
        await store.close()
        assert len(await store.read_all()) == 1
        await store.close()

    @pytest.mark.asyncio
    async def test_in_memory_database(self):
        store = SQLiteOfflineStore()
        await store.upsert_one(_ticket("TKT-1"))
        assert await store.read_all() == [_ticket("TKT-1")]
        await store.close()
