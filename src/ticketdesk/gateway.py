"""Remote gateway: the authoritative ticket source.

The HTTP transport is somebody else's concern; the store only needs two
coroutines, ``fetch_all`` and ``update_one``. Both fail by raising. The store
treats any exception as a transport failure.

Implementations:
    - :class:`SimulatedGateway` -- in-process backend holding raw records,
      echoing updates the way a real API would. Failure switches make it
      usable for offline scenarios.
    - :class:`JsonFileGateway` -- raw records read from (and edits written
      back to) a JSON file.
"""

from __future__ import annotations

import asyncio
import copy
import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ticketdesk.core.errors import GatewayError, NetworkError
from ticketdesk.core.logging import get_logger
from ticketdesk.core.timestamps import utc_now_iso

logger = get_logger(__name__)


@runtime_checkable
class RemoteGateway(Protocol):
    async def fetch_all(self) -> Sequence[Any]:
        """Every record, untyped and untrusted."""
        ...

    async def update_one(self, ticket_id: str, patch: Mapping[str, Any]) -> Mapping[str, Any]:
        """Apply *patch* remotely; returns the updated record shape."""
        ...


class _SwitchableGateway:
    """Latency and failure switches shared by the bundled gateways."""

    name = "gateway"

    def __init__(
        self,
        *,
        latency: float = 0.0,
        fail_fetch: bool = False,
        fail_updates: bool = False,
        reachable: bool = True,
    ):
        self.latency = latency
        self.fail_fetch = fail_fetch
        self.fail_updates = fail_updates
        self.reachable = reachable
        self.update_calls: list[tuple[str, dict[str, Any]]] = []

    async def _before(self, operation: str) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)
        if not self.reachable:
            raise NetworkError("Remote gateway unreachable").with_context(
                operation=operation, source_name=self.name
            )
        if operation == "fetch_all" and self.fail_fetch:
            raise GatewayError("Failed to load tickets").with_context(
                operation=operation, source_name=self.name
            )
        if operation == "update_one" and self.fail_updates:
            raise GatewayError("Failed to update ticket").with_context(
                operation=operation, source_name=self.name
            )


class SimulatedGateway(_SwitchableGateway):
    """In-process backend.

    Example:
        gateway = SimulatedGateway([{"id": "TKT-001", "title": "Crash"}])
        gateway.fail_updates = True     # every update now raises GatewayError
    """

    name = "simulated"

    def __init__(self, records: Sequence[Any] | None = None, **switches: Any):
        super().__init__(**switches)
        self.records: list[Any] = list(records or [])

    async def fetch_all(self) -> list[Any]:
        await self._before("fetch_all")
        return copy.deepcopy(self.records)

    async def update_one(self, ticket_id: str, patch: Mapping[str, Any]) -> dict[str, Any]:
        self.update_calls.append((ticket_id, dict(patch)))
        await self._before("update_one")
        updated = {"id": ticket_id, **patch, "updatedAt": utc_now_iso()}
        for record in self.records:
            if isinstance(record, dict) and record.get("id") == ticket_id:
                record.update(updated)
                break
        return updated


class JsonFileGateway(_SwitchableGateway):
    """Gateway over a JSON file holding a list of raw records.

    Unreadable files and malformed JSON surface as GatewayError; the content
    is otherwise passed through untouched for the sanitizer to repair.
    """

    name = "json_file"

    def __init__(self, path: str | Path, **switches: Any):
        super().__init__(**switches)
        self.path = Path(path)

    async def fetch_all(self) -> Any:
        await self._before("fetch_all")
        return await asyncio.to_thread(self._read)

    async def update_one(self, ticket_id: str, patch: Mapping[str, Any]) -> dict[str, Any]:
        self.update_calls.append((ticket_id, dict(patch)))
        await self._before("update_one")
        return await asyncio.to_thread(self._write_patch, ticket_id, dict(patch))

    def _read(self) -> Any:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise GatewayError(f"Cannot read tickets file: {e}", cause=e).with_context(
                path=str(self.path), source_name=self.name
            ) from e

    def _write_patch(self, ticket_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        records = self._read()
        if not isinstance(records, list):
            raise GatewayError("Tickets file does not hold a list").with_context(
                path=str(self.path), source_name=self.name
            )
        updated = {"id": ticket_id, **patch, "updatedAt": utc_now_iso()}
        for record in records:
            if isinstance(record, dict) and record.get("id") == ticket_id:
                record.update(updated)
                break
        else:
            raise GatewayError(f"Ticket not found: {ticket_id}", retryable=False).with_context(
                ticket_id=ticket_id, source_name=self.name
            )
        try:
            self.path.write_text(json.dumps(records, indent=2), encoding="utf-8")
        except OSError as e:
            raise GatewayError(f"Cannot write tickets file: {e}", cause=e).with_context(
                path=str(self.path), source_name=self.name
            ) from e
        logger.debug("ticket_written", ticket_id=ticket_id, path=str(self.path))
        return updated


__all__ = ["RemoteGateway", "SimulatedGateway", "JsonFileGateway"]
