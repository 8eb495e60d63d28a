"""Tests for ticketdesk.gateway: simulated and JSON-file gateways."""

import json

import pytest

from ticketdesk.core.errors import ErrorCategory, GatewayError, NetworkError
from ticketdesk.gateway import JsonFileGateway, RemoteGateway, SimulatedGateway


class TestSimulatedGateway:
    def test_satisfies_protocol(self):
        assert isinstance(SimulatedGateway(), RemoteGateway)

    @pytest.mark.asyncio
    async def test_fetch_returns_copies(self, raw_tickets):
        gateway = SimulatedGateway(raw_tickets)
        fetched = await gateway.fetch_all()
        fetched[0]["title"] = "mutated"
        assert gateway.records[0]["title"] == "Server crash on login"

    @pytest.mark.asyncio
    async def test_update_echoes_and_stores(self, raw_tickets):
        gateway = SimulatedGateway(raw_tickets)
        result = await gateway.update_one("TKT-002", {"priority": 1})
        assert result["id"] == "TKT-002"
        assert result["priority"] == 1
        assert result["updatedAt"].endswith("Z")
        assert gateway.records[1]["priority"] == 1
        assert gateway.update_calls == [("TKT-002", {"priority": 1})]

    @pytest.mark.asyncio
    async def test_fail_switches(self):
        gateway = SimulatedGateway([], fail_fetch=True, fail_updates=True)
        with pytest.raises(GatewayError, match="Failed to load tickets"):
            await gateway.fetch_all()
        with pytest.raises(GatewayError, match="Failed to update ticket"):
            await gateway.update_one("TKT-001", {})
        assert len(gateway.update_calls) == 1

    @pytest.mark.asyncio
    async def test_unreachable_raises_network_error(self):
        gateway = SimulatedGateway([], reachable=False)
        with pytest.raises(NetworkError) as exc_info:
            await gateway.fetch_all()
        assert exc_info.value.category is ErrorCategory.NETWORK
        assert exc_info.value.context.operation == "fetch_all"


class TestJsonFileGateway:
    @pytest.mark.asyncio
    async def test_fetch_all_passes_content_through(self, tmp_path):
        path = tmp_path / "tickets.json"
        path.write_text(json.dumps([{"id": "TKT-1"}, "junk"]))
        assert await JsonFileGateway(path).fetch_all() == [{"id": "TKT-1"}, "junk"]

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(GatewayError) as exc_info:
            await JsonFileGateway(tmp_path / "absent.json").fetch_all()
        assert exc_info.value.context.path.endswith("absent.json")

    @pytest.mark.asyncio
    async def test_malformed_json(self, tmp_path):
        path = tmp_path / "tickets.json"
        path.write_text("{not json")
        with pytest.raises(GatewayError):
            await JsonFileGateway(path).fetch_all()

    @pytest.mark.asyncio
    async def test_update_writes_back(self, tmp_path, raw_tickets):
        path = tmp_path / "tickets.json"
        path.write_text(json.dumps(raw_tickets))
        gateway = JsonFileGateway(path)
        await gateway.update_one("TKT-003", {"status": "open", "title": "Database timeout fixed"})
        records = json.loads(path.read_text())
        assert records[2]["status"] == "open"
        assert records[2]["title"] == "Database timeout fixed"
        assert records[2]["updatedAt"] != raw_tickets[2]["updatedAt"]

    @pytest.mark.asyncio
    async def test_update_unknown_id_not_retryable(self, tmp_path, raw_tickets):
        path = tmp_path / "tickets.json"
        path.write_text(json.dumps(raw_tickets))
        with pytest.raises(GatewayError) as exc_info:
            await JsonFileGateway(path).update_one("TKT-404", {"title": "x"})
        assert exc_info.value.retryable is False
        assert json.loads(path.read_text()) == raw_tickets
