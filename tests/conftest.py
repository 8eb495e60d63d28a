"""
Shared pytest fixtures and configuration for ticketdesk tests.

This module provides:
- The five-ticket sample payload most store and projection tests start from
- Simulated gateway, in-memory offline store and connectivity fixtures
- A fixed clock so timestamps in assertions are deterministic
- structlog reset between tests (the CLI reconfigures logging per command)
"""

import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
import structlog

# Ensure ticketdesk package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ticketdesk.connectivity import ConnectivityMonitor
from ticketdesk.gateway import SimulatedGateway
from ticketdesk.storage import InMemoryOfflineStore
from ticketdesk.store import TicketStore


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path) or "cli" in test_path.name:
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging configuration a test (or CLI command) installed."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Sample data
# =============================================================================


FIXED_NOW = datetime(2024, 9, 1, 12, 0, 0, tzinfo=UTC)


def make_raw_tickets() -> list[dict[str, Any]]:
    """Five clean wire-format tickets."""
    return [
        {
            "id": "TKT-001",
            "title": "Server crash on login",
            "status": "open",
            "priority": 1,
            "assignee": "Alice",
            "createdAt": "2024-06-15T10:00:00.000Z",
            "updatedAt": "2024-06-15T10:00:00.000Z",
            "tags": ["bug", "backend"],
        },
        {
            "id": "TKT-002",
            "title": "Add dark mode",
            "status": "in_progress",
            "priority": 3,
            "assignee": "Bob",
            "createdAt": "2024-07-01T09:00:00.000Z",
            "updatedAt": "2024-07-02T09:00:00.000Z",
            "tags": ["feature", "frontend"],
        },
        {
            "id": "TKT-003",
            "title": "Database timeout under load",
            "status": "blocked",
            "priority": 2,
            "createdAt": "2024-05-10T08:30:00.000Z",
            "updatedAt": "2024-05-12T08:30:00.000Z",
            "tags": ["bug", "urgent"],
            "_blockedReason": "Waiting on DBA",
        },
        {
            "id": "TKT-004",
            "title": "Update API documentation",
            "status": "closed",
            "priority": 5,
            "assignee": "Diana",
            "createdAt": "2024-03-20T14:00:00.000Z",
            "updatedAt": "2024-04-01T14:00:00.000Z",
            "tags": ["documentation"],
            "meta": {"source": "email", "customerTier": "pro"},
        },
        {
            "id": "TKT-005",
            "title": "Mobile layout broken",
            "status": "open",
            "priority": 2,
            "assignee": "Carlos",
            "createdAt": "2024-08-01T16:45:00.000Z",
            "updatedAt": "2024-08-01T16:45:00.000Z",
            "tags": ["bug", "frontend", "mobile"],
        },
    ]


@pytest.fixture
def raw_tickets() -> list[dict[str, Any]]:
    return make_raw_tickets()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


# =============================================================================
# Store collaborators
# =============================================================================


@pytest.fixture
def gateway(raw_tickets) -> SimulatedGateway:
    return SimulatedGateway(raw_tickets)


@pytest.fixture
def cache() -> InMemoryOfflineStore:
    return InMemoryOfflineStore()


@pytest.fixture
def connectivity() -> ConnectivityMonitor:
    return ConnectivityMonitor(initial=True)


@pytest.fixture
def store(gateway, cache, connectivity, clock) -> TicketStore:
    """Unstarted store; tests call ``start()`` when they need connectivity events."""
    return TicketStore(gateway, cache, connectivity, clock=clock)
