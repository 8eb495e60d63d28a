"""
ticketdesk: offline-first support ticket synchronization.

Modules
-------
core          errors, logging, settings, timestamps, models, filters, reactive
sanitizer     untrusted records → canonical tickets
validators    business rules applied before an edit
projection    filter / sort / column helpers (pure)
connectivity  live online/offline signal
storage       offline store protocol + memory / SQLite backends
gateway       remote gateway protocol + simulated / JSON-file gateways
store         TicketStore: state container and sync engine
factory       settings → wired TicketStore
generator     synthetic dirty ticket files
cli           Typer command-line interface
"""

__version__ = "0.1.0"

from ticketdesk.connectivity import ConnectivityMonitor, ProbeConnectivityMonitor
from ticketdesk.core.errors import TicketDeskError
from ticketdesk.core.models import PendingChange, SyncState, Ticket, TicketStatus
from ticketdesk.sanitizer import sanitize_tickets
from ticketdesk.store import ReplayReport, TicketState, TicketStore

__all__ = [
    "__version__",
    "ConnectivityMonitor",
    "ProbeConnectivityMonitor",
    "TicketDeskError",
    "PendingChange",
    "SyncState",
    "Ticket",
    "TicketStatus",
    "sanitize_tickets",
    "ReplayReport",
    "TicketState",
    "TicketStore",
]
