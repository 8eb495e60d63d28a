"""ticketdesk command-line interface."""

from ticketdesk.cli.app import app

__all__ = ["app"]
