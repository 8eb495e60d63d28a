"""Settings for ticketdesk.

Configuration is explicit, validated, and environment-driven: every field can
be overridden with a ``TICKETDESK_`` prefixed environment variable or a
``.env`` file.

Examples:
    >>> from ticketdesk.core.settings import TicketDeskSettings
    >>> s = TicketDeskSettings(data_dir="/tmp/desk")
    >>> s.resolved_cache_path()
    PosixPath('/tmp/desk/offline.db')
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TicketDeskSettings(BaseSettings):
    """Runtime settings.

    Fields
    ──────
    log_level        : structlog log level
    json_logs        : force JSON (True) / console (False) logs; None = auto
    data_dir         : directory holding the offline cache and tickets file
    cache_path       : sqlite offline cache (default: data_dir/offline.db)
    tickets_file     : JSON file backing the file gateway (default: data_dir/tickets.json)
    gateway_latency  : artificial delay (seconds) added to gateway calls
    probe_*          : TCP reachability probe used by the polling monitor
    """

    model_config = SettingsConfigDict(
        env_prefix="TICKETDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".ticketdesk",
        description="Persistent data directory",
    )
    cache_path: Path | None = None
    tickets_file: Path | None = None

    # ── Gateway ──────────────────────────────────────────────────
    gateway_latency: float = Field(default=0.0, ge=0.0)

    # ── Connectivity probe ───────────────────────────────────────
    probe_host: str = "1.1.1.1"
    probe_port: int = Field(default=53, gt=0, lt=65536)
    probe_interval: float = Field(default=5.0, gt=0.0)
    probe_timeout: float = Field(default=2.0, gt=0.0)

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level

    def resolved_cache_path(self) -> Path:
        return self.cache_path or self.data_dir / "offline.db"

    def resolved_tickets_file(self) -> Path:
        return self.tickets_file or self.data_dir / "tickets.json"


@lru_cache(maxsize=1)
def get_settings() -> TicketDeskSettings:
    """Process-wide settings, read once from the environment."""
    return TicketDeskSettings()


__all__ = ["TicketDeskSettings", "get_settings"]
