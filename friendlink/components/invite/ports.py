"""
Invite component - Port interfaces.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from friendlink.ports.repo import InviteCodeRepoPort, UserDirectoryPort


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


__all__ = ["InviteCodeRepoPort", "TimePort", "UserDirectoryPort"]
