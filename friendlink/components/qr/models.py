"""
QR component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from friendlink.domain.errors import InviteError


@dataclass(frozen=True)
class ResolveQrInput:
    """Input for resolving a scanned QR identifier."""

    qr_code_id: str
    requester_user_id: UUID
    session_user_id: UUID | None


@dataclass(frozen=True)
class MyQrInput:
    """Input for fetching the caller's own QR identity."""

    user_id: UUID
    session_user_id: UUID | None


@dataclass(frozen=True)
class ResolveOutput:
    inviter_user_id: UUID | None = None
    error: InviteError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class MyQrOutput:
    qr_code_id: str | None = None
    deep_link: str | None = None
    error: InviteError | None = None

    @property
    def success(self) -> bool:
        return self.error is None
