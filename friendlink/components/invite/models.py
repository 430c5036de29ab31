"""
Invite component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from friendlink.domain.entities import InviteCode, InviteCodeState
from friendlink.domain.errors import InviteError

# --- Input Models ---


@dataclass(frozen=True)
class CreateInviteInput:
    """Input for creating a shareable invite code."""

    creator_user_id: UUID
    session_user_id: UUID | None
    expires_in_seconds: int | None = None
    max_usages: int | None = None


@dataclass(frozen=True)
class RedeemInviteInput:
    """Input for redeeming a code (bare code or deep link)."""

    code: str
    requester_user_id: UUID
    session_user_id: UUID | None


@dataclass(frozen=True)
class ListInvitesInput:
    """Input for listing the caller's own codes."""

    creator_user_id: UUID
    session_user_id: UUID | None


# --- Output Models ---


@dataclass(frozen=True)
class CreateInviteOutput:
    code: str | None = None
    deep_link: str | None = None
    expires_at: datetime | None = None
    max_usages: int | None = None
    error: InviteError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RedeemOutput:
    inviter_user_id: UUID | None = None
    error: InviteError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class InviteSummary:
    """A code as seen by its creator."""

    invite: InviteCode
    deep_link: str
    state: InviteCodeState
    remaining_usages: int | None


@dataclass(frozen=True)
class InviteListOutput:
    invites: tuple[InviteSummary, ...] = ()
    error: InviteError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


# --- Store results ---


@dataclass(frozen=True)
class ConsumeResult:
    """Outcome of one atomic consume attempt."""

    invite: InviteCode | None = None
    error: InviteError | None = None

    @property
    def applied(self) -> bool:
        return self.invite is not None
