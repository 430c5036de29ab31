import secrets
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
InviteCodeState = Literal["active", "exhausted", "expired"]


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- Members (owned by the profile collaborator) ---

def new_qr_code_id() -> str:
    return secrets.token_urlsafe(16)


class Member(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    display_name: str
    qr_code_id: str = Field(default_factory=new_qr_code_id)
    created_at: datetime = Field(default_factory=utc_now)


# --- Invite codes ---

class InviteCode(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    code: str
    creator_user_id: UUID
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime | None = None
    max_usages: int | None = Field(default=None, ge=0)
    usage_count: int = Field(default=0, ge=0)


def derive_state(invite: InviteCode, now: datetime) -> InviteCodeState:
    """
    Classify a code at observation time.

    Expiry wins over exhaustion when both hold. Neither terminal state can
    return to active because usage_count only grows and time only advances.
    """
    if invite.expires_at is not None and now >= invite.expires_at:
        return "expired"
    if invite.max_usages is not None and invite.usage_count >= invite.max_usages:
        return "exhausted"
    return "active"


def remaining_usages(invite: InviteCode) -> int | None:
    if invite.max_usages is None:
        return None
    return max(invite.max_usages - invite.usage_count, 0)
