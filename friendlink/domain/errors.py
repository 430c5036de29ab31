"""
Error taxonomy for invite issuance, redemption and QR resolution.

Validation failures are returned as InviteError values and are never worth
retrying. Infrastructure failures are raised as InviteInfrastructureError
subclasses so callers cannot mistake "your code doesn't work" for "the
system is unavailable".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ValidationErrorKind = Literal[
    "not_found",
    "expired",
    "usage_exhausted",
    "self_referential",
    "unauthenticated",
    "unauthorized",
    "invalid_argument",
]

InfrastructureErrorKind = Literal["conflict", "transient"]

ErrorKind = ValidationErrorKind | InfrastructureErrorKind


@dataclass(frozen=True)
class InviteError:
    """Deterministic validation failure."""

    kind: ValidationErrorKind
    message: str
    field: str | None = None


DEFAULT_MESSAGES: dict[ValidationErrorKind, str] = {
    "not_found": "Invite code not found",
    "expired": "Invite code has expired",
    "usage_exhausted": "Invite code has reached maximum usage limit",
    "self_referential": "Cannot send friend request to yourself",
    "unauthenticated": "User is not authenticated",
    "unauthorized": "Requesting user must match authenticated user",
    "invalid_argument": "Invalid request",
}


def invite_error(
    kind: ValidationErrorKind,
    message: str | None = None,
    field: str | None = None,
) -> InviteError:
    return InviteError(kind=kind, message=message or DEFAULT_MESSAGES[kind], field=field)


# --- Infrastructure (raised) ---


class InviteInfrastructureError(Exception):
    """Store-level failure that survived the retry budget."""

    kind: InfrastructureErrorKind = "transient"


class InviteConflictError(InviteInfrastructureError):
    """Code generation kept colliding with existing codes."""

    kind: InfrastructureErrorKind = "conflict"


class InviteUnavailableError(InviteInfrastructureError):
    """Backing store stayed unavailable across retries."""

    kind: InfrastructureErrorKind = "transient"


# --- Adapter signals (only call_with_retry handles these) ---


class CodeCollisionError(Exception):
    """Insert rejected because the code already exists."""


class TransientStoreError(Exception):
    """Store briefly unavailable (locked, busy, timed out)."""
