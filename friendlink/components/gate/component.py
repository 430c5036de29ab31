"""
Authorization gate - caller identity must match the claimed user.

Every cross-user entry point (create, redeem, QR resolve, listing) takes a
user id parameter. It is only honoured when it equals the identity of the
authenticated session; a mismatch is rejected, never substituted.
"""

from __future__ import annotations

from uuid import UUID

from friendlink.domain.errors import InviteError, invite_error


def authorize(claimed_user_id: UUID | None, session_user_id: UUID | None) -> InviteError | None:
    """Return None when the caller may act as claimed_user_id."""
    if session_user_id is None:
        return invite_error("unauthenticated")

    if claimed_user_id is None or claimed_user_id != session_user_id:
        return invite_error("unauthorized", field="requester_user_id")

    return None
