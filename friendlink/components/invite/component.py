"""
Invite component - Shareable invite code issuance and redemption.

Shell Layer - gates the caller, validates input, and turns store outcomes
into outputs. Validation failures come back as InviteError values;
infrastructure failures (InviteConflictError, InviteUnavailableError)
propagate to the caller.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from friendlink.components.deeplinks import DeepLinkFormatter, is_valid_identifier
from friendlink.components.gate import authorize
from friendlink.domain.entities import derive_state, remaining_usages
from friendlink.domain.errors import invite_error
from friendlink.rules.models import InviteRules

from ._impl import InviteCodeStore, mask_code
from .models import (
    CreateInviteInput,
    CreateInviteOutput,
    InviteListOutput,
    InviteSummary,
    ListInvitesInput,
    RedeemInviteInput,
    RedeemOutput,
)
from .ports import TimePort, UserDirectoryPort

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = InviteRules()


def run_create(
    inp: CreateInviteInput,
    store: InviteCodeStore,
    formatter: DeepLinkFormatter,
    directory: UserDirectoryPort,
    time: TimePort,
    limits: InviteRules = DEFAULT_LIMITS,
) -> CreateInviteOutput:
    denied = authorize(inp.creator_user_id, inp.session_user_id)
    if denied:
        return CreateInviteOutput(error=denied)

    if inp.expires_in_seconds is not None:
        if inp.expires_in_seconds <= 0:
            return CreateInviteOutput(
                error=invite_error(
                    "invalid_argument", "Expiration must be positive", "expires_in_seconds"
                )
            )
        if inp.expires_in_seconds > limits.max_expires_in_seconds:
            return CreateInviteOutput(
                error=invite_error(
                    "invalid_argument",
                    f"Expiration cannot exceed {limits.max_expires_in_seconds} seconds",
                    "expires_in_seconds",
                )
            )

    if inp.max_usages is not None:
        if inp.max_usages <= 0:
            return CreateInviteOutput(
                error=invite_error("invalid_argument", "Max usages must be positive", "max_usages")
            )
        if inp.max_usages > limits.max_usages_limit:
            return CreateInviteOutput(
                error=invite_error(
                    "invalid_argument",
                    f"Max usages cannot exceed {limits.max_usages_limit}",
                    "max_usages",
                )
            )

    if not directory.exists(inp.creator_user_id):
        return CreateInviteOutput(error=invite_error("not_found", "User not found"))

    now = time.now_utc()
    expires_at = (
        now + timedelta(seconds=inp.expires_in_seconds)
        if inp.expires_in_seconds is not None
        else None
    )

    invite = store.create(
        inp.creator_user_id,
        now_utc=now,
        expires_at=expires_at,
        max_usages=inp.max_usages,
    )
    logger.info("Invite code %s created by %s", mask_code(invite.code), invite.creator_user_id)

    return CreateInviteOutput(
        code=invite.code,
        deep_link=formatter.format(invite.code),
        expires_at=invite.expires_at,
        max_usages=invite.max_usages,
    )


def run_redeem(
    inp: RedeemInviteInput,
    store: InviteCodeStore,
    formatter: DeepLinkFormatter,
    time: TimePort,
) -> RedeemOutput:
    denied = authorize(inp.requester_user_id, inp.session_user_id)
    if denied:
        return RedeemOutput(error=denied)

    code = formatter.extract_identifier(inp.code)
    if not inp.code.strip():
        return RedeemOutput(
            error=invite_error("invalid_argument", "Invite code cannot be empty", "code")
        )
    if not is_valid_identifier(code):
        # Nothing malformed was ever issued; skip the store round-trip
        return RedeemOutput(error=invite_error("not_found"))

    result = store.consume(code, inp.requester_user_id, time.now_utc())
    if result.error:
        logger.info(
            "Redeem of %s by %s rejected: %s",
            mask_code(code),
            inp.requester_user_id,
            result.error.kind,
        )
        return RedeemOutput(error=result.error)

    assert result.invite is not None
    logger.info(
        "Invite code %s redeemed by %s (%d used)",
        mask_code(code),
        inp.requester_user_id,
        result.invite.usage_count,
    )
    return RedeemOutput(inviter_user_id=result.invite.creator_user_id)


def run_list(
    inp: ListInvitesInput,
    store: InviteCodeStore,
    formatter: DeepLinkFormatter,
    time: TimePort,
) -> InviteListOutput:
    """List the caller's own codes, newest first, with their derived state."""
    denied = authorize(inp.creator_user_id, inp.session_user_id)
    if denied:
        return InviteListOutput(error=denied)

    now = time.now_utc()
    invites = store.list_by_creator(inp.creator_user_id)
    return InviteListOutput(
        invites=tuple(
            InviteSummary(
                invite=invite,
                deep_link=formatter.format(invite.code),
                state=derive_state(invite, now),
                remaining_usages=remaining_usages(invite),
            )
            for invite in invites
        )
    )
