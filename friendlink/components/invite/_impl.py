"""
InviteCodeStore - issuance and atomic consumption of invite codes.

Key behaviors:
- Codes come from at least 16 bytes of `secrets` randomness, URL-safe, unpadded
- A colliding code is regenerated up to max_create_attempts, then InviteConflictError
- usage_count only ever changes through the repo's guarded update (compare-and-swap)
- Transient store faults are retried with bounded backoff, then InviteUnavailableError
- After a rejected consume, a diagnostic read explains why; it never decides a write
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import TypeVar
from uuid import UUID

from friendlink.domain.entities import InviteCode, derive_state
from friendlink.domain.errors import (
    CodeCollisionError,
    InviteConflictError,
    InviteError,
    invite_error,
)
from friendlink.domain.retry import call_with_retry
from friendlink.rules.models import Rules

from .models import ConsumeResult
from .ports import InviteCodeRepoPort

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_CODE_BYTES = 16


# --- Configuration ---


@dataclass(frozen=True)
class StoreConfig:
    """Store configuration from rules."""

    code_bytes: int = MIN_CODE_BYTES
    max_create_attempts: int = 5
    retry_backoff_seconds: tuple[float, ...] = (0.05, 0.2, 0.5)

    @classmethod
    def from_rules(cls, rules: Rules) -> StoreConfig:
        return cls(
            code_bytes=rules.invites.code_bytes,
            max_create_attempts=rules.invites.max_create_attempts,
            retry_backoff_seconds=tuple(rules.storage.retry_backoff_seconds),
        )


DEFAULT_CONFIG = StoreConfig()


# --- Pure Functions ---


def generate_code(num_bytes: int = MIN_CODE_BYTES) -> str:
    """Unguessable URL-safe token; 16 bytes encode to 22 characters."""
    if num_bytes < MIN_CODE_BYTES:
        raise ValueError(f"Invite codes need at least {MIN_CODE_BYTES} random bytes")
    return secrets.token_urlsafe(num_bytes)


def mask_code(code: str) -> str:
    return f"{code[:4]}..." if len(code) > 4 else "..."


def classify_rejection(
    invite: InviteCode | None,
    requester_user_id: UUID,
    now_utc: datetime,
) -> InviteError:
    """Explain why the guarded update did not apply."""
    if invite is None:
        return invite_error("not_found")

    if invite.creator_user_id == requester_user_id:
        return invite_error("self_referential")

    state = derive_state(invite, now_utc)
    if state == "expired":
        return invite_error("expired")
    if state == "exhausted":
        return invite_error("usage_exhausted")

    # usage_count never decreases, so the guard can only have failed on the cap
    logger.warning(
        "Consume rejected but code %s reads as active; reporting exhaustion",
        mask_code(invite.code),
    )
    return invite_error("usage_exhausted")


# --- Store ---


class InviteCodeStore:
    """
    The only code path allowed to create codes or change usage_count.

    Correctness under concurrent redeemers comes from the repo's single
    conditional update, not from any lock held here, so it holds across
    threads and processes alike.
    """

    def __init__(
        self,
        repo: InviteCodeRepoPort,
        config: StoreConfig = DEFAULT_CONFIG,
        generator: Callable[[int], str] = generate_code,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._repo = repo
        self._config = config
        self._generate = generator
        self._sleep = sleep

    def _with_retry(self, op_name: str, fn: Callable[[], T]) -> T:
        return call_with_retry(op_name, fn, self._config.retry_backoff_seconds, self._sleep)

    def create(
        self,
        creator_user_id: UUID,
        now_utc: datetime,
        expires_at: datetime | None = None,
        max_usages: int | None = None,
    ) -> InviteCode:
        attempts = self._config.max_create_attempts
        for attempt in range(1, attempts + 1):
            invite = InviteCode(
                code=self._generate(self._config.code_bytes),
                creator_user_id=creator_user_id,
                created_at=now_utc,
                expires_at=expires_at,
                max_usages=max_usages,
                usage_count=0,
            )
            try:
                return self._with_retry("create", partial(self._repo.insert, invite))
            except CodeCollisionError:
                # A retried insert may have landed before its error surfaced
                existing = self._with_retry("create", partial(self._repo.get_by_code, invite.code))
                if existing is not None and existing.id == invite.id:
                    return existing
                logger.warning("Invite code collision on attempt %d/%d", attempt, attempts)

        logger.error("Invite code generation collided %d times in a row", attempts)
        raise InviteConflictError(f"Could not generate a unique invite code in {attempts} attempts")

    def consume(self, code: str, requester_user_id: UUID, now_utc: datetime) -> ConsumeResult:
        updated = self._with_retry(
            "consume", partial(self._repo.try_consume, code, requester_user_id, now_utc)
        )
        if updated is not None:
            return ConsumeResult(invite=updated)

        current = self._with_retry("diagnose", partial(self._repo.get_by_code, code))
        return ConsumeResult(error=classify_rejection(current, requester_user_id, now_utc))

    def list_by_creator(self, creator_user_id: UUID) -> list[InviteCode]:
        return self._with_retry("list", partial(self._repo.list_by_creator, creator_user_id))
