import time
from collections.abc import Callable, Sequence
from functools import partial
from uuid import UUID

from friendlink.domain.entities import Member
from friendlink.domain.retry import DEFAULT_BACKOFF_SECONDS, call_with_retry
from friendlink.ports.repo import UserDirectoryPort


class RetryingUserDirectory:
    """
    UserDirectoryPort that retries transient store faults with backoff.

    Callers see either a result or InviteUnavailableError, never the
    adapter's TransientStoreError.
    """

    def __init__(
        self,
        directory: UserDirectoryPort,
        backoff_seconds: Sequence[float] = DEFAULT_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._directory = directory
        self._backoff = tuple(backoff_seconds)
        self._sleep = sleep

    def exists(self, user_id: UUID) -> bool:
        return call_with_retry(
            "directory.exists",
            partial(self._directory.exists, user_id),
            self._backoff,
            self._sleep,
        )

    def id_for(self, qr_code_id: str) -> UUID | None:
        return call_with_retry(
            "directory.id_for",
            partial(self._directory.id_for, qr_code_id),
            self._backoff,
            self._sleep,
        )

    def get_by_id(self, user_id: UUID) -> Member | None:
        return call_with_retry(
            "directory.get_by_id",
            partial(self._directory.get_by_id, user_id),
            self._backoff,
            self._sleep,
        )
