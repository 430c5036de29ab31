from datetime import datetime
from typing import Protocol
from uuid import UUID

from friendlink.domain.entities import InviteCode, Member


class InviteCodeRepoPort(Protocol):
    def insert(self, invite: InviteCode) -> InviteCode:
        """Persist a new code. Raises CodeCollisionError if the code exists."""
        ...

    def try_consume(
        self, code: str, requester_user_id: UUID, now_utc: datetime
    ) -> InviteCode | None:
        """
        Atomically add one use if the code is active and not owned by the requester.

        Returns the updated row, or None if the guard did not hold.
        """
        ...

    def get_by_code(self, code: str) -> InviteCode | None:
        ...

    def list_by_creator(self, creator_user_id: UUID) -> list[InviteCode]:
        ...


class UserDirectoryPort(Protocol):
    def exists(self, user_id: UUID) -> bool:
        ...

    def id_for(self, qr_code_id: str) -> UUID | None:
        ...

    def get_by_id(self, user_id: UUID) -> Member | None:
        ...
