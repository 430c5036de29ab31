import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from friendlink.domain.entities import InviteCode, Member
from friendlink.domain.errors import CodeCollisionError, TransientStoreError

DEFAULT_BUSY_TIMEOUT = 5.0

_TRANSIENT_MARKERS = ("locked", "busy", "unable to open", "disk i/o")


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def to_iso(dt: datetime) -> str:
    # Fixed-width UTC text so SQL string comparison orders like time
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    return datetime.fromisoformat(s) if s else None


@contextmanager
def translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.OperationalError as e:
        if any(marker in str(e).lower() for marker in _TRANSIENT_MARKERS):
            raise TransientStoreError(str(e)) from e
        raise


class _SQLiteRepo:
    def __init__(self, db_path: str, busy_timeout: float = DEFAULT_BUSY_TIMEOUT):
        self.db_path = db_path
        self.busy_timeout = busy_timeout

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn


class SQLiteInviteCodeRepo(_SQLiteRepo):
    def insert(self, invite: InviteCode) -> InviteCode:
        with translate_errors():
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO invite_codes (
                        id, code, creator_user_id, created_at,
                        expires_at, max_usages, usage_count
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        str(invite.id),
                        invite.code,
                        str(invite.creator_user_id),
                        to_iso(invite.created_at),
                        to_iso(invite.expires_at) if invite.expires_at else None,
                        invite.max_usages,
                        invite.usage_count,
                    ),
                )
                conn.commit()
                return invite
            except sqlite3.IntegrityError as e:
                conn.rollback()
                if "invite_codes.code" in str(e):
                    raise CodeCollisionError(invite.code) from e
                raise
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def try_consume(
        self, code: str, requester_user_id: UUID, now_utc: datetime
    ) -> InviteCode | None:
        with translate_errors():
            conn = self._get_conn()
            try:
                # Compare-and-swap: the guard and the increment are one statement
                cursor = conn.execute(
                    """
                    UPDATE invite_codes
                    SET usage_count = usage_count + 1
                    WHERE code = ?
                      AND creator_user_id <> ?
                      AND (max_usages IS NULL OR usage_count < max_usages)
                      AND (expires_at IS NULL OR expires_at > ?)
                    RETURNING *
                """,
                    (code, str(requester_user_id), to_iso(now_utc)),
                )

                rows = cursor.fetchall()
                conn.commit()

                if not rows:
                    return None
                return self._map_row(rows[0])
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def get_by_code(self, code: str) -> InviteCode | None:
        with translate_errors():
            conn = self._get_conn()
            try:
                row = conn.execute(
                    "SELECT * FROM invite_codes WHERE code = ?", (code,)
                ).fetchone()
                if not row:
                    return None
                return self._map_row(row)
            finally:
                conn.close()

    def list_by_creator(self, creator_user_id: UUID) -> list[InviteCode]:
        with translate_errors():
            conn = self._get_conn()
            try:
                rows = conn.execute(
                    "SELECT * FROM invite_codes WHERE creator_user_id = ? "
                    "ORDER BY created_at DESC",
                    (str(creator_user_id),),
                ).fetchall()
                return [self._map_row(r) for r in rows]
            finally:
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> InviteCode:
        return InviteCode(
            id=UUID(row["id"]),
            code=row["code"],
            creator_user_id=UUID(row["creator_user_id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            expires_at=parse_dt(row["expires_at"]),
            max_usages=row["max_usages"],
            usage_count=row["usage_count"],
        )


class SQLiteUserDirectory(_SQLiteRepo):
    """Read side of the members table, plus registration for seeding and tests."""

    def save(self, member: Member) -> Member:
        with translate_errors():
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO members (id, display_name, qr_code_id, created_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        display_name=excluded.display_name
                """,
                    (
                        str(member.id),
                        member.display_name,
                        member.qr_code_id,
                        to_iso(member.created_at),
                    ),
                )
                conn.commit()
                return member
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def exists(self, user_id: UUID) -> bool:
        with translate_errors():
            conn = self._get_conn()
            try:
                row = conn.execute(
                    "SELECT 1 AS found FROM members WHERE id = ?", (str(user_id),)
                ).fetchone()
                return row is not None
            finally:
                conn.close()

    def id_for(self, qr_code_id: str) -> UUID | None:
        with translate_errors():
            conn = self._get_conn()
            try:
                row = conn.execute(
                    "SELECT id FROM members WHERE qr_code_id = ?", (qr_code_id,)
                ).fetchone()
                return UUID(row["id"]) if row else None
            finally:
                conn.close()

    def get_by_id(self, user_id: UUID) -> Member | None:
        with translate_errors():
            conn = self._get_conn()
            try:
                row = conn.execute(
                    "SELECT * FROM members WHERE id = ?", (str(user_id),)
                ).fetchone()
                if not row:
                    return None
                return Member(
                    id=UUID(row["id"]),
                    display_name=row["display_name"],
                    qr_code_id=row["qr_code_id"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
            finally:
                conn.close()
