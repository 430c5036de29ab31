import sqlite3

import pytest

from friendlink.adapters.directory import RetryingUserDirectory
from friendlink.adapters.sqlite.repos import SQLiteUserDirectory
from friendlink.components.qr import MyQrInput, ResolveQrInput, run_my_qr, run_resolve
from friendlink.domain.entities import new_qr_code_id
from friendlink.domain.errors import InviteUnavailableError


def _member_snapshot(db_path: str) -> list[tuple]:
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute("SELECT * FROM members ORDER BY id").fetchall()
    finally:
        conn.close()


def test_scan_resolves_owner(directory, formatter, make_member):
    owner = make_member("Owner")
    scanner = make_member("Scanner")

    result = run_resolve(
        ResolveQrInput(
            qr_code_id=formatter.format(owner.qr_code_id),
            requester_user_id=scanner.id,
            session_user_id=scanner.id,
        ),
        directory=directory,
        formatter=formatter,
    )

    assert result.inviter_user_id == owner.id


def test_random_identifier_is_not_found_and_writes_nothing(
    directory, formatter, make_member, db_path
):
    scanner = make_member("Scanner")
    before = _member_snapshot(db_path)

    result = run_resolve(
        ResolveQrInput(
            qr_code_id=new_qr_code_id(),
            requester_user_id=scanner.id,
            session_user_id=scanner.id,
        ),
        directory=directory,
        formatter=formatter,
    )

    assert result.error.kind == "not_found"
    assert _member_snapshot(db_path) == before


def test_my_qr_round_trips_through_directory(directory, formatter, make_member):
    owner = make_member("Owner")

    result = run_my_qr(
        MyQrInput(user_id=owner.id, session_user_id=owner.id),
        directory=directory,
        formatter=formatter,
    )

    assert result.qr_code_id == owner.qr_code_id
    assert directory.id_for(result.qr_code_id) == owner.id
    assert directory.get_by_id(owner.id).display_name == "Owner"


def test_locked_database_surfaces_as_unavailable(db_path, formatter, make_member):
    owner = make_member("Owner")
    scanner = make_member("Scanner")
    sleeps: list[float] = []
    directory = RetryingUserDirectory(
        SQLiteUserDirectory(db_path, busy_timeout=0.05), (0.01, 0.02), sleeps.append
    )

    blocker = sqlite3.connect(db_path)
    blocker.execute("BEGIN EXCLUSIVE")
    try:
        with pytest.raises(InviteUnavailableError):
            run_resolve(
                ResolveQrInput(
                    qr_code_id=owner.qr_code_id,
                    requester_user_id=scanner.id,
                    session_user_id=scanner.id,
                ),
                directory=directory,
                formatter=formatter,
            )
    finally:
        blocker.rollback()
        blocker.close()

    assert sleeps == [0.01, 0.02]
    # Lock released: the same directory resolves normally again
    assert directory.id_for(owner.qr_code_id) == owner.id
