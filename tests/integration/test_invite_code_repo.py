"""
Invite codes against a real SQLite database.

Concurrent redeemers run on separate threads with separate connections, so
the cap is enforced by the guarded UPDATE alone.
"""

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from friendlink.adapters.sqlite.repos import SQLiteInviteCodeRepo, to_iso
from friendlink.components.invite import (
    CreateInviteInput,
    InviteCodeStore,
    RedeemInviteInput,
    StoreConfig,
    run_create,
    run_redeem,
)
from friendlink.domain.entities import InviteCode
from friendlink.domain.errors import CodeCollisionError, TransientStoreError

NOW = datetime(2025, 3, 1, 9, 30, tzinfo=UTC)


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def now_utc(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store(invite_repo, rules) -> InviteCodeStore:
    return InviteCodeStore(invite_repo, config=StoreConfig.from_rules(rules))


def _issue(store, formatter, directory, clock, creator, **kwargs) -> str:
    result = run_create(
        CreateInviteInput(creator_user_id=creator.id, session_user_id=creator.id, **kwargs),
        store=store,
        formatter=formatter,
        directory=directory,
        time=clock,
    )
    assert result.success, result.error
    return result.code


def _redeem(store, formatter, clock, code, requester_id):
    return run_redeem(
        RedeemInviteInput(code=code, requester_user_id=requester_id, session_user_id=requester_id),
        store=store,
        formatter=formatter,
        time=clock,
    )


def _usage_count(db_path: str, code: str) -> int:
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(
            "SELECT usage_count FROM invite_codes WHERE code = ?", (code,)
        ).fetchone()[0]
    finally:
        conn.close()


# --- Repo ---


class TestSQLiteInviteCodeRepo:
    def test_insert_and_read_back(self, invite_repo, make_member) -> None:
        creator = make_member("Creator")
        invite = InviteCode(
            code="abcdEFGH1234ijklMNOP-_",
            creator_user_id=creator.id,
            created_at=NOW,
            expires_at=NOW + timedelta(days=1),
            max_usages=3,
        )

        invite_repo.insert(invite)
        loaded = invite_repo.get_by_code(invite.code)

        assert loaded == invite
        assert loaded.expires_at.tzinfo is not None

    def test_duplicate_code_is_collision(self, invite_repo, make_member) -> None:
        creator = make_member()
        invite_repo.insert(InviteCode(code="same-code", creator_user_id=creator.id))

        with pytest.raises(CodeCollisionError):
            invite_repo.insert(InviteCode(code="same-code", creator_user_id=creator.id))

    def test_unknown_code(self, invite_repo) -> None:
        assert invite_repo.get_by_code("missing") is None
        assert invite_repo.try_consume("missing", uuid4(), NOW) is None

    def test_consume_guard_rejects_creator(self, invite_repo, make_member) -> None:
        creator = make_member()
        invite_repo.insert(InviteCode(code="mine", creator_user_id=creator.id, max_usages=1))

        assert invite_repo.try_consume("mine", creator.id, NOW) is None
        assert invite_repo.get_by_code("mine").usage_count == 0

    def test_consume_guard_rejects_at_expiry_instant(self, invite_repo, make_member) -> None:
        creator = make_member()
        invite_repo.insert(
            InviteCode(code="timed", creator_user_id=creator.id, expires_at=NOW)
        )

        assert invite_repo.try_consume("timed", uuid4(), NOW - timedelta(microseconds=1))
        assert invite_repo.try_consume("timed", uuid4(), NOW) is None

    def test_naive_timestamps_are_treated_as_utc(self) -> None:
        naive = datetime(2025, 1, 1, 12, 0)
        assert to_iso(naive) == "2025-01-01T12:00:00.000000+00:00"

    def test_list_by_creator_newest_first(self, invite_repo, make_member) -> None:
        creator = make_member()
        other = make_member()
        for i in range(3):
            invite_repo.insert(
                InviteCode(
                    code=f"code{i}",
                    creator_user_id=creator.id,
                    created_at=NOW + timedelta(minutes=i),
                )
            )
        invite_repo.insert(InviteCode(code="theirs", creator_user_id=other.id))

        codes = [i.code for i in invite_repo.list_by_creator(creator.id)]

        assert codes == ["code2", "code1", "code0"]

    def test_locked_database_is_transient(self, db_path, make_member) -> None:
        creator = make_member()
        repo = SQLiteInviteCodeRepo(db_path, busy_timeout=0.05)
        repo.insert(InviteCode(code="locked", creator_user_id=creator.id))

        blocker = sqlite3.connect(db_path)
        blocker.execute("BEGIN EXCLUSIVE")
        try:
            with pytest.raises(TransientStoreError):
                repo.try_consume("locked", uuid4(), NOW)
        finally:
            blocker.rollback()
            blocker.close()

        assert repo.get_by_code("locked").usage_count == 0


# --- Store over SQLite ---


class TestRedemptionOverSQLite:
    @pytest.mark.parametrize("cap", [0, 1, 2, 5, 10])
    def test_cap_holds_for_any_n(self, invite_repo, make_member, db_path, cap) -> None:
        creator = make_member()
        invite_repo.insert(InviteCode(code=f"cap{cap}", creator_user_id=creator.id, max_usages=cap))
        store = InviteCodeStore(invite_repo)

        outcomes = [store.consume(f"cap{cap}", uuid4(), NOW) for _ in range(cap + 3)]

        assert sum(o.applied for o in outcomes) == cap
        assert all(o.error.kind == "usage_exhausted" for o in outcomes[cap:])
        assert _usage_count(db_path, f"cap{cap}") == cap

    def test_two_racers_single_use(
        self, store, formatter, directory, clock, make_member, db_path
    ) -> None:
        creator = make_member("Creator")
        racers = [make_member("B"), make_member("C")]
        code = _issue(store, formatter, directory, clock, creator, max_usages=1)

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(
                pool.map(lambda m: _redeem(store, formatter, clock, code, m.id), racers)
            )

        winners = [r for r in results if r.success]
        losers = [r for r in results if not r.success]
        assert len(winners) == 1
        assert winners[0].inviter_user_id == creator.id
        assert len(losers) == 1
        assert losers[0].error.kind == "usage_exhausted"
        assert _usage_count(db_path, code) == 1

    @pytest.mark.parametrize(("cap", "callers"), [(3, 12), (5, 20)])
    def test_many_racers_bounded(
        self, store, formatter, directory, clock, make_member, db_path, cap, callers
    ) -> None:
        creator = make_member("Creator")
        code = _issue(store, formatter, directory, clock, creator, max_usages=cap)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(
                pool.map(lambda _: _redeem(store, formatter, clock, code, uuid4()), range(callers))
            )

        assert sum(r.success for r in results) == cap
        assert _usage_count(db_path, code) == cap

    def test_expired_before_exhausted(
        self, store, formatter, directory, clock, make_member, db_path
    ) -> None:
        creator = make_member("Creator")
        code = _issue(
            store, formatter, directory, clock, creator, expires_in_seconds=60, max_usages=5
        )
        clock.now = NOW + timedelta(seconds=61)

        result = _redeem(store, formatter, clock, code, uuid4())

        assert result.error.kind == "expired"
        assert _usage_count(db_path, code) == 0

    def test_unlimited_code_thousand_redemptions(
        self, store, formatter, directory, clock, make_member, db_path
    ) -> None:
        creator = make_member("Creator")
        code = _issue(store, formatter, directory, clock, creator)

        for _ in range(1000):
            assert _redeem(store, formatter, clock, code, uuid4()).success

        assert _usage_count(db_path, code) == 1000

    def test_self_redemption_leaves_row_untouched(
        self, store, formatter, directory, clock, make_member, db_path
    ) -> None:
        creator = make_member("Creator")
        code = _issue(store, formatter, directory, clock, creator, max_usages=1)

        result = _redeem(store, formatter, clock, code, creator.id)

        assert result.error.kind == "self_referential"
        assert _usage_count(db_path, code) == 0

    def test_create_for_unregistered_member(self, store, formatter, directory, clock) -> None:
        ghost = uuid4()
        result = run_create(
            CreateInviteInput(creator_user_id=ghost, session_user_id=ghost),
            store=store,
            formatter=formatter,
            directory=directory,
            time=clock,
        )

        assert result.error.kind == "not_found"
