from pathlib import Path

import pytest

from friendlink.adapters.sqlite.migrator import SQLiteMigrator
from friendlink.adapters.sqlite.repos import SQLiteInviteCodeRepo, SQLiteUserDirectory
from friendlink.components.deeplinks import DeepLinkFormatter
from friendlink.domain.entities import Member
from friendlink.rules.loader import load_rules
from friendlink.rules.models import Rules

RULES_PATH = Path(__file__).resolve().parents[1] / "rules.yaml"


@pytest.fixture
def rules() -> Rules:
    """The real rules file shipped at the project root."""
    return load_rules(RULES_PATH)


@pytest.fixture
def db_path(tmp_path) -> str:
    path = str(tmp_path / "friendlink.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def directory(db_path) -> SQLiteUserDirectory:
    return SQLiteUserDirectory(db_path)


@pytest.fixture
def invite_repo(db_path) -> SQLiteInviteCodeRepo:
    return SQLiteInviteCodeRepo(db_path)


@pytest.fixture
def formatter(rules) -> DeepLinkFormatter:
    return DeepLinkFormatter(rules.deep_links.scheme)


@pytest.fixture
def make_member(directory):
    """Register members; invite codes reference their creator."""

    def _make(display_name: str = "Member") -> Member:
        return directory.save(Member(display_name=display_name))

    return _make
