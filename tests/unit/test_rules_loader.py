from pathlib import Path

import pytest

from friendlink.components.invite import StoreConfig
from friendlink.rules.loader import load_rules

RULES_PATH = Path(__file__).resolve().parents[2] / "rules.yaml"


def test_shipped_rules_load():
    rules = load_rules(RULES_PATH)

    assert rules.deep_links.scheme == "walkingapp"
    assert rules.invites.code_bytes == 16
    assert rules.storage.retry_backoff_seconds == [0.05, 0.2, 0.5]


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "nope.yaml")


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("")

    rules = load_rules(path)

    assert rules.invites.max_create_attempts == 5
    assert rules.auth.token_ttl_minutes == 1440


def test_fenced_block_is_extracted(tmp_path):
    path = tmp_path / "rules.md"
    path.write_text("# Rules\n\n```yaml\ndeep_links:\n  scheme: friends\n```\n\ntrailing prose\n")

    assert load_rules(path).deep_links.scheme == "friends"


def test_invalid_yaml(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("invites: [unclosed")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_rules(path)


@pytest.mark.parametrize(
    "content",
    [
        "invites:\n  code_bytes: 8\n",
        "deep_links:\n  scheme: 'Not A Scheme'\n",
        "storage:\n  busy_timeout_seconds: 0\n",
    ],
)
def test_schema_violations(tmp_path, content):
    path = tmp_path / "rules.yaml"
    path.write_text(content)

    with pytest.raises(ValueError, match="validation failed"):
        load_rules(path)


def test_store_config_follows_rules(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(
        "invites:\n  code_bytes: 24\n  max_create_attempts: 2\n"
        "storage:\n  retry_backoff_seconds: [0.01]\n"
    )

    config = StoreConfig.from_rules(load_rules(path))

    assert config == StoreConfig(
        code_bytes=24, max_create_attempts=2, retry_backoff_seconds=(0.01,)
    )


def test_top_level_must_be_a_mapping(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("- deep_links\n- invites\n")

    with pytest.raises(ValueError, match="mapping"):
        load_rules(path)


def test_directory_is_not_a_rules_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path)
