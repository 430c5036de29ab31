"""
Operator CLI.

Runs as a trusted local operator: the user id passed on the command line is
treated as the authenticated identity for that invocation.
"""

import argparse
import logging
import os
import sys
from functools import partial
from pathlib import Path
from uuid import UUID

from friendlink.adapters.clock import SystemClock
from friendlink.adapters.directory import RetryingUserDirectory
from friendlink.adapters.sqlite.migrator import SQLiteMigrator
from friendlink.adapters.sqlite.repos import SQLiteInviteCodeRepo, SQLiteUserDirectory
from friendlink.api.auth_utils import create_member_token
from friendlink.components.deeplinks import DeepLinkFormatter
from friendlink.components.invite import (
    CreateInviteInput,
    InviteCodeStore,
    RedeemInviteInput,
    StoreConfig,
    run_create,
    run_redeem,
)
from friendlink.components.qr import ResolveQrInput, run_resolve
from friendlink.domain.entities import Member
from friendlink.domain.errors import InviteError, InviteInfrastructureError
from friendlink.domain.retry import call_with_retry
from friendlink.rules.loader import load_rules
from friendlink.rules.models import Rules

logger = logging.getLogger("cli")

DB_PATH = os.environ.get("FRIENDLINK_DB_PATH", "friendlink.db")
RULES_PATH = os.environ.get("FRIENDLINK_RULES_PATH", "rules.yaml")


def get_rules() -> Rules:
    if not Path(RULES_PATH).exists():
        logger.error(f"Rules file {RULES_PATH} not found.")
        sys.exit(1)
    return load_rules(Path(RULES_PATH))


def _directory(rules: Rules) -> RetryingUserDirectory:
    return RetryingUserDirectory(
        SQLiteUserDirectory(DB_PATH, rules.storage.busy_timeout_seconds),
        rules.storage.retry_backoff_seconds,
    )


def _fail(error: InviteError) -> None:
    logger.error(f"{error.kind}: {error.message}")
    sys.exit(2)


def handle_migrate(args: argparse.Namespace) -> None:
    applied = SQLiteMigrator(DB_PATH).run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_register(args: argparse.Namespace, rules: Rules) -> None:
    directory = SQLiteUserDirectory(DB_PATH, rules.storage.busy_timeout_seconds)
    member = call_with_retry(
        "register",
        partial(directory.save, Member(display_name=args.display_name)),
        rules.storage.retry_backoff_seconds,
    )
    print(f"Member: {member.id}")
    print(f"QR code ID: {member.qr_code_id}")


def handle_create_invite(args: argparse.Namespace, rules: Rules) -> None:
    repo = SQLiteInviteCodeRepo(DB_PATH, rules.storage.busy_timeout_seconds)
    result = run_create(
        CreateInviteInput(
            creator_user_id=args.user_id,
            session_user_id=args.user_id,
            expires_in_seconds=args.expires_in,
            max_usages=args.max_usages,
        ),
        store=InviteCodeStore(repo, StoreConfig.from_rules(rules)),
        formatter=DeepLinkFormatter(rules.deep_links.scheme),
        directory=_directory(rules),
        time=SystemClock(),
        limits=rules.invites,
    )
    if result.error:
        _fail(result.error)
    print(f"Code: {result.code}")
    print(f"Link: {result.deep_link}")


def handle_redeem(args: argparse.Namespace, rules: Rules) -> None:
    repo = SQLiteInviteCodeRepo(DB_PATH, rules.storage.busy_timeout_seconds)
    result = run_redeem(
        RedeemInviteInput(
            code=args.code,
            requester_user_id=args.user_id,
            session_user_id=args.user_id,
        ),
        store=InviteCodeStore(repo, StoreConfig.from_rules(rules)),
        formatter=DeepLinkFormatter(rules.deep_links.scheme),
        time=SystemClock(),
    )
    if result.error:
        _fail(result.error)
    print(f"Inviter: {result.inviter_user_id}")


def handle_resolve_qr(args: argparse.Namespace, rules: Rules) -> None:
    result = run_resolve(
        ResolveQrInput(
            qr_code_id=args.qr_code_id,
            requester_user_id=args.user_id,
            session_user_id=args.user_id,
        ),
        directory=_directory(rules),
        formatter=DeepLinkFormatter(rules.deep_links.scheme),
    )
    if result.error:
        _fail(result.error)
    print(f"Inviter: {result.inviter_user_id}")


def handle_issue_token(args: argparse.Namespace, rules: Rules) -> None:
    print(create_member_token(args.user_id, rules.auth.token_ttl_minutes))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Friendlink CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply pending database migrations")

    register_parser = subparsers.add_parser("register-member", help="Add a member (seeding)")
    register_parser.add_argument("display_name")

    invite_parser = subparsers.add_parser("create-invite", help="Create a shareable invite code")
    invite_parser.add_argument("--user-id", type=UUID, required=True, help="Creating member")
    invite_parser.add_argument("--expires-in", type=int, help="Lifetime in seconds")
    invite_parser.add_argument("--max-usages", type=int, help="Redemption cap")

    redeem_parser = subparsers.add_parser("redeem", help="Redeem an invite code or link")
    redeem_parser.add_argument("code")
    redeem_parser.add_argument("--user-id", type=UUID, required=True, help="Redeeming member")

    qr_parser = subparsers.add_parser("resolve-qr", help="Resolve a QR identifier or link")
    qr_parser.add_argument("qr_code_id")
    qr_parser.add_argument("--user-id", type=UUID, required=True, help="Scanning member")

    token_parser = subparsers.add_parser("issue-token", help="Issue an API bearer token")
    token_parser.add_argument("--user-id", type=UUID, required=True)

    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args()

    if args.command == "migrate":
        handle_migrate(args)
        return

    rules = get_rules()
    handlers = {
        "register-member": handle_register,
        "create-invite": handle_create_invite,
        "redeem": handle_redeem,
        "resolve-qr": handle_resolve_qr,
        "issue-token": handle_issue_token,
    }
    try:
        handlers[args.command](args, rules)
    except InviteInfrastructureError as e:
        logger.error(f"Invite store failure ({e.kind}): {e}")
        sys.exit(3)


if __name__ == "__main__":
    main()
