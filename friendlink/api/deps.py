import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from friendlink.adapters.clock import SystemClock
from friendlink.adapters.directory import RetryingUserDirectory
from friendlink.adapters.sqlite.repos import SQLiteInviteCodeRepo, SQLiteUserDirectory
from friendlink.api.auth_utils import decode_access_token
from friendlink.components.deeplinks import DeepLinkFormatter
from friendlink.components.invite import InviteCodeStore, StoreConfig, UserDirectoryPort
from friendlink.domain.errors import InviteInfrastructureError
from friendlink.rules.loader import load_rules
from friendlink.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("FRIENDLINK_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "friendlink.db")
        self.rules_path = Path(
            os.environ.get("FRIENDLINK_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return _load_rules_cached(settings.rules_path)


@lru_cache
def _load_rules_cached(path: Path) -> Rules:
    return load_rules(path)


# --- Repos ---
def get_invite_repo(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> SQLiteInviteCodeRepo:
    return SQLiteInviteCodeRepo(settings.db_path, rules.storage.busy_timeout_seconds)


def get_user_directory(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> UserDirectoryPort:
    return RetryingUserDirectory(
        SQLiteUserDirectory(settings.db_path, rules.storage.busy_timeout_seconds),
        rules.storage.retry_backoff_seconds,
    )


# --- Component Services ---
def get_invite_store(
    repo: SQLiteInviteCodeRepo = Depends(get_invite_repo),
    rules: Rules = Depends(get_rules),
) -> InviteCodeStore:
    return InviteCodeStore(repo=repo, config=StoreConfig.from_rules(rules))


def get_deep_link_formatter(rules: Rules = Depends(get_rules)) -> DeepLinkFormatter:
    return DeepLinkFormatter(rules.deep_links.scheme)


# Time adapter for deterministic time operations
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def get_current_user_id(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    directory: UserDirectoryPort = Depends(get_user_directory),
) -> UUID:
    """Identity established by the caller's session; the only trusted user id."""
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ")[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthenticated", "message": "Not authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthenticated", "message": "Invalid token"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    try:
        user_id = UUID(subject) if isinstance(subject, str) else None
    except ValueError:
        user_id = None
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthenticated", "message": "Invalid token payload"},
        )

    try:
        known = directory.exists(user_id)
    except InviteInfrastructureError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": e.kind, "message": "Member directory is temporarily unavailable"},
        ) from e
    if not known:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthenticated", "message": "User not found"},
        )

    return user_id
