from pydantic import BaseModel, Field


class DeepLinkRules(BaseModel):
    scheme: str = Field(default="walkingapp", pattern=r"^[a-z][a-z0-9+.-]*$")


class InviteRules(BaseModel):
    code_bytes: int = Field(default=16, ge=16, le=64)
    max_create_attempts: int = Field(default=5, ge=1)
    max_expires_in_seconds: int = Field(default=60 * 60 * 24 * 30, gt=0)
    max_usages_limit: int = Field(default=1000, gt=0)


class StorageRules(BaseModel):
    busy_timeout_seconds: float = Field(default=5.0, gt=0)
    retry_backoff_seconds: list[float] = Field(default_factory=lambda: [0.05, 0.2, 0.5])


class AuthRules(BaseModel):
    token_ttl_minutes: int = Field(default=60 * 24, gt=0)


class Rules(BaseModel):
    deep_links: DeepLinkRules = Field(default_factory=DeepLinkRules)
    invites: InviteRules = Field(default_factory=InviteRules)
    storage: StorageRules = Field(default_factory=StorageRules)
    auth: AuthRules = Field(default_factory=AuthRules)
