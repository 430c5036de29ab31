"""
Invite component - Shareable invite code issuance and redemption.
"""

from ._impl import (
    DEFAULT_CONFIG,
    MIN_CODE_BYTES,
    InviteCodeStore,
    StoreConfig,
    classify_rejection,
    generate_code,
)
from .component import (
    run_create,
    run_list,
    run_redeem,
)
from .models import (
    ConsumeResult,
    CreateInviteInput,
    CreateInviteOutput,
    InviteListOutput,
    InviteSummary,
    ListInvitesInput,
    RedeemInviteInput,
    RedeemOutput,
)
from .ports import (
    InviteCodeRepoPort,
    TimePort,
    UserDirectoryPort,
)

__all__ = [
    # Entry points
    "run_create",
    "run_redeem",
    "run_list",
    # Store
    "InviteCodeStore",
    "StoreConfig",
    "DEFAULT_CONFIG",
    "MIN_CODE_BYTES",
    "generate_code",
    "classify_rejection",
    # Input models
    "CreateInviteInput",
    "RedeemInviteInput",
    "ListInvitesInput",
    # Output models
    "CreateInviteOutput",
    "RedeemOutput",
    "InviteListOutput",
    "InviteSummary",
    "ConsumeResult",
    # Ports
    "InviteCodeRepoPort",
    "TimePort",
    "UserDirectoryPort",
]
