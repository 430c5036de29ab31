"""
QR component - Permanent per-user QR identities.

Resolution is a read-only lookup: no usage accounting, no expiry, and no
write of any kind.
"""

from __future__ import annotations

from friendlink.components.deeplinks import DeepLinkFormatter, is_valid_identifier
from friendlink.components.gate import authorize
from friendlink.domain.errors import invite_error
from friendlink.ports.repo import UserDirectoryPort

from .models import MyQrInput, MyQrOutput, ResolveOutput, ResolveQrInput


def run_resolve(
    inp: ResolveQrInput,
    directory: UserDirectoryPort,
    formatter: DeepLinkFormatter | None = None,
) -> ResolveOutput:
    denied = authorize(inp.requester_user_id, inp.session_user_id)
    if denied:
        return ResolveOutput(error=denied)

    qr_code_id = (
        formatter.extract_identifier(inp.qr_code_id) if formatter else inp.qr_code_id.strip()
    )
    if not inp.qr_code_id.strip():
        return ResolveOutput(
            error=invite_error("invalid_argument", "QR code ID cannot be empty", "qr_code_id")
        )
    if not is_valid_identifier(qr_code_id):
        return ResolveOutput(error=invite_error("not_found", "User not found for QR code"))

    owner_id = directory.id_for(qr_code_id)
    if owner_id is None:
        return ResolveOutput(error=invite_error("not_found", "User not found for QR code"))

    if owner_id == inp.requester_user_id:
        return ResolveOutput(error=invite_error("self_referential"))

    return ResolveOutput(inviter_user_id=owner_id)


def run_my_qr(
    inp: MyQrInput,
    directory: UserDirectoryPort,
    formatter: DeepLinkFormatter,
) -> MyQrOutput:
    denied = authorize(inp.user_id, inp.session_user_id)
    if denied:
        return MyQrOutput(error=denied)

    member = directory.get_by_id(inp.user_id)
    if member is None:
        return MyQrOutput(error=invite_error("not_found", "User not found"))

    return MyQrOutput(
        qr_code_id=member.qr_code_id,
        deep_link=formatter.format(member.qr_code_id),
    )
