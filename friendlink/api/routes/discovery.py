"""
Friend discovery API routes.

Invite link issuance, redemption and QR identity resolution. Every route
takes its user id from the session (get_current_user_id) and hands both the
claimed and the session identity to the component, which gates the call.
"""

from __future__ import annotations

from datetime import datetime
from typing import NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from friendlink.api.deps import (
    get_clock,
    get_current_user_id,
    get_deep_link_formatter,
    get_invite_store,
    get_rules,
    get_user_directory,
)
from friendlink.components.deeplinks import DeepLinkFormatter
from friendlink.components.invite import (
    CreateInviteInput,
    InviteCodeStore,
    ListInvitesInput,
    RedeemInviteInput,
    TimePort,
    UserDirectoryPort,
    run_create,
    run_list,
    run_redeem,
)
from friendlink.components.qr import MyQrInput, ResolveQrInput, run_my_qr, run_resolve
from friendlink.domain.entities import InviteCodeState
from friendlink.domain.errors import InviteError, InviteInfrastructureError
from friendlink.rules.models import Rules

router = APIRouter()


ERROR_STATUS: dict[str, int] = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "expired": status.HTTP_410_GONE,
    "usage_exhausted": status.HTTP_409_CONFLICT,
    "self_referential": status.HTTP_400_BAD_REQUEST,
    "invalid_argument": status.HTTP_400_BAD_REQUEST,
    "unauthenticated": status.HTTP_401_UNAUTHORIZED,
    "unauthorized": status.HTTP_403_FORBIDDEN,
    "conflict": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "transient": status.HTTP_503_SERVICE_UNAVAILABLE,
}


# --- Request / Response Models ---


class CreateInviteLinkRequest(BaseModel):
    """Request to generate a shareable invite link."""

    creator_user_id: UUID
    expires_in_seconds: int | None = Field(None, description="Lifetime; omit for no expiry")
    max_usages: int | None = Field(None, description="Redemption cap; omit for unlimited")


class CreateInviteLinkResponse(BaseModel):
    code: str
    deep_link: str
    expires_at: datetime | None = None
    max_usages: int | None = None


class InviteLinkItem(BaseModel):
    code: str
    deep_link: str
    state: InviteCodeState
    usage_count: int
    max_usages: int | None = None
    remaining_usages: int | None = None
    expires_at: datetime | None = None
    created_at: datetime


class InviteLinkListResponse(BaseModel):
    invite_links: list[InviteLinkItem]
    count: int


class RedeemInviteCodeRequest(BaseModel):
    """Code from a share link or the link itself."""

    code: str = Field(..., min_length=1)
    requester_user_id: UUID


class ResolveQrRequest(BaseModel):
    qr_code_id: str = Field(..., min_length=1)
    requester_user_id: UUID


class InviterResponse(BaseModel):
    inviter_user_id: UUID


class QrCodeResponse(BaseModel):
    qr_code_id: str
    deep_link: str


# --- Helper Functions ---


def _raise_error(error: InviteError) -> NoReturn:
    raise HTTPException(
        status_code=ERROR_STATUS[error.kind],
        detail={"code": error.kind, "message": error.message, "field": error.field},
    )


def _raise_infrastructure(exc: InviteInfrastructureError) -> NoReturn:
    raise HTTPException(
        status_code=ERROR_STATUS[exc.kind],
        detail={"code": exc.kind, "message": "Invite service is temporarily unavailable"},
    ) from exc


# --- Routes ---


@router.post("/invite-links", response_model=CreateInviteLinkResponse)
def create_invite_link(
    request: CreateInviteLinkRequest,
    session_user_id: UUID = Depends(get_current_user_id),
    store: InviteCodeStore = Depends(get_invite_store),
    formatter: DeepLinkFormatter = Depends(get_deep_link_formatter),
    directory: UserDirectoryPort = Depends(get_user_directory),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> CreateInviteLinkResponse:
    """Generate a shareable invite code and its deep link."""
    try:
        result = run_create(
            CreateInviteInput(
                creator_user_id=request.creator_user_id,
                session_user_id=session_user_id,
                expires_in_seconds=request.expires_in_seconds,
                max_usages=request.max_usages,
            ),
            store=store,
            formatter=formatter,
            directory=directory,
            time=clock,
            limits=rules.invites,
        )
    except InviteInfrastructureError as e:
        _raise_infrastructure(e)

    if result.error:
        _raise_error(result.error)

    assert result.code is not None and result.deep_link is not None
    return CreateInviteLinkResponse(
        code=result.code,
        deep_link=result.deep_link,
        expires_at=result.expires_at,
        max_usages=result.max_usages,
    )


@router.get("/invite-links", response_model=InviteLinkListResponse)
def list_invite_links(
    session_user_id: UUID = Depends(get_current_user_id),
    store: InviteCodeStore = Depends(get_invite_store),
    formatter: DeepLinkFormatter = Depends(get_deep_link_formatter),
    clock: TimePort = Depends(get_clock),
) -> InviteLinkListResponse:
    """List the caller's invite codes with their current state."""
    try:
        result = run_list(
            ListInvitesInput(creator_user_id=session_user_id, session_user_id=session_user_id),
            store=store,
            formatter=formatter,
            time=clock,
        )
    except InviteInfrastructureError as e:
        _raise_infrastructure(e)

    if result.error:
        _raise_error(result.error)

    items = [
        InviteLinkItem(
            code=s.invite.code,
            deep_link=s.deep_link,
            state=s.state,
            usage_count=s.invite.usage_count,
            max_usages=s.invite.max_usages,
            remaining_usages=s.remaining_usages,
            expires_at=s.invite.expires_at,
            created_at=s.invite.created_at,
        )
        for s in result.invites
    ]
    return InviteLinkListResponse(invite_links=items, count=len(items))


@router.post("/redeem", response_model=InviterResponse)
def redeem_invite_code(
    request: RedeemInviteCodeRequest,
    session_user_id: UUID = Depends(get_current_user_id),
    store: InviteCodeStore = Depends(get_invite_store),
    formatter: DeepLinkFormatter = Depends(get_deep_link_formatter),
    clock: TimePort = Depends(get_clock),
) -> InviterResponse:
    """Consume one use of a code and return the inviter's id."""
    try:
        result = run_redeem(
            RedeemInviteInput(
                code=request.code,
                requester_user_id=request.requester_user_id,
                session_user_id=session_user_id,
            ),
            store=store,
            formatter=formatter,
            time=clock,
        )
    except InviteInfrastructureError as e:
        _raise_infrastructure(e)

    if result.error:
        _raise_error(result.error)

    assert result.inviter_user_id is not None
    return InviterResponse(inviter_user_id=result.inviter_user_id)


@router.post("/qr-code/resolve", response_model=InviterResponse)
def resolve_qr_code(
    request: ResolveQrRequest,
    session_user_id: UUID = Depends(get_current_user_id),
    directory: UserDirectoryPort = Depends(get_user_directory),
    formatter: DeepLinkFormatter = Depends(get_deep_link_formatter),
) -> InviterResponse:
    """Resolve a scanned QR identifier to its owner. Read-only."""
    try:
        result = run_resolve(
            ResolveQrInput(
                qr_code_id=request.qr_code_id,
                requester_user_id=request.requester_user_id,
                session_user_id=session_user_id,
            ),
            directory=directory,
            formatter=formatter,
        )
    except InviteInfrastructureError as e:
        _raise_infrastructure(e)

    if result.error:
        _raise_error(result.error)

    assert result.inviter_user_id is not None
    return InviterResponse(inviter_user_id=result.inviter_user_id)


@router.get("/qr-code", response_model=QrCodeResponse)
def get_my_qr_code(
    session_user_id: UUID = Depends(get_current_user_id),
    directory: UserDirectoryPort = Depends(get_user_directory),
    formatter: DeepLinkFormatter = Depends(get_deep_link_formatter),
) -> QrCodeResponse:
    """The caller's permanent QR identifier and its deep link."""
    try:
        result = run_my_qr(
            MyQrInput(user_id=session_user_id, session_user_id=session_user_id),
            directory=directory,
            formatter=formatter,
        )
    except InviteInfrastructureError as e:
        _raise_infrastructure(e)

    if result.error:
        _raise_error(result.error)

    assert result.qr_code_id is not None and result.deep_link is not None
    return QrCodeResponse(qr_code_id=result.qr_code_id, deep_link=result.deep_link)
