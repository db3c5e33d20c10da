"""Referral API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from snx.dependencies import get_referral_engine
from snx.referrals.schemas import (
    ApplyReferralRequest,
    ApplyReferralResult,
    PendingInvitationResponse,
    ReferralHistory,
    ReferralStats,
    ReferralUnlockResponse,
    SendInvitationRequest,
    SendInvitationResponse,
    SyncReferralsResponse,
)
from snx.referrals.service import ReferralEngine

router = APIRouter(prefix="/api/v1", tags=["Referrals"])


@router.post("/accounts/{account_id}/referrals/apply", response_model=ApplyReferralResult)
async def apply_referral_code(
    account_id: str,
    body: ApplyReferralRequest,
    engine: ReferralEngine = Depends(get_referral_engine),  # noqa: B008
):
    account = await engine.accounts.get_account(account_id)
    return await engine.apply_referral_code(account, body.code)


@router.post(
    "/accounts/{account_id}/referrals/invitations",
    response_model=SendInvitationResponse,
    status_code=201,
)
async def send_invitation(
    account_id: str,
    body: SendInvitationRequest,
    engine: ReferralEngine = Depends(get_referral_engine),  # noqa: B008
):
    """Email a referral invitation. A failed delivery answers 502 with the invitation id."""
    account = await engine.accounts.get_account(account_id)
    invitation_id = await engine.send_referral_invitation(account, body.email, body.message)
    return SendInvitationResponse(invitation_id=invitation_id)


@router.get("/accounts/{account_id}/referrals/stats", response_model=ReferralStats)
async def referral_stats(
    account_id: str,
    engine: ReferralEngine = Depends(get_referral_engine),  # noqa: B008
):
    account = await engine.accounts.get_account(account_id)
    return engine.get_referral_stats(account)


@router.get("/accounts/{account_id}/referrals/history", response_model=ReferralHistory)
async def referral_history(
    account_id: str,
    engine: ReferralEngine = Depends(get_referral_engine),  # noqa: B008
):
    account = await engine.accounts.get_account(account_id)
    return await engine.get_referral_history(account)


@router.post("/accounts/{account_id}/referrals/sync", response_model=SyncReferralsResponse)
async def sync_referrals(
    account_id: str,
    engine: ReferralEngine = Depends(get_referral_engine),  # noqa: B008
):
    """Backfill referrals from completed invitations."""
    account = await engine.accounts.get_account(account_id)
    return SyncReferralsResponse(new_referrals=await engine.check_for_new_referrals(account))


@router.get("/accounts/{account_id}/referrals/unlocked", response_model=ReferralUnlockResponse)
async def referral_unlocked(
    account_id: str,
    engine: ReferralEngine = Depends(get_referral_engine),  # noqa: B008
):
    account = await engine.accounts.get_account(account_id)
    return ReferralUnlockResponse(unlocked=engine.is_referral_system_unlocked(account))


@router.get("/referrals/pending", response_model=PendingInvitationResponse)
async def pending_invitation(
    email: str = Query(...),
    engine: ReferralEngine = Depends(get_referral_engine),  # noqa: B008
):
    invitation = await engine.check_pending_invitation(email)
    return PendingInvitationResponse(has_invitation=invitation is not None, invitation=invitation)
