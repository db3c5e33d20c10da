"""Referral models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from snx.accounts.schemas import ReferralRecord

InvitationStatus = Literal["sent", "completed", "failed", "expired"]


class ReferralInvitation(BaseModel):
    """An emailed invitation. Kept for audit even when delivery fails."""

    id: str
    referrer_id: str
    referrer_name: str = ""
    referral_code: str
    email: str
    message: str | None = None
    invitation_date: datetime
    expires_at: datetime
    status: InvitationStatus = "sent"
    completed_at: datetime | None = None
    referred_user_wallet: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class ReferralInitResult(BaseModel):
    referral_code: str
    bonus_earned: int = 0


class ApplyReferralResult(BaseModel):
    success: bool
    bonus_earned: int = 0


class ReferralStats(BaseModel):
    total_referrals: int = 0
    successful_referrals: int = 0
    referral_code: str = ""
    total_bonus_earned: int = 0
    recent_referrals: list[ReferralRecord] = Field(default_factory=list)


class PendingInvitation(BaseModel):
    invitation_id: str
    referral_code: str
    referrer_name: str = ""


class ReferralHistory(BaseModel):
    pending_invitations: list[ReferralInvitation] = Field(default_factory=list)
    completed_referrals: list[ReferralRecord] = Field(default_factory=list)


# --- API request/response bodies ---


class ApplyReferralRequest(BaseModel):
    code: str


class SendInvitationRequest(BaseModel):
    email: str
    message: str | None = None


class SendInvitationResponse(BaseModel):
    invitation_id: str


class PendingInvitationResponse(BaseModel):
    has_invitation: bool
    invitation: PendingInvitation | None = None


class SyncReferralsResponse(BaseModel):
    new_referrals: int


class ReferralUnlockResponse(BaseModel):
    unlocked: bool
