"""Account aggregate: the document shape stored in ``accounts``."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

DemoStatus = Literal["locked", "available", "in_progress", "completed"]


class Profile(BaseModel):
    level: int = 1
    total_points: int = 0
    experience: int = 0


class DemoProgress(BaseModel):
    demo_id: str
    demo_name: str = ""
    status: DemoStatus = "locked"
    attempts: int = 0
    score: int = 0
    points_earned: int = 0
    last_attempted_at: datetime | None = None
    completed_at: datetime | None = None


class EarnedBadge(BaseModel):
    id: str
    badge_id: str
    name: str
    rarity: str
    points_value: int
    earned_at: datetime
    demo_id: str | None = None


class AccountStats(BaseModel):
    total_demos_completed: int = 0
    total_points_earned: int = 0
    streak_days: int = 1
    last_active_date: date | None = None


class ReferralRecord(BaseModel):
    id: str
    referred_user_wallet: str
    referred_user_name: str = ""
    referred_user_email: str | None = None
    referral_date: datetime
    status: Literal["pending", "completed"] = "completed"
    bonus_earned: int = 0


class ReferralState(BaseModel):
    referral_code: str = ""
    referred_by: str | None = None
    total_referrals: int = 0
    successful_referrals: int = 0
    referral_history: list[ReferralRecord] = Field(default_factory=list)


class AccountSettings(BaseModel):
    notifications: bool = True
    public_profile: bool = False
    share_progress: bool = True


class Account(BaseModel):
    id: str
    wallet_address: str
    display_name: str = ""
    email: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_login_at: datetime | None = None
    profile: Profile = Field(default_factory=Profile)
    demos: dict[str, DemoProgress] = Field(default_factory=dict)
    demos_completed: list[str] = Field(default_factory=list)
    badges: list[EarnedBadge] = Field(default_factory=list)
    referrals: ReferralState = Field(default_factory=ReferralState)
    stats: AccountStats = Field(default_factory=AccountStats)
    completed_quests: list[str] = Field(default_factory=list)
    settings: AccountSettings = Field(default_factory=AccountSettings)

    def badge_names(self) -> set[str]:
        return {b.name for b in self.badges}

    def badge_ids(self) -> set[str]:
        return {b.badge_id for b in self.badges}

    def demo_status(self, demo_id: str) -> str | None:
        progress = self.demos.get(demo_id)
        return progress.status if progress else None

    def has_completed(self, demo_id: str) -> bool:
        return self.demo_status(demo_id) == "completed"


# --- API request/response bodies ---


class ConnectWalletRequest(BaseModel):
    wallet_address: str
    display_name: str | None = None
    referral_code: str | None = None
    email: str | None = None


class ConnectWalletResponse(BaseModel):
    account: Account
    created: bool
    referral_code: str | None = None
    referral_bonus: int = 0


class BalanceResponse(BaseModel):
    balance: int
    ledger_total: int
    drift: int
