"""Referral engine: codes, signup bonuses, invitations and reconciliation.

Referral records are appended with a store-level claim keyed by the
referred wallet, and ``referred_by`` is set with a conditional update, so a
referral can be paid at most once per pair of accounts.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from snx.accounts.schemas import Account, ReferralRecord
from snx.accounts.service import AccountService
from snx.catalog.badges import MAIN_BADGES
from snx.config import Settings, get_settings
from snx.exceptions import (
    AlreadyReferred,
    DeliveryFailed,
    InvalidCode,
    InvalidEmail,
    MissingReferralCode,
    SelfReferral,
)
from snx.notifications.email import EmailService, get_email_service
from snx.notifications.push import REFERRAL_COMPLETED, publish_event
from snx.quests.service import QuestService
from snx.referrals.codes import generate_unique_referral_code, normalize_referral_code
from snx.referrals.schemas import (
    ApplyReferralResult,
    PendingInvitation,
    ReferralHistory,
    ReferralInitResult,
    ReferralInvitation,
    ReferralStats,
)
from snx.store import ACCOUNTS, REFERRAL_INVITATIONS, DocumentStore, Increment

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
RECENT_REFERRALS = 5


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise InvalidEmail()
    return value


class ReferralEngine:
    def __init__(
        self,
        store: DocumentStore,
        redis: object | None = None,
        accounts: AccountService | None = None,
        quests: QuestService | None = None,
        email_service: EmailService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.redis = redis
        self.settings = settings or get_settings()
        self.accounts = accounts or AccountService(store, redis, self.settings)
        self.quests = quests or QuestService(store, redis, self.accounts)
        self._email_service = email_service

    @property
    def email_service(self) -> EmailService:
        if self._email_service is None:
            self._email_service = get_email_service(self.redis)  # type: ignore[arg-type]
        return self._email_service

    # --- Codes ---

    async def find_referrer_by_code(self, code: str) -> Account | None:
        normalized = normalize_referral_code(code)
        if not normalized:
            return None
        data = await self.store.get_by_field(ACCOUNTS, "referrals.referral_code", normalized)
        return Account.model_validate(data) if data else None

    async def ensure_referral_code(self, account: Account) -> str:
        """Return the account's referral code, assigning one if missing.

        Used on login to repair accounts created without one. When two
        sessions race, the first stored code wins and both return it.
        """
        current = account.referrals.referral_code
        if current:
            return current
        code = await generate_unique_referral_code(
            self.store,
            account.wallet_address,
            self.settings.referral_code_max_attempts,
        )
        assigned = await self.accounts.update_if(
            account.id,
            {"referrals.referral_code": current},
            {"referrals.referral_code": code},
        )
        if not assigned:
            return (await self.accounts.get_account(account.id)).referrals.referral_code
        logger.info("Assigned missing referral code %s to account %s", code, account.id)
        return code

    # --- Signup and code application ---

    async def initialize_referral_system(
        self,
        account: Account,
        referred_by_code: str | None = None,
        user_email: str | None = None,
    ) -> ReferralInitResult:
        """Assign a fresh referral code and pay an optional signup referral.

        An unknown ``referred_by_code`` is skipped without error; the new
        code is still assigned.
        """
        code = await generate_unique_referral_code(
            self.store,
            account.wallet_address,
            self.settings.referral_code_max_attempts,
        )
        updates: dict = {"referrals.referral_code": code}
        email = None
        if user_email:
            try:
                email = normalize_email(user_email)
                updates["email"] = email
            except InvalidEmail:
                logger.warning("Ignoring malformed signup email for %s", account.id)
        await self.accounts.update_fields(account.id, updates)

        bonus = 0
        if referred_by_code:
            referrer = await self.find_referrer_by_code(referred_by_code)
            if referrer is None:
                logger.info("Referral code %s not found, skipping", referred_by_code)
            elif referrer.id == account.id:
                logger.info("Account %s tried to refer itself, skipping", account.id)
            else:
                refreshed = await self.accounts.get_account(account.id)
                if await self._link_referral(refreshed, referrer, email):
                    bonus = self.settings.referral_signup_bonus

        return ReferralInitResult(referral_code=code, bonus_earned=bonus)

    async def apply_referral_code(self, account: Account, code: str) -> ApplyReferralResult:
        """Apply a referral code after signup. One-time per account.

        Raises:
            InvalidCode: Empty or unknown code.
            SelfReferral: The code belongs to this account.
            AlreadyReferred: A code was already applied.
        """
        normalized = normalize_referral_code(code)
        if not normalized:
            raise InvalidCode("Referral code is required")

        account = await self.accounts.get_account(account.id)
        if normalized == account.referrals.referral_code:
            raise SelfReferral()
        if account.referrals.referred_by:
            raise AlreadyReferred()

        referrer = await self.find_referrer_by_code(normalized)
        if referrer is None:
            raise InvalidCode()
        if referrer.id == account.id or referrer.wallet_address == account.wallet_address:
            raise SelfReferral()

        if not await self._link_referral(account, referrer, account.email):
            raise AlreadyReferred()
        return ApplyReferralResult(success=True, bonus_earned=self.settings.referral_signup_bonus)

    async def _link_referral(self, account: Account, referrer: Account, email: str | None) -> bool:
        """Set ``referred_by`` once, then pay both sides. False if already referred."""
        claimed = await self.accounts.update_if(
            account.id,
            {"referrals.referred_by": None},
            {"referrals.referred_by": referrer.referrals.referral_code},
        )
        if not claimed:
            return False

        if email:
            try:
                await self.track_email_invitation(email, referrer.referrals.referral_code, account.wallet_address)
            except Exception:
                logger.warning("Failed to track email invitation for %s", account.id, exc_info=True)

        await self.update_referrer_stats(referrer, account, email)
        await self.accounts.award_points(
            account.id,
            self.settings.referral_signup_bonus,
            "bonus",
            f"Referral signup bonus from {referrer.display_name}",
        )
        logger.info("Account %s referred by %s", account.id, referrer.id)
        return True

    async def update_referrer_stats(
        self,
        referrer: Account,
        referred: Account,
        referred_email: str | None = None,
    ) -> bool:
        """Record a successful referral for the referrer and pay the bonus.

        Returns False if this referred wallet is already in the history.
        """
        bonus = self.settings.referral_referrer_bonus
        record = ReferralRecord(
            id=str(uuid4()),
            referred_user_wallet=referred.wallet_address,
            referred_user_name=referred.display_name,
            referred_user_email=referred_email,
            referral_date=datetime.now(timezone.utc),
            status="completed",
            bonus_earned=bonus,
        )
        return await self._record_referral(referrer.id, record)

    async def _record_referral(self, referrer_id: str, record: ReferralRecord) -> bool:
        claimed = await self.accounts.claim(
            referrer_id,
            "referrals.referral_history",
            record.model_dump(mode="json", exclude_none=True),
            key="referred_user_wallet",
            updates={
                "referrals.total_referrals": Increment(1),
                "referrals.successful_referrals": Increment(1),
            },
        )
        if not claimed:
            logger.info("Referral of %s already recorded for %s", record.referred_user_wallet, referrer_id)
            return False

        await self.accounts.award_points(
            referrer_id,
            record.bonus_earned,
            "bonus",
            f"Referral bonus: {record.referred_user_name or record.referred_user_wallet}",
        )
        await publish_event(self.redis, REFERRAL_COMPLETED, {
            "account_id": referrer_id,
            "referred_user_wallet": record.referred_user_wallet,
            "bonus": record.bonus_earned,
        })
        await self.check_referral_quests(referrer_id)
        return True

    async def check_referral_quests(self, account_id: str) -> list[str]:
        return await self.quests.check_referral_quests(account_id)

    # --- Invitations ---

    async def send_referral_invitation(
        self,
        referrer: Account,
        email: str,
        message: str | None = None,
    ) -> str:
        """Record an invitation, then email it. Returns the invitation id.

        Raises:
            InvalidEmail: Malformed address.
            MissingReferralCode: The referrer has no referral code yet.
            DeliveryFailed: Delivery failed; the invitation is kept as ``failed``.
        """
        address = normalize_email(email)
        referrer = await self.accounts.get_account(referrer.id)
        code = referrer.referrals.referral_code
        if not code:
            raise MissingReferralCode()

        now = datetime.now(timezone.utc)
        invitation = ReferralInvitation(
            id=str(uuid4()),
            referrer_id=referrer.id,
            referrer_name=referrer.display_name,
            referral_code=code,
            email=address,
            message=message,
            invitation_date=now,
            expires_at=now + timedelta(days=self.settings.invitation_ttl_days),
        )
        await self.store.create_if_absent(
            REFERRAL_INVITATIONS,
            invitation.id,
            invitation.model_dump(mode="json", exclude_none=True),
        )

        try:
            delivered = await self.email_service.send_template(
                address,
                "referral_invitation",
                {
                    "referrer_name": referrer.display_name,
                    "referral_code": code,
                    "referral_link": self.referral_link(code),
                    "message": message,
                },
            )
        except Exception:
            logger.warning("Invitation %s delivery raised", invitation.id, exc_info=True)
            delivered = False

        if not delivered:
            await self.store.partial_update(REFERRAL_INVITATIONS, invitation.id, {
                "status": "failed",
            })
            logger.warning("Invitation %s to %s failed to send", invitation.id, address)
            raise DeliveryFailed(invitation.id)

        logger.info("Invitation %s sent by %s", invitation.id, referrer.id)
        return invitation.id

    def referral_link(self, code: str) -> str:
        return f"{self.settings.frontend_base_url.rstrip('/')}/?ref={code}"

    async def _open_invitations(self, **filters: str) -> list[ReferralInvitation]:
        """Unexpired ``sent`` invitations matching ``filters``, oldest first."""
        now = datetime.now(timezone.utc)
        rows = await self.store.query(
            REFERRAL_INVITATIONS,
            filters={**filters, "status": "sent"},
            order_by="invitation_date",
        )
        invitations = [ReferralInvitation.model_validate(r) for r in rows]
        return [i for i in invitations if not i.is_expired(now)]

    async def track_email_invitation(
        self,
        email: str,
        referral_code: str,
        new_user_wallet: str | None = None,
    ) -> str | None:
        """Mark the matching open invitation ``completed``. Returns its id, or None."""
        referrer = await self.find_referrer_by_code(referral_code)
        if referrer is None:
            return None

        address = normalize_email(email)
        for invitation in await self._open_invitations(referrer_id=referrer.id, email=address):
            updates = {
                "status": "completed",
                "completed_at": datetime.now(timezone.utc),
            }
            if new_user_wallet:
                updates["referred_user_wallet"] = new_user_wallet
            if await self.store.update_if(REFERRAL_INVITATIONS, invitation.id, {"status": "sent"}, updates):
                logger.info("Invitation %s completed by %s", invitation.id, new_user_wallet or address)
                return invitation.id
        return None

    async def check_pending_invitation(self, email: str) -> PendingInvitation | None:
        """Find an open invitation for an address, from any referrer."""
        invitations = await self._open_invitations(email=normalize_email(email))
        if not invitations:
            return None
        invitation = invitations[0]
        return PendingInvitation(
            invitation_id=invitation.id,
            referral_code=invitation.referral_code,
            referrer_name=invitation.referrer_name,
        )

    async def expire_invitations(self) -> int:
        """Move past-due ``sent`` invitations to ``expired``. Returns the count."""
        now = datetime.now(timezone.utc)
        rows = await self.store.query(REFERRAL_INVITATIONS, filters={"status": "sent"})
        expired = 0
        for row in rows:
            invitation = ReferralInvitation.model_validate(row)
            if not invitation.is_expired(now):
                continue
            if await self.store.update_if(
                REFERRAL_INVITATIONS, invitation.id, {"status": "sent"}, {"status": "expired"}
            ):
                expired += 1
        if expired:
            logger.info("Expired %d referral invitations", expired)
        return expired

    async def check_for_new_referrals(self, account: Account) -> int:
        """Backfill referral records for completed invitations missing from history.

        Returns the number of referrals recorded by this call.
        """
        account = await self.accounts.get_account(account.id)
        known = {r.referred_user_wallet for r in account.referrals.referral_history}
        rows = await self.store.query(
            REFERRAL_INVITATIONS,
            filters={"referrer_id": account.id, "status": "completed"},
            order_by="invitation_date",
        )

        recorded = 0
        for row in rows:
            invitation = ReferralInvitation.model_validate(row)
            wallet = invitation.referred_user_wallet
            if not wallet or wallet in known:
                continue
            record = ReferralRecord(
                id=invitation.id,
                referred_user_wallet=wallet,
                referred_user_name=invitation.email.split("@")[0],
                referred_user_email=invitation.email,
                referral_date=invitation.completed_at or invitation.invitation_date,
                status="completed",
                bonus_earned=self.settings.referral_referrer_bonus,
            )
            if await self._record_referral(account.id, record):
                known.add(wallet)
                recorded += 1

        if recorded:
            logger.info("Backfilled %d referrals for %s", recorded, account.id)
        return recorded

    # --- Reads ---

    def get_referral_stats(self, account: Account) -> ReferralStats:
        referrals = account.referrals
        history = referrals.referral_history
        return ReferralStats(
            total_referrals=referrals.total_referrals,
            successful_referrals=referrals.successful_referrals,
            referral_code=referrals.referral_code,
            total_bonus_earned=sum(r.bonus_earned for r in history),
            recent_referrals=history[-RECENT_REFERRALS:],
        )

    async def get_referral_history(self, account: Account) -> ReferralHistory:
        pending = await self._open_invitations(referrer_id=account.id)
        completed = [r for r in account.referrals.referral_history if r.status == "completed"]
        return ReferralHistory(pending_invitations=pending, completed_referrals=completed)

    @staticmethod
    def is_referral_system_unlocked(account: Account) -> bool:
        """The referral program opens once the five main badges are held."""
        held = account.badge_ids()
        return all(badge_id in held for badge_id in MAIN_BADGES)
