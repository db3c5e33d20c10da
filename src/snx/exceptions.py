"""Error taxonomy for the progression and referral engines.

Every error carries the HTTP status the API layer answers with, so routers
never translate exceptions by hand.
"""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class for all domain errors."""

    status_code = 400
    detail = "Request could not be processed"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


# --- Input errors (rejected before any write) ---


class InvalidInput(ProgressionError):
    status_code = 422
    detail = "Invalid input"


class InvalidScore(InvalidInput):
    detail = "Score must be an integer between 0 and 100"


class InvalidWallet(InvalidInput):
    detail = "Wallet address is required"


class InvalidEmail(InvalidInput):
    detail = "A valid email address is required"


# --- Not found / state conflicts ---


class AccountNotFound(ProgressionError):
    status_code = 404
    detail = "Account not found"


class AccountExists(ProgressionError):
    status_code = 409
    detail = "An account already exists for this wallet"


class DemoLocked(ProgressionError):
    status_code = 409
    detail = "Demo is locked"


class AlreadyReferred(ProgressionError):
    status_code = 409
    detail = "A referral code has already been applied to this account"


class InvalidCode(ProgressionError):
    status_code = 400
    detail = "Invalid referral code"


class SelfReferral(ProgressionError):
    status_code = 400
    detail = "You cannot use your own referral code"


class MissingReferralCode(ProgressionError):
    status_code = 409
    detail = "Referral code not found for this account"


class UnknownQuest(ProgressionError):
    status_code = 404
    detail = "Quest not found"


class QuestLocked(ProgressionError):
    status_code = 409
    detail = "Quest is locked"


class DeliveryFailed(ProgressionError):
    """Invitation email could not be delivered. The invitation record persists."""

    status_code = 502
    detail = "Failed to send email, but the invitation was recorded"

    def __init__(self, invitation_id: str, detail: str | None = None) -> None:
        self.invitation_id = invitation_id
        super().__init__(detail)


# --- Infrastructure ---


class StoreUnavailable(ProgressionError):
    status_code = 503
    detail = "Document store unavailable"


class AccountCreationTimeout(StoreUnavailable):
    status_code = 504
    detail = "Timed out while creating the account"


class DocumentNotFound(ProgressionError):
    status_code = 404
    detail = "Document not found"
