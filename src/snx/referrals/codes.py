"""Referral code generation.

Codes are ``PREFIX-SUFFIX``: the first 6 characters of the wallet
upper-cased, then 6 characters (A-Z, 0-9) from a cryptographic random
source.
"""

from __future__ import annotations

import secrets
import string

from snx.store import ACCOUNTS, DocumentStore

CODE_CHARSET = string.ascii_uppercase + string.digits  # A-Z, 0-9
PREFIX_LENGTH = 6
SUFFIX_LENGTH = 6


def generate_referral_code(wallet_address: str) -> str:
    """Generate a referral code for a wallet."""
    prefix = wallet_address.strip()[:PREFIX_LENGTH].upper()
    suffix = "".join(secrets.choice(CODE_CHARSET) for _ in range(SUFFIX_LENGTH))
    return f"{prefix}-{suffix}"


def normalize_referral_code(code: str | None) -> str:
    """Normalize a referral code to uppercase for case-insensitive lookup."""
    return (code or "").strip().upper()


async def generate_unique_referral_code(
    store: DocumentStore,
    wallet_address: str,
    max_attempts: int = 10,
) -> str:
    """Generate a referral code no other account holds."""
    for _ in range(max_attempts):
        code = generate_referral_code(wallet_address)
        existing = await store.get_by_field(ACCOUNTS, "referrals.referral_code", code)
        if existing is None:
            return code
    msg = f"Failed to generate unique referral code after {max_attempts} attempts"
    raise RuntimeError(msg)
