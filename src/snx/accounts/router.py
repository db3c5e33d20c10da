"""Account API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from snx.accounts.schemas import Account, BalanceResponse, ConnectWalletRequest, ConnectWalletResponse
from snx.accounts.service import AccountService
from snx.catalog.levels import compute_level
from snx.dependencies import get_account_service, get_referral_engine
from snx.ledger.schemas import PointsTransaction
from snx.ledger.service import get_points_transactions
from snx.referrals.service import ReferralEngine

router = APIRouter(prefix="/api/v1/accounts", tags=["Accounts"])


@router.post("/connect", response_model=ConnectWalletResponse)
async def connect_wallet(
    body: ConnectWalletRequest,
    accounts: AccountService = Depends(get_account_service),  # noqa: B008
    referrals: ReferralEngine = Depends(get_referral_engine),  # noqa: B008
):
    """First wallet connection creates the account; later ones log in."""
    account, created = await accounts.get_or_create_account(body.wallet_address, body.display_name)
    if not created:
        code = await referrals.ensure_referral_code(account)
        account = await accounts.update_last_login(account.id)
        return ConnectWalletResponse(account=account, created=False, referral_code=code)

    init = await referrals.initialize_referral_system(account, body.referral_code, body.email)
    return ConnectWalletResponse(
        account=await accounts.get_account(account.id),
        created=True,
        referral_code=init.referral_code,
        referral_bonus=init.bonus_earned,
    )


@router.get("/by-wallet/{wallet_address}", response_model=Account)
async def get_account_by_wallet(
    wallet_address: str,
    accounts: AccountService = Depends(get_account_service),  # noqa: B008
):
    account = await accounts.get_account_by_wallet(wallet_address)
    if account is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return account


@router.get("/{account_id}", response_model=Account)
async def get_account(
    account_id: str,
    accounts: AccountService = Depends(get_account_service),  # noqa: B008
):
    return await accounts.get_account(account_id)


@router.get("/{account_id}/transactions", response_model=list[PointsTransaction])
async def list_transactions(
    account_id: str,
    limit: int = Query(50, ge=1, le=200),
    accounts: AccountService = Depends(get_account_service),  # noqa: B008
):
    """Ledger rows for an account, newest first."""
    await accounts.get_account(account_id)
    return await get_points_transactions(accounts.store, account_id, limit=limit)


@router.get("/{account_id}/balance", response_model=BalanceResponse)
async def check_balance(
    account_id: str,
    accounts: AccountService = Depends(get_account_service),  # noqa: B008
):
    balance, ledger_total, drift = await accounts.check_balance(account_id)
    return BalanceResponse(balance=balance, ledger_total=ledger_total, drift=drift)


@router.get("/{account_id}/level")
async def get_level(
    account_id: str,
    accounts: AccountService = Depends(get_account_service),  # noqa: B008
) -> dict:
    account = await accounts.get_account(account_id)
    return {"experience": account.profile.experience, **compute_level(account.profile.experience)}
