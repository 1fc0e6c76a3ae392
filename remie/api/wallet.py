from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.models.user import User
from remie.middleware.auth import get_current_user
from remie.services.paystack_service import PaystackService
from remie.services.wallet_service import WalletService
from remie.schemas.common import Pagination
from remie.schemas.wallet import (
    BankResponse,
    FundWalletRequest,
    FundWalletResponse,
    PaymentResponse,
    ResolveAccountRequest,
    ResolveAccountResponse,
    TransactionListResponse,
    WalletBalanceResponse,
    WalletResponse,
    WithdrawRequest,
    WithdrawResponse,
)
from typing import List

# Create router
router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("/balance", response_model=WalletBalanceResponse)
async def get_wallet_balance(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Get current user's wallet balances, limits and funding spent.
    """
    wallet = WalletService.get_or_create_wallet(db, current_user)
    WalletService.reset_limits_if_needed(wallet)
    return WalletBalanceResponse.model_validate(wallet)


@router.get("/details", response_model=WalletResponse)
async def get_wallet_details(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Get current user's wallet details including wallet number and balance.
    """
    wallet = WalletService.get_or_create_wallet(db, current_user)
    return WalletResponse.model_validate(wallet)


@router.post("/fund", response_model=FundWalletResponse, status_code=status.HTTP_201_CREATED)
async def fund_wallet(
        request: FundWalletRequest,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Start a card funding with Paystack.

    Flow:
    1. User requests funding with an amount.
    2. Server records a pending payment and initializes Paystack.
    3. User pays on the returned authorization URL.
    4. The charge.success webhook, or GET /wallet/verify/{reference},
       credits the wallet.

    :return: Payment reference and Paystack authorization URL
    """
    payment, paystack_data = WalletService.initiate_funding(
        db,
        current_user,
        request.amount,
        callback_url=request.callback_url,
        metadata=request.metadata,
    )
    return FundWalletResponse(
        reference=payment.reference,
        authorization_url=paystack_data["authorization_url"],
        access_code=paystack_data.get("access_code"),
        amount=payment.amount,
    )


@router.get("/verify/{reference}", response_model=PaymentResponse)
async def verify_funding(
        reference: str,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Confirm a card funding with Paystack and credit the wallet.

    Safe to call repeatedly; a completed funding is returned unchanged.
    """
    payment = WalletService.verify_funding(db, reference, user=current_user)
    return PaymentResponse.model_validate(payment)


@router.post("/withdraw", response_model=WithdrawResponse, status_code=status.HTTP_201_CREATED)
async def withdraw(
        request: WithdrawRequest,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Withdraw to a bank account through a Paystack transfer.

    The amount leaves available_balance now; the transfer.* webhooks settle
    or refund it.
    """
    payment, transfer = WalletService.initiate_withdrawal(db, current_user, request)
    wallet = WalletService.get_wallet_by_user_id(db, current_user.id)
    return WithdrawResponse(
        reference=payment.reference,
        transfer_code=transfer.get("transfer_code"),
        amount=payment.amount,
        status=payment.status,
        account_name=payment.recipient_name,
        available_balance=wallet.available_balance,
    )


@router.get("/transactions", response_model=TransactionListResponse)
async def get_transactions(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    """
    Get the user's transaction history, newest first.
    """
    payments, total = WalletService.get_user_transactions(db, current_user.id, page, limit)
    return TransactionListResponse(
        transactions=[PaymentResponse.model_validate(p) for p in payments],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/transactions/{reference}", response_model=PaymentResponse)
async def get_transaction(
        reference: str,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    payment = WalletService.get_user_transaction(db, current_user.id, reference)
    return PaymentResponse.model_validate(payment)


@router.get("/banks", response_model=List[BankResponse])
async def list_banks(current_user: User = Depends(get_current_user)):
    banks = PaystackService.list_banks()
    return [BankResponse(name=b["name"], code=b["code"], slug=b.get("slug")) for b in banks]


@router.post("/resolve-account", response_model=ResolveAccountResponse)
async def resolve_account(
        request: ResolveAccountRequest,
        current_user: User = Depends(get_current_user),
):
    data = PaystackService.resolve_account(request.account_number, request.bank_code)
    return ResolveAccountResponse(
        account_number=data.get("account_number", request.account_number),
        account_name=data["account_name"],
        bank_id=data.get("bank_id"),
    )
