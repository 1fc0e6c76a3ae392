from pydantic import BaseModel, Field, validator
from datetime import datetime
from typing import Optional, Dict, Any, List
from remie.models.payment import PaymentType, PaymentMethod, PaymentStatus
from remie.schemas.common import Pagination


class WalletResponse(BaseModel):
    """
    Schema for wallet responses (what we send to the client).
    """
    id: str
    wallet_number: str
    balance: float
    available_balance: float
    ledger_balance: float
    daily_limit: float
    monthly_limit: float
    is_frozen: bool
    last_transaction_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WalletBalanceResponse(BaseModel):
    """
    Schema for wallet balance response.
    """
    balance: float
    available_balance: float
    ledger_balance: float
    is_frozen: bool
    daily_limit: float
    monthly_limit: float
    daily_funding_spent: float
    monthly_funding_spent: float

    class Config:
        from_attributes = True


class FundWalletRequest(BaseModel):
    """
    Schema for starting a Paystack card funding.
    """
    amount: float = Field(..., gt=0, description="Amount to fund in NGN")
    callback_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @validator('amount')
    def round_amount(cls, v):
        return round(v, 2)


class FundWalletResponse(BaseModel):
    reference: str
    authorization_url: str
    access_code: Optional[str] = None
    amount: float


class BankAccount(BaseModel):
    account_number: str = Field(..., pattern=r"^\d{10}$", description="10-digit NUBAN")
    bank_code: str = Field(..., min_length=1)
    account_name: Optional[str] = None


class WithdrawRequest(BaseModel):
    amount: float = Field(..., ge=100, description="Minimum withdrawal is NGN 100")
    bank_account: BankAccount
    reason: Optional[str] = None

    @validator('amount')
    def round_amount(cls, v):
        return round(v, 2)


class WithdrawResponse(BaseModel):
    reference: str
    transfer_code: Optional[str] = None
    amount: float
    status: PaymentStatus
    account_name: str
    available_balance: float


class ResolveAccountRequest(BaseModel):
    account_number: str = Field(..., pattern=r"^\d{10}$")
    bank_code: str


class ResolveAccountResponse(BaseModel):
    account_number: str
    account_name: str
    bank_id: Optional[int] = None


class BankResponse(BaseModel):
    name: str
    code: str
    slug: Optional[str] = None


class PaymentResponse(BaseModel):
    """
    A row of the user's transaction history.
    """
    id: str
    amount: float
    currency: str
    type: PaymentType
    method: PaymentMethod
    status: PaymentStatus
    reference: str
    recipient_name: Optional[str] = None
    institution_name: Optional[str] = None
    description: Optional[str] = None
    processing_fee: float
    total_amount: float
    payment_metadata: Optional[Dict[str, Any]] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    transactions: List[PaymentResponse]
    pagination: Pagination
