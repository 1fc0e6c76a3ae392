from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, List, Dict
from remie.schemas.wallet import PaymentResponse
from remie.schemas.common import Pagination


class ExchangeRate(BaseModel):
    currency: str
    rate: float
    fee_percent: float


class RatesResponse(BaseModel):
    base_currency: str = "NGN"
    rates: List[ExchangeRate]
    countries: Dict[str, str]


class CalculateRemittanceRequest(BaseModel):
    amount: float = Field(..., gt=0)
    from_currency: str = "NGN"
    to_currency: str

    @validator('from_currency', 'to_currency')
    def upper(cls, v):
        return v.upper()


class RemittanceQuote(BaseModel):
    amount: float
    from_currency: str
    to_currency: str
    exchange_rate: float
    fee: float
    fee_percent: float
    total_amount: float
    receive_amount: float


class SendRemittanceRequest(BaseModel):
    """
    Schema for sending money to a recipient abroad.

    The recipient is matched to a REMIE account by email, or gets one.
    """
    recipient_email: EmailStr
    recipient_name: str = Field(..., min_length=1)
    recipient_phone: Optional[str] = None
    amount: float = Field(..., gt=0)
    purpose: str = Field(..., min_length=1)
    relationship: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)

    @validator('recipient_email')
    def normalize_email(cls, v):
        return v.lower()

    @validator('amount')
    def round_amount(cls, v):
        return round(v, 2)


class SendRemittanceResponse(BaseModel):
    payment: PaymentResponse
    quote: RemittanceQuote
    recipient_id: str
    recipient_created: bool
    new_balance: float


class RemittanceListResponse(BaseModel):
    remittances: List[PaymentResponse]
    pagination: Pagination
