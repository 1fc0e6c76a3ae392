from pydantic import BaseModel, Field, validator
from datetime import datetime
from typing import Optional, List
from remie.models.loan import LoanStatus
from remie.models.payment import PaymentMethod, PaymentType


class LoanCalculateRequest(BaseModel):
    amount: float = Field(..., gt=0)
    tenure: int = Field(..., gt=0, description="Tenure in days")
    interest_rate: Optional[float] = Field(None, ge=0, description="Annual %; defaults to the platform rate")


class LoanCalculation(BaseModel):
    amount: float
    interest_rate: float
    tenure: int
    interest: float
    total_repayable: float
    daily_repayment: float


class LoanApplyRequest(BaseModel):
    amount: float = Field(..., gt=0)
    purpose: str = Field(..., min_length=3, max_length=500)
    purpose_type: PaymentType = PaymentType.SCHOOL_FEE
    tenure: int = Field(..., gt=0, description="Tenure in days")

    @validator('amount')
    def round_amount(cls, v):
        return round(v, 2)


class LoanRepayRequest(BaseModel):
    amount: float = Field(..., gt=0)

    @validator('amount')
    def round_amount(cls, v):
        return round(v, 2)


class LoanRepaymentResponse(BaseModel):
    id: str
    amount: float
    reference: str
    payment_method: PaymentMethod
    status: str
    paid_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LoanResponse(BaseModel):
    id: str
    user_id: str
    loan_number: str
    amount: float
    interest_rate: float
    tenure: int
    purpose: str
    purpose_type: PaymentType
    total_repayable: float
    amount_paid: float
    amount_outstanding: float
    due_date: datetime
    credit_score: Optional[int] = None
    status: LoanStatus
    approved_at: Optional[datetime] = None
    disbursed_at: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LoanDetailResponse(LoanResponse):
    repayments: List[LoanRepaymentResponse] = []


class CreditScoreResponse(BaseModel):
    credit_score: int
    eligible: bool
    max_loan_amount: float


class LoanRepayResponse(BaseModel):
    loan: LoanResponse
    repayment: LoanRepaymentResponse
    new_balance: float
