from pydantic import BaseModel, EmailStr, Field, validator
from datetime import datetime
from typing import Optional, List
from remie.models.payment import PaymentType, PaymentStatus
from remie.models.rrr_payment import RRRStatus
from remie.schemas.common import Pagination


class GenerateRRRRequest(BaseModel):
    """
    Schema for generating a Remita Retrieval Reference.
    """
    amount: float = Field(..., gt=0)
    institution_code: str = Field(..., min_length=1)
    institution_name: str = Field(..., min_length=1)
    service_type_id: Optional[str] = Field(None, description="Defaults to the configured Remita service type")
    payer_name: str = Field(..., min_length=1)
    payer_email: EmailStr
    payer_phone: str = Field(..., min_length=7)
    description: str = Field(..., min_length=1)
    payment_type: PaymentType = PaymentType.SCHOOL_FEE

    @validator('amount')
    def round_amount(cls, v):
        return round(v, 2)


class RRRResponse(BaseModel):
    id: str
    rrr: str
    order_id: str
    payment_id: str
    amount: float
    institution_code: str
    institution_name: str
    service_type_id: str
    payer_name: str
    payer_email: str
    payer_phone: str
    status: RRRStatus
    remita_reference: Optional[str] = None
    expires_at: datetime
    paid_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RRRVerifyResponse(BaseModel):
    rrr: str
    status: RRRStatus
    payment_status: PaymentStatus
    amount: float
    paid_at: Optional[datetime] = None
    message: str


class RRRListResponse(BaseModel):
    rrr_payments: List[RRRResponse]
    pagination: Pagination
