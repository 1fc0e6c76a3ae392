from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Dict, Any, List
from remie.schemas.common import Pagination


class ReceiptResponse(BaseModel):
    id: str
    receipt_number: str
    payment_id: str
    amount: float
    verification_url: str
    receipt_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReceiptListResponse(BaseModel):
    receipts: List[ReceiptResponse]
    pagination: Pagination


class ReceiptVerification(BaseModel):
    valid: bool
    receipt_number: str
    amount: float
    payment_reference: str
    payment_status: str
    issued_at: datetime
