from pydantic import BaseModel, Field, validator
from datetime import datetime
from typing import Optional, List
from remie.models.p2p_transfer import TransferStatus
from remie.schemas.common import Pagination


class P2PSendRequest(BaseModel):
    """
    Schema for a wallet-to-wallet transfer.

    receiver_identifier may be the receiver's email, phone number,
    student ID or wallet number.
    """
    receiver_identifier: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, description="Amount to send in NGN")
    description: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = None

    @validator('receiver_identifier')
    def strip_identifier(cls, v):
        return v.strip()

    @validator('amount')
    def round_amount(cls, v):
        return round(v, 2)


class P2PParty(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str

    class Config:
        from_attributes = True


class P2PTransferResponse(BaseModel):
    id: str
    reference: str
    amount: float
    fee: float
    total_amount: float
    description: Optional[str] = None
    category: Optional[str] = None
    status: TransferStatus
    sender: P2PParty
    receiver: P2PParty
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class P2PSendResponse(BaseModel):
    transfer: P2PTransferResponse
    new_balance: float


class P2PTransferListResponse(BaseModel):
    transfers: List[P2PTransferResponse]
    pagination: Pagination


class UserSearchResult(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    student_id: Optional[str] = None
    institution: Optional[str] = None

    class Config:
        from_attributes = True
