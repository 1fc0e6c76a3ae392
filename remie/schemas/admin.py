from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from remie.schemas.user import UserResponse
from remie.schemas.wallet import WalletResponse, PaymentResponse
from remie.schemas.loan import LoanResponse
from remie.schemas.common import Pagination


class DashboardStats(BaseModel):
    total_users: int
    active_users: int
    pending_approval: int
    suspended_users: int
    total_wallet_balance: float
    total_transactions: int
    completed_transactions: int
    total_volume: float
    pending_loans: int
    active_loans: int


class ActivityItem(BaseModel):
    id: str
    type: str
    amount: float
    status: str
    reference: str
    user_name: str
    user_email: str
    created_at: datetime


class AdminUserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: Pagination


class AdminUserDetail(BaseModel):
    user: UserResponse
    wallet: Optional[WalletResponse] = None
    recent_payments: List[PaymentResponse]
    recent_loans: List[LoanResponse]
    payment_count: int
    loan_count: int


class UpdateLimitsRequest(BaseModel):
    daily_limit: Optional[float] = None
    monthly_limit: Optional[float] = None


class SetNicknameRequest(BaseModel):
    nickname: Optional[str] = Field(None, max_length=50, description="Empty clears the nickname")
