from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.middleware.auth import require_admin
from remie.models.user import User, UserStatus
from remie.schemas.admin import (
    ActivityItem,
    AdminUserDetail,
    AdminUserListResponse,
    DashboardStats,
    SetNicknameRequest,
    UpdateLimitsRequest,
)
from remie.schemas.common import Pagination
from remie.schemas.loan import LoanResponse
from remie.schemas.user import UserResponse
from remie.schemas.wallet import WalletResponse
from remie.services.admin_service import AdminService
from remie.services.loan_service import LoanService
from typing import List, Optional

# Every route here requires the ADMIN role
router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats", response_model=DashboardStats)
async def get_stats(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return DashboardStats(**AdminService.get_dashboard_stats(db))


@router.get("/activities", response_model=List[ActivityItem])
async def get_activities(
        limit: int = Query(50, ge=1, le=200),
        admin: User = Depends(require_admin),
        db: Session = Depends(get_db),
):
    return [ActivityItem(**a) for a in AdminService.get_recent_activities(db, limit)]


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        status: Optional[UserStatus] = None,
        search: Optional[str] = None,
        admin: User = Depends(require_admin),
        db: Session = Depends(get_db),
):
    users, total = AdminService.list_users(db, page, limit, status, search)
    return AdminUserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/users/pending-approval", response_model=List[UserResponse])
async def pending_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return [UserResponse.model_validate(u) for u in AdminService.get_pending_users(db)]


@router.get("/users/{user_id}", response_model=AdminUserDetail)
async def get_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return AdminUserDetail.model_validate(AdminService.get_user_details(db, user_id), from_attributes=True)


@router.post("/users/{user_id}/approve", response_model=UserResponse)
async def approve_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return UserResponse.model_validate(AdminService.approve_user(db, user_id, admin))


@router.post("/users/{user_id}/reject", response_model=UserResponse)
async def reject_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return UserResponse.model_validate(AdminService.set_status(db, user_id, UserStatus.INACTIVE, admin))


@router.post("/users/{user_id}/suspend", response_model=UserResponse)
async def suspend_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return UserResponse.model_validate(AdminService.set_status(db, user_id, UserStatus.SUSPENDED, admin))


@router.post("/users/{user_id}/activate", response_model=UserResponse)
async def activate_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return UserResponse.model_validate(AdminService.set_status(db, user_id, UserStatus.ACTIVE, admin))


@router.post("/users/{user_id}/deactivate", response_model=UserResponse)
async def deactivate_user(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return UserResponse.model_validate(AdminService.set_status(db, user_id, UserStatus.INACTIVE, admin))


@router.put("/users/{user_id}/limits", response_model=WalletResponse)
async def update_limits(
        user_id: str,
        request: UpdateLimitsRequest,
        admin: User = Depends(require_admin),
        db: Session = Depends(get_db),
):
    wallet = AdminService.update_limits(db, user_id, request.daily_limit, request.monthly_limit)
    return WalletResponse.model_validate(wallet)


@router.put("/users/{user_id}/nickname", response_model=UserResponse)
async def set_nickname(
        user_id: str,
        request: SetNicknameRequest,
        admin: User = Depends(require_admin),
        db: Session = Depends(get_db),
):
    return UserResponse.model_validate(AdminService.set_nickname(db, user_id, request.nickname))


@router.post("/loans/{loan_id}/approve", response_model=LoanResponse)
async def approve_loan(loan_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return LoanResponse.model_validate(LoanService.approve(db, loan_id, approved_by=admin.id))


@router.post("/loans/{loan_id}/reject", response_model=LoanResponse)
async def reject_loan(loan_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return LoanResponse.model_validate(LoanService.reject(db, loan_id, rejected_by=admin.id))
