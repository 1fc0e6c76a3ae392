import logging
from datetime import datetime
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from remie.models.loan import Loan, LoanStatus
from remie.models.payment import Payment, PaymentStatus
from remie.models.user import User, UserStatus
from remie.models.wallet import Wallet
from remie.services.notification_service import NotificationService
from remie.services.user_service import UserService
from remie.services.wallet_service import WalletService
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class AdminService:
    """
    Back-office operations for ADMIN users.
    """

    @staticmethod
    def get_dashboard_stats(db: Session) -> Dict[str, Any]:
        def count_users(user_status: Optional[UserStatus] = None) -> int:
            query = db.query(func.count(User.id))
            if user_status is not None:
                query = query.filter(User.status == user_status)
            return query.scalar() or 0

        def count_loans(loan_status: LoanStatus) -> int:
            return db.query(func.count(Loan.id)).filter(Loan.status == loan_status).scalar() or 0

        completed = db.query(Payment).filter(Payment.status == PaymentStatus.COMPLETED)

        return {
            "total_users": count_users(),
            "active_users": count_users(UserStatus.ACTIVE),
            "pending_approval": count_users(UserStatus.PENDING_APPROVAL),
            "suspended_users": count_users(UserStatus.SUSPENDED),
            "total_wallet_balance": float(db.query(func.coalesce(func.sum(Wallet.balance), 0.0)).scalar()),
            "total_transactions": db.query(func.count(Payment.id)).scalar() or 0,
            "completed_transactions": completed.count(),
            "total_volume": float(
                completed.with_entities(func.coalesce(func.sum(Payment.amount), 0.0)).scalar()
            ),
            "pending_loans": count_loans(LoanStatus.PENDING),
            "active_loans": count_loans(LoanStatus.ACTIVE) + count_loans(LoanStatus.DISBURSED),
        }

    @staticmethod
    def get_recent_activities(db: Session, limit: int = 50) -> List[Dict[str, Any]]:
        rows = db.query(Payment, User).join(User, Payment.user_id == User.id)\
            .order_by(Payment.created_at.desc()).limit(limit).all()

        return [
            {
                "id": payment.id,
                "type": payment.type.value,
                "amount": payment.amount,
                "status": payment.status.value,
                "reference": payment.reference,
                "user_name": user.full_name,
                "user_email": user.email,
                "created_at": payment.created_at,
            }
            for payment, user in rows
        ]

    @staticmethod
    def list_users(
            db: Session,
            page: int = 1,
            limit: int = 20,
            user_status: Optional[UserStatus] = None,
            search: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        query = db.query(User)
        if user_status is not None:
            query = query.filter(User.status == user_status)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(or_(
                func.lower(User.email).like(pattern),
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
                User.phone_number.like(pattern),
            ))

        total = query.count()
        users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return users, total

    @staticmethod
    def get_pending_users(db: Session) -> List[User]:
        return db.query(User).filter(User.status == UserStatus.PENDING_APPROVAL)\
            .order_by(User.created_at.asc()).all()

    @staticmethod
    def get_user_or_404(db: Session, user_id: str) -> User:
        user = UserService.get_user_by_id(db, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        return user

    @staticmethod
    def get_user_details(db: Session, user_id: str) -> Dict[str, Any]:
        user = AdminService.get_user_or_404(db, user_id)

        payments = db.query(Payment).filter(Payment.user_id == user.id)
        loans = db.query(Loan).filter(Loan.user_id == user.id)

        return {
            "user": user,
            "wallet": user.wallet,
            "recent_payments": payments.order_by(Payment.created_at.desc()).limit(10).all(),
            "recent_loans": loans.order_by(Loan.created_at.desc()).limit(5).all(),
            "payment_count": payments.count(),
            "loan_count": loans.count(),
        }

    @staticmethod
    def approve_user(db: Session, user_id: str, admin: User) -> User:
        user = AdminService.get_user_or_404(db, user_id)
        if user.status != UserStatus.PENDING_APPROVAL:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User is not pending approval"
            )

        user.status = UserStatus.ACTIVE
        user.approved_by = admin.id
        user.approved_at = datetime.utcnow()
        notification = NotificationService.notify(
            db,
            user_id=user.id,
            notification_type="ACCOUNT_APPROVED",
            title="Account Approved",
            message="Your account has been approved. You can now fund your wallet and make payments.",
        )
        db.commit()
        db.refresh(user)

        logger.info("User approved", extra={"user_id": user.id, "admin_id": admin.id})
        NotificationService.deliver_email(user, notification)
        return user

    @staticmethod
    def set_status(db: Session, user_id: str, new_status: UserStatus, admin: User) -> User:
        """
        Reject, suspend, activate or deactivate an account.
        """
        user = AdminService.get_user_or_404(db, user_id)
        if user.id == admin.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot change your own status"
            )

        user.status = new_status
        if new_status != UserStatus.ACTIVE:
            user.refresh_token = None
        db.commit()
        db.refresh(user)

        logger.info("User status changed", extra={"user_id": user.id, "status": new_status.value, "admin_id": admin.id})
        return user

    @staticmethod
    def update_limits(
            db: Session,
            user_id: str,
            daily_limit: Optional[float],
            monthly_limit: Optional[float],
    ) -> Wallet:
        if (daily_limit is not None and daily_limit < 0) or (monthly_limit is not None and monthly_limit < 0):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Limits cannot be negative"
            )

        user = AdminService.get_user_or_404(db, user_id)
        wallet = WalletService.get_or_create_wallet(db, user)
        if daily_limit is not None:
            wallet.daily_limit = daily_limit
        if monthly_limit is not None:
            wallet.monthly_limit = monthly_limit
        db.commit()
        db.refresh(wallet)
        return wallet

    @staticmethod
    def set_nickname(db: Session, user_id: str, nickname: Optional[str]) -> User:
        user = AdminService.get_user_or_404(db, user_id)
        nickname = (nickname or "").strip() or None

        if nickname:
            taken = db.query(User).filter(User.nickname == nickname, User.id != user.id).first()
            if taken:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Nickname is already taken"
                )

        user.nickname = nickname
        user.nickname_set_at = datetime.utcnow() if nickname else None
        db.commit()
        db.refresh(user)
        return user
