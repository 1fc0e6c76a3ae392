import logging
import secrets
import time
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from remie.core.config import get_settings
from remie.models.loan import Loan, LoanRepayment, LoanStatus, OPEN_LOAN_STATUSES, REPAYABLE_LOAN_STATUSES
from remie.models.payment import Payment, PaymentType, PaymentMethod, PaymentStatus
from remie.models.user import User
from remie.schemas.loan import LoanApplyRequest
from remie.services.email_service import EmailService
from remie.services.notification_service import NotificationService
from remie.services.receipt_service import ReceiptService
from remie.services.wallet_service import WalletService
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

BASE_CREDIT_SCORE = 500
MIN_CREDIT_SCORE = 300
MAX_CREDIT_SCORE = 850
MIN_ELIGIBLE_SCORE = 400


class LoanService:
    """
    Student microloans: simple interest, one open loan per user, repaid
    from the wallet.
    """

    @staticmethod
    def generate_loan_number() -> str:
        return f"LOAN-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"

    @staticmethod
    def calculate(amount: float, tenure: int, interest_rate: Optional[float] = None) -> Dict[str, float]:
        """
        Simple interest over a tenure in days.

        interest = amount * rate * tenure / (365 * 100)

        :param amount: Principal in NGN
        :param tenure: Days
        :param interest_rate: Annual percentage; the configured rate when omitted
        """
        if interest_rate is None:
            interest_rate = get_settings().LOAN_INTEREST_RATE

        interest = round(amount * interest_rate * tenure / (365 * 100), 2)
        total = round(amount + interest, 2)
        return {
            "amount": amount,
            "interest_rate": interest_rate,
            "tenure": tenure,
            "interest": interest,
            "total_repayable": total,
            "daily_repayment": round(total / tenure, 2),
        }

    @staticmethod
    def credit_score(db: Session, user_id: str) -> int:
        """
        500 with no history, +50 per completed loan, -100 per default and
        -25 per active loan, clamped to 300..850.
        """
        loans = db.query(Loan.status).filter(Loan.user_id == user_id).all()
        if not loans:
            return BASE_CREDIT_SCORE

        statuses = [s for (s,) in loans]
        score = BASE_CREDIT_SCORE
        score += statuses.count(LoanStatus.COMPLETED) * 50
        score -= statuses.count(LoanStatus.DEFAULTED) * 100
        score -= statuses.count(LoanStatus.ACTIVE) * 25
        return max(MIN_CREDIT_SCORE, min(MAX_CREDIT_SCORE, score))

    @staticmethod
    def has_open_loan(db: Session, user_id: str) -> bool:
        return db.query(Loan).filter(
            Loan.user_id == user_id,
            Loan.status.in_(OPEN_LOAN_STATUSES),
        ).first() is not None

    @staticmethod
    def apply(db: Session, user: User, request: LoanApplyRequest) -> Loan:
        """
        Apply for a loan. Approved and disbursed immediately when
        LOAN_AUTO_APPROVE is on.

        :raises: HTTPException 400 for out-of-range amount or tenure, an
            existing open loan, or a credit score under 400
        """
        settings = get_settings()
        WalletService.ensure_can_transact(user)

        if request.amount < settings.MIN_LOAN_AMOUNT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Minimum loan amount is ₦{settings.MIN_LOAN_AMOUNT:,.0f}"
            )
        if request.amount > settings.MAX_LOAN_AMOUNT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Maximum loan amount is ₦{settings.MAX_LOAN_AMOUNT:,.0f}"
            )
        if not settings.MIN_LOAN_TENURE_DAYS <= request.tenure <= settings.MAX_LOAN_TENURE_DAYS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Loan tenure must be between {settings.MIN_LOAN_TENURE_DAYS} and {settings.MAX_LOAN_TENURE_DAYS} days"
            )

        if LoanService.has_open_loan(db, user.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You already have an active loan"
            )

        score = LoanService.credit_score(db, user.id)
        if score < MIN_ELIGIBLE_SCORE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Credit score too low for loan approval"
            )

        calc = LoanService.calculate(request.amount, request.tenure)
        loan = Loan(
            user_id=user.id,
            loan_number=LoanService.generate_loan_number(),
            amount=request.amount,
            interest_rate=calc["interest_rate"],
            tenure=request.tenure,
            purpose=request.purpose,
            purpose_type=request.purpose_type,
            total_repayable=calc["total_repayable"],
            amount_paid=0.0,
            amount_outstanding=calc["total_repayable"],
            due_date=datetime.utcnow() + timedelta(days=request.tenure),
            credit_score=score,
            status=LoanStatus.PENDING,
        )
        db.add(loan)
        db.commit()
        db.refresh(loan)

        logger.info("Loan application created", extra={"loan_number": loan.loan_number, "user_id": user.id})

        if settings.LOAN_AUTO_APPROVE:
            loan = LoanService.approve(db, loan.id, approved_by="SYSTEM")

        return loan

    @staticmethod
    def get_loan_or_404(db: Session, loan_id: str, user_id: Optional[str] = None) -> Loan:
        query = db.query(Loan).filter(Loan.id == loan_id)
        if user_id is not None:
            query = query.filter(Loan.user_id == user_id)
        loan = query.first()

        if not loan:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Loan not found"
            )
        return loan

    @staticmethod
    def approve(db: Session, loan_id: str, approved_by: str) -> Loan:
        """
        Approve a PENDING loan and disburse it into the borrower's wallet.

        :param approved_by: Admin user id, or SYSTEM for auto-approval
        """
        loan = LoanService.get_loan_or_404(db, loan_id)
        if loan.status != LoanStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Loan is not in pending status"
            )

        now = datetime.utcnow()
        try:
            wallet = WalletService.get_wallet_by_user_id(db, loan.user_id) \
                or WalletService.create_wallet_for_user(db, loan.user)
            wallet.credit(loan.amount)

            loan.status = LoanStatus.DISBURSED
            loan.approved_by = approved_by
            loan.approved_at = now
            loan.disbursed_at = now

            disbursement = Payment(
                user_id=loan.user_id,
                amount=loan.amount,
                type=PaymentType.LOAN_DISBURSEMENT,
                method=PaymentMethod.WALLET,
                status=PaymentStatus.COMPLETED,
                reference=f"{loan.loan_number}-DISB",
                description=f"Loan disbursement {loan.loan_number}",
                total_amount=loan.amount,
                payment_metadata={"loan_id": loan.id},
                completed_at=now,
            )
            db.add(disbursement)

            NotificationService.notify(
                db,
                user_id=loan.user_id,
                notification_type="LOAN_APPROVED",
                title="Loan Approved",
                message=f"Your loan of ₦{loan.amount:,.2f} has been approved and disbursed to your wallet",
                data={"loan_id": loan.id, "loan_number": loan.loan_number},
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(loan)
        logger.info("Loan disbursed", extra={"loan_number": loan.loan_number, "approved_by": approved_by})

        ReceiptService.issue_quietly(db, disbursement)
        EmailService.send_loan_approved(
            loan.user.email, loan.user.first_name, loan.amount, loan.interest_rate,
            loan.total_repayable, loan.due_date,
        )
        return loan

    @staticmethod
    def reject(db: Session, loan_id: str, rejected_by: str, reason: Optional[str] = None) -> Loan:
        loan = LoanService.get_loan_or_404(db, loan_id)
        if loan.status != LoanStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Loan is not in pending status"
            )

        loan.status = LoanStatus.REJECTED
        loan.approved_by = rejected_by
        notification = NotificationService.notify(
            db,
            user_id=loan.user_id,
            notification_type="LOAN_REJECTED",
            title="Loan Rejected",
            message=reason or "Your loan application was not approved",
            data={"loan_id": loan.id},
        )
        db.commit()
        db.refresh(loan)

        logger.info("Loan rejected", extra={"loan_number": loan.loan_number, "rejected_by": rejected_by})
        NotificationService.deliver_email(loan.user, notification)
        return loan

    @staticmethod
    def repay(db: Session, user: User, loan_id: str, amount: float) -> Tuple[Loan, LoanRepayment, float]:
        """
        Repay part or all of a loan from the wallet.

        :return: Tuple of (loan, repayment, new available balance)
        """
        loan = LoanService.get_loan_or_404(db, loan_id, user_id=user.id)

        if loan.status not in REPAYABLE_LOAN_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Loan is not active"
            )
        if amount <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Repayment amount must be greater than 0"
            )
        if amount > loan.amount_outstanding:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Repayment amount exceeds outstanding balance"
            )

        wallet = WalletService.get_or_create_wallet(db, user)
        WalletService.ensure_not_frozen(wallet)
        if wallet.available_balance < amount:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Insufficient wallet balance"
            )

        now = datetime.utcnow()
        reference = f"REPAY-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"

        try:
            wallet.debit(amount)

            loan.amount_paid = round(loan.amount_paid + amount, 2)
            loan.amount_outstanding = round(loan.amount_outstanding - amount, 2)
            loan.last_payment_date = now
            loan.status = LoanStatus.COMPLETED if loan.amount_outstanding <= 0 else LoanStatus.ACTIVE
            if loan.amount_outstanding < 0:
                loan.amount_outstanding = 0.0

            repayment = LoanRepayment(
                loan_id=loan.id,
                amount=amount,
                reference=reference,
                payment_method=PaymentMethod.WALLET,
                status="COMPLETED",
                paid_at=now,
            )
            db.add(repayment)

            payment = Payment(
                user_id=user.id,
                amount=amount,
                type=PaymentType.LOAN_REPAYMENT,
                method=PaymentMethod.WALLET,
                status=PaymentStatus.COMPLETED,
                reference=reference,
                description=f"Loan repayment {loan.loan_number}",
                total_amount=amount,
                payment_metadata={"loan_id": loan.id},
                completed_at=now,
            )
            db.add(payment)

            notification = NotificationService.notify(
                db,
                user_id=user.id,
                notification_type="WALLET_DEBITED",
                title="Loan Repayment",
                message=f"₦{amount:,.2f} was paid towards loan {loan.loan_number}",
                data={"loan_id": loan.id, "reference": reference},
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(loan)
        db.refresh(repayment)
        db.refresh(wallet)
        logger.info("Loan repayment", extra={"loan_number": loan.loan_number, "amount": amount})

        ReceiptService.issue_quietly(db, payment)
        NotificationService.deliver_email(user, notification)
        return loan, repayment, wallet.available_balance

    @staticmethod
    def get_user_loans(db: Session, user_id: str) -> List[Loan]:
        return db.query(Loan).filter(Loan.user_id == user_id).order_by(Loan.created_at.desc()).all()

    @staticmethod
    def mark_overdue_loans(db: Session, now: Optional[datetime] = None) -> int:
        """
        Mark repayable loans past their due date as DEFAULTED.

        Run daily from the admin CLI.

        :return: Number of loans defaulted
        """
        now = now or datetime.utcnow()
        overdue = db.query(Loan).filter(
            Loan.status.in_(REPAYABLE_LOAN_STATUSES),
            Loan.due_date < now,
        ).all()

        notifications = []
        for loan in overdue:
            loan.status = LoanStatus.DEFAULTED
            notifications.append(NotificationService.notify(
                db,
                user_id=loan.user_id,
                notification_type="LOAN_DEFAULTED",
                title="Loan Overdue",
                message=f"Your loan {loan.loan_number} is past its due date. "
                        f"₦{loan.amount_outstanding:,.2f} remains outstanding.",
                data={"loan_id": loan.id},
            ))
        db.commit()

        for loan, notification in zip(overdue, notifications):
            NotificationService.deliver_email(loan.user, notification)

        if overdue:
            logger.info("Overdue loans defaulted", extra={"count": len(overdue)})
        return len(overdue)
