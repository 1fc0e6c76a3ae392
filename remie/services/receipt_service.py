import logging
import secrets
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List, Tuple
from fastapi import HTTPException, status
from remie.core.config import get_settings
from remie.models.payment import Payment, PaymentStatus
from remie.models.receipt import Receipt
from remie.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class ReceiptService:
    """
    Issues receipts for completed payments.
    """

    @staticmethod
    def generate_receipt_number() -> str:
        return f"RCP-{datetime.utcnow():%Y%m%d}-{secrets.token_hex(4).upper()}"

    @staticmethod
    def generate_receipt(db: Session, payment: Payment) -> Receipt:
        """
        Create the receipt for a completed payment, or return the existing one.

        Also queues a RECEIPT_READY notification for the payment owner.

        :param db: Database session
        :param payment: A COMPLETED payment
        :return: Receipt object
        :raises: HTTPException if the payment is not completed
        """
        existing = db.query(Receipt).filter(Receipt.payment_id == payment.id).first()
        if existing:
            return existing

        if payment.status != PaymentStatus.COMPLETED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Receipts are only issued for completed payments."
            )

        settings = get_settings()
        receipt_number = ReceiptService.generate_receipt_number()

        receipt = Receipt(
            receipt_number=receipt_number,
            payment_id=payment.id,
            user_id=payment.user_id,
            amount=payment.amount,
            verification_url=f"{settings.FRONTEND_URL}/verify-receipt/{receipt_number}",
            receipt_metadata={
                "payment_type": payment.type.value,
                "payment_method": payment.method.value,
                "payment_reference": payment.reference,
                "institution_name": payment.institution_name or "N/A",
                "description": payment.description,
            },
        )
        db.add(receipt)

        notification = NotificationService.notify(
            db,
            user_id=payment.user_id,
            notification_type="RECEIPT_READY",
            title="Receipt Generated",
            message=f"Your receipt {receipt_number} is ready",
            data={"receipt_number": receipt_number, "payment_id": payment.id},
        )

        try:
            db.commit()
        except IntegrityError:
            # Another request issued the receipt first
            db.rollback()
            return db.query(Receipt).filter(Receipt.payment_id == payment.id).one()

        db.refresh(receipt)
        logger.info("Receipt generated", extra={"receipt_number": receipt_number, "payment_id": payment.id})
        NotificationService.deliver_email(payment.user, notification)
        return receipt

    @staticmethod
    def issue_quietly(db: Session, payment: Payment) -> Optional[Receipt]:
        """
        Generate a receipt as a side effect of another action.

        Failures are logged; the action that completed the payment stands.
        """
        try:
            return ReceiptService.generate_receipt(db, payment)
        except Exception:
            logger.exception("Failed to generate receipt", extra={"payment_id": payment.id})
            db.rollback()
            return None

    @staticmethod
    def get_user_receipts(db: Session, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[Receipt], int]:
        query = db.query(Receipt).filter(Receipt.user_id == user_id)
        total = query.count()
        receipts = query.order_by(Receipt.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return receipts, total

    @staticmethod
    def get_receipt(db: Session, receipt_id: str, user_id: str) -> Optional[Receipt]:
        return db.query(Receipt).filter(Receipt.id == receipt_id, Receipt.user_id == user_id).first()

    @staticmethod
    def get_by_number(db: Session, receipt_number: str) -> Optional[Receipt]:
        return db.query(Receipt).filter(Receipt.receipt_number == receipt_number).first()
