import logging
import secrets
import time
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from remie.core.config import get_settings
from remie.models.payment import Payment, PaymentMethod, PaymentStatus
from remie.models.rrr_payment import RRRPayment, RRRStatus
from remie.models.user import User
from remie.schemas.rrr import GenerateRRRRequest
from remie.services.email_service import EmailService
from remie.services.receipt_service import ReceiptService
from remie.services.remita_service import RemitaService
from typing import List, Tuple

logger = logging.getLogger(__name__)

RRR_VALIDITY = timedelta(days=7)


class RRRService:
    """
    Issues Remita Retrieval References for institutional payments and
    tracks whether they have been paid.
    """

    @staticmethod
    def generate(db: Session, user: User, request: GenerateRRRRequest) -> RRRPayment:
        """
        Generate an RRR.

        Flow:
        1. Record a PENDING RRR payment keyed by a new order id.
        2. Ask Remita for an RRR for that order.
        3. Save the RRR with a 7 day expiry and email it to the payer.

        :raises: HTTPException 502 if Remita does not issue an RRR
        """
        service_type_id = request.service_type_id or get_settings().REMITA_SERVICE_TYPE_ID
        order_id = f"REMIE-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"

        payment = Payment(
            user_id=user.id,
            amount=request.amount,
            type=request.payment_type,
            method=PaymentMethod.RRR,
            status=PaymentStatus.PENDING,
            reference=order_id,
            recipient_name=request.institution_name,
            institution_name=request.institution_name,
            description=request.description,
            total_amount=request.amount,
        )
        db.add(payment)
        db.commit()

        try:
            remita = RemitaService.payment_init(
                order_id=order_id,
                amount=request.amount,
                service_type_id=service_type_id,
                payer_name=request.payer_name,
                payer_email=request.payer_email,
                payer_phone=request.payer_phone,
                description=request.description,
            )
        except HTTPException:
            payment.status = PaymentStatus.FAILED
            db.commit()
            raise

        rrr_payment = RRRPayment(
            user_id=user.id,
            payment_id=payment.id,
            rrr=str(remita["RRR"]),
            order_id=order_id,
            amount=request.amount,
            institution_code=request.institution_code,
            institution_name=request.institution_name,
            service_type_id=service_type_id,
            payer_name=request.payer_name,
            payer_email=request.payer_email,
            payer_phone=request.payer_phone,
            status=RRRStatus.INITIATED,
            expires_at=datetime.utcnow() + RRR_VALIDITY,
        )
        db.add(rrr_payment)
        payment.gateway_response = remita
        db.commit()
        db.refresh(rrr_payment)

        logger.info("RRR generated", extra={"rrr": rrr_payment.rrr, "user_id": user.id})

        EmailService.send_rrr_generated(
            request.payer_email,
            request.payer_name.split(" ")[0],
            rrr_payment.rrr,
            request.amount,
            request.institution_name,
            request.description,
        )
        return rrr_payment

    @staticmethod
    def get_rrr(db: Session, user_id: str, rrr: str) -> RRRPayment:
        rrr_payment = db.query(RRRPayment).filter(
            RRRPayment.rrr == rrr,
            RRRPayment.user_id == user_id,
        ).first()

        if not rrr_payment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="RRR not found"
            )
        return rrr_payment

    @staticmethod
    def verify(db: Session, user_id: str, rrr: str) -> Tuple[RRRPayment, str]:
        """
        Check with Remita whether an RRR has been paid.

        A PAID RRR is returned without calling Remita again. An unpaid RRR
        past its expiry is marked EXPIRED.

        :return: Tuple of (rrr payment, message)
        """
        rrr_payment = RRRService.get_rrr(db, user_id, rrr)

        if rrr_payment.status == RRRStatus.PAID:
            return rrr_payment, "Payment successful"

        remita = RemitaService.payment_status(rrr)

        if not RemitaService.is_paid(remita):
            if rrr_payment.status == RRRStatus.INITIATED and rrr_payment.is_expired():
                rrr_payment.status = RRRStatus.EXPIRED
                db.commit()
            return rrr_payment, "Payment pending"

        now = datetime.utcnow()
        rrr_payment.status = RRRStatus.PAID
        rrr_payment.paid_at = now
        rrr_payment.remita_reference = remita.get("transactionRef") or remita.get("paymentReference")

        payment = rrr_payment.payment
        payment.status = PaymentStatus.COMPLETED
        payment.completed_at = now
        payment.gateway_response = remita
        db.commit()
        db.refresh(rrr_payment)

        logger.info("RRR paid", extra={"rrr": rrr})
        ReceiptService.issue_quietly(db, payment)

        return rrr_payment, "Payment successful"

    @staticmethod
    def list_rrrs(db: Session, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[RRRPayment], int]:
        query = db.query(RRRPayment).filter(RRRPayment.user_id == user_id)
        total = query.count()
        items = query.order_by(RRRPayment.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return items, total
