import logging
from datetime import datetime
from sqlalchemy.orm import Session
from remie.models.payment import Payment, PaymentType, PaymentStatus
from remie.services.notification_service import NotificationService
from remie.services.receipt_service import ReceiptService
from remie.services.wallet_service import WalletService
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class WebhookService:
    """
    Applies Paystack webhook events to payments and wallets.

    Every handler is idempotent: a payment already in a final state is left
    alone, so Paystack retries are harmless.
    """

    @staticmethod
    def process_event(db: Session, event: str, data: Dict[str, Any]) -> None:
        handlers = {
            "charge.success": WebhookService.handle_charge_success,
            "transfer.success": WebhookService.handle_transfer_success,
            "transfer.failed": WebhookService.handle_transfer_failed,
            "transfer.reversed": WebhookService.handle_transfer_reversed,
        }

        handler = handlers.get(event)
        if handler is None:
            logger.info("Unhandled Paystack event", extra={"event": event})
            return

        handler(db, data)

    @staticmethod
    def _find_payment(db: Session, data: Dict[str, Any]) -> Optional[Payment]:
        reference = data.get("reference")
        if not reference:
            return None
        return db.query(Payment).filter(Payment.reference == reference).first()

    @staticmethod
    def handle_charge_success(db: Session, data: Dict[str, Any]) -> None:
        payment = WebhookService._find_payment(db, data)
        if not payment:
            logger.warning("charge.success for unknown reference", extra={"reference": data.get("reference")})
            return

        if payment.status == PaymentStatus.COMPLETED:
            return

        if payment.type == PaymentType.WALLET_FUNDING:
            WalletService.verify_funding(db, payment.reference)
            return

        payment.status = PaymentStatus.COMPLETED
        payment.completed_at = datetime.utcnow()
        payment.gateway_response = data
        db.commit()
        ReceiptService.issue_quietly(db, payment)

    @staticmethod
    def handle_transfer_success(db: Session, data: Dict[str, Any]) -> None:
        payment = WebhookService._find_payment(db, data)
        if not payment or payment.type != PaymentType.WITHDRAWAL:
            return
        if payment.status not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            return

        wallet = WalletService.get_wallet_by_user_id(db, payment.user_id)
        # available_balance was taken when the transfer started
        wallet.balance = round(wallet.balance - payment.amount, 2)
        wallet.ledger_balance = round(wallet.ledger_balance - payment.amount, 2)

        payment.status = PaymentStatus.COMPLETED
        payment.completed_at = datetime.utcnow()
        payment.gateway_response = data

        notification = NotificationService.notify(
            db,
            user_id=payment.user_id,
            notification_type="WITHDRAWAL_COMPLETED",
            title="Withdrawal Successful",
            message=f"₦{payment.amount:,.2f} has been sent to {payment.recipient_name}",
            data={"reference": payment.reference},
        )
        db.commit()

        logger.info("Withdrawal completed", extra={"reference": payment.reference})
        NotificationService.deliver_email(payment.user, notification)
        ReceiptService.issue_quietly(db, payment)

    @staticmethod
    def handle_transfer_failed(db: Session, data: Dict[str, Any]) -> None:
        payment = WebhookService._find_payment(db, data)
        if not payment or payment.type != PaymentType.WITHDRAWAL:
            return
        if payment.status not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            return

        wallet = WalletService.get_wallet_by_user_id(db, payment.user_id)
        wallet.available_balance = round(wallet.available_balance + payment.amount, 2)

        payment.status = PaymentStatus.FAILED
        payment.gateway_response = data

        notification = NotificationService.notify(
            db,
            user_id=payment.user_id,
            notification_type="WITHDRAWAL_FAILED",
            title="Withdrawal Failed",
            message=f"Your withdrawal of ₦{payment.amount:,.2f} failed and has been refunded",
            data={"reference": payment.reference},
        )
        db.commit()

        logger.warning("Withdrawal failed, refunded", extra={"reference": payment.reference})
        NotificationService.deliver_email(payment.user, notification)

    @staticmethod
    def handle_transfer_reversed(db: Session, data: Dict[str, Any]) -> None:
        payment = WebhookService._find_payment(db, data)
        if not payment or payment.type != PaymentType.WITHDRAWAL:
            return
        if payment.status not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.COMPLETED):
            return

        wallet = WalletService.get_wallet_by_user_id(db, payment.user_id)
        wallet.available_balance = round(wallet.available_balance + payment.amount, 2)
        if payment.status == PaymentStatus.COMPLETED:
            wallet.balance = round(wallet.balance + payment.amount, 2)
            wallet.ledger_balance = round(wallet.ledger_balance + payment.amount, 2)

        payment.status = PaymentStatus.REFUNDED
        payment.gateway_response = data

        notification = NotificationService.notify(
            db,
            user_id=payment.user_id,
            notification_type="WITHDRAWAL_REVERSED",
            title="Withdrawal Reversed",
            message=f"Your withdrawal of ₦{payment.amount:,.2f} was reversed and refunded",
            data={"reference": payment.reference},
        )
        db.commit()

        logger.warning("Withdrawal reversed, refunded", extra={"reference": payment.reference})
        NotificationService.deliver_email(payment.user, notification)
