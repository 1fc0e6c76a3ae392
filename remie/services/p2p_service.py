import logging
import secrets
import time
from datetime import datetime
from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from remie.core.config import get_settings
from remie.models.p2p_transfer import P2PTransfer, TransferStatus
from remie.models.payment import Payment, PaymentType, PaymentMethod, PaymentStatus
from remie.models.user import User, UserStatus
from remie.schemas.p2p import P2PSendRequest
from remie.services.email_service import EmailService
from remie.services.notification_service import NotificationService
from remie.services.receipt_service import ReceiptService
from remie.services.user_service import UserService
from remie.services.wallet_service import WalletService
from typing import List, Tuple

logger = logging.getLogger(__name__)


class P2PService:
    """
    Wallet-to-wallet transfers between REMIE users.
    """

    @staticmethod
    def generate_reference() -> str:
        return f"P2P-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"

    @staticmethod
    def send(db: Session, sender: User, request: P2PSendRequest) -> Tuple[P2PTransfer, float]:
        """
        Transfer funds from sender's wallet to another user's wallet.

        This is an ATOMIC operation - both wallets, the transfer, the
        sender's payment record and both notifications are committed
        together, or nothing is.

        :param db: Database session
        :param sender: The sending user
        :param request: Receiver identifier, amount and note
        :return: Tuple of (transfer, sender's new available balance)
        """
        settings = get_settings()
        amount = request.amount

        WalletService.ensure_can_transact(sender)

        if amount > settings.P2P_MAX_TRANSFER_AMOUNT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Maximum transfer amount is ₦{settings.P2P_MAX_TRANSFER_AMOUNT:,.0f}"
            )

        receiver = UserService.find_active_by_identifier(db, request.receiver_identifier)
        if not receiver:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Receiver not found"
            )

        if receiver.id == sender.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot send money to yourself"
            )

        sender_wallet = WalletService.get_or_create_wallet(db, sender)
        WalletService.ensure_not_frozen(sender_wallet)

        receiver_wallet = WalletService.get_or_create_wallet(db, receiver)
        if receiver_wallet.is_frozen:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Receiver's wallet cannot receive funds"
            )

        fee = round(amount * settings.P2P_FEE_PERCENT / 100, 2)
        total = round(amount + fee, 2)

        if sender_wallet.available_balance < total:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Insufficient balance"
            )

        reference = P2PService.generate_reference()
        now = datetime.utcnow()

        try:
            sender_wallet.debit(total)
            receiver_wallet.credit(amount)

            transfer = P2PTransfer(
                sender_id=sender.id,
                receiver_id=receiver.id,
                reference=reference,
                amount=amount,
                fee=fee,
                total_amount=total,
                description=request.description,
                category=request.category,
                status=TransferStatus.COMPLETED,
                completed_at=now,
            )
            db.add(transfer)

            payment = Payment(
                user_id=sender.id,
                amount=amount,
                type=PaymentType.P2P_TRANSFER,
                method=PaymentMethod.WALLET,
                status=PaymentStatus.COMPLETED,
                reference=reference,
                recipient_name=receiver.full_name,
                description=request.description or f"Transfer to {receiver.full_name}",
                processing_fee=fee,
                total_amount=total,
                payment_metadata={"receiver_id": receiver.id, "category": request.category},
                completed_at=now,
            )
            db.add(payment)

            sent_notification = NotificationService.notify(
                db,
                user_id=sender.id,
                notification_type="P2P_SENT",
                title="Money Sent",
                message=f"You sent ₦{amount:,.2f} to {receiver.full_name}",
                data={"reference": reference, "amount": amount},
            )
            NotificationService.notify(
                db,
                user_id=receiver.id,
                notification_type="P2P_RECEIVED",
                title="Money Received",
                message=f"{sender.full_name} sent you ₦{amount:,.2f}",
                data={"reference": reference, "amount": amount},
            )

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(transfer)
        db.refresh(sender_wallet)
        logger.info("P2P transfer completed", extra={"reference": reference, "amount": amount})

        ReceiptService.issue_quietly(db, payment)
        EmailService.send_p2p_received(
            receiver.email, receiver.first_name, amount, sender.full_name, request.description
        )
        NotificationService.deliver_email(sender, sent_notification)

        return transfer, sender_wallet.available_balance

    @staticmethod
    def get_transfers(
            db: Session,
            user_id: str,
            direction: str = "all",
            page: int = 1,
            limit: int = 20,
    ) -> Tuple[List[P2PTransfer], int]:
        """
        :param direction: sent, received or all
        """
        query = db.query(P2PTransfer)
        if direction == "sent":
            query = query.filter(P2PTransfer.sender_id == user_id)
        elif direction == "received":
            query = query.filter(P2PTransfer.receiver_id == user_id)
        else:
            query = query.filter(or_(P2PTransfer.sender_id == user_id, P2PTransfer.receiver_id == user_id))

        total = query.count()
        transfers = query.order_by(P2PTransfer.created_at.desc())\
            .offset((page - 1) * limit).limit(limit).all()
        return transfers, total

    @staticmethod
    def get_transfer(db: Session, user_id: str, reference: str) -> P2PTransfer:
        transfer = db.query(P2PTransfer).filter(
            P2PTransfer.reference == reference,
            or_(P2PTransfer.sender_id == user_id, P2PTransfer.receiver_id == user_id),
        ).first()

        if not transfer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Transfer not found"
            )
        return transfer

    @staticmethod
    def search_users(db: Session, user_id: str, q: str) -> List[User]:
        """
        Find up to 10 active users to send money to.
        """
        pattern = f"%{q.strip().lower()}%"
        return db.query(User).filter(
            User.id != user_id,
            User.status == UserStatus.ACTIVE,
            or_(
                func.lower(User.email).like(pattern),
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
                func.lower(User.student_id).like(pattern),
            )
        ).limit(10).all()
