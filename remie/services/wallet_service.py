import logging
from datetime import datetime
from sqlalchemy import func
from sqlalchemy.orm import Session
from remie.core.config import get_settings
from remie.models.wallet import Wallet
from remie.models.user import User, UserStatus
from remie.models.payment import Payment, PaymentType, PaymentMethod, PaymentStatus
from remie.schemas.wallet import WithdrawRequest
from remie.services.paystack_service import PaystackService
from remie.services.notification_service import NotificationService
from remie.services.receipt_service import ReceiptService
from remie.services.email_service import EmailService
from typing import Optional, List, Tuple, Dict, Any
from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

MIN_FUNDING_AMOUNT = 100
MAX_FUNDING_AMOUNT = 1_000_000

# Statuses allowed to move money
TRANSACTING_STATUSES = (UserStatus.ACTIVE, UserStatus.PENDING_VERIFICATION)


class WalletService:
    """
    Service layer for wallet-related operations.
    Handles wallet creation, funding limits, card funding and withdrawals.
    """

    @staticmethod
    def create_wallet_for_user(db: Session, user: User) -> Wallet:
        """
        Add a wallet with a unique wallet number for a user.

        The wallet is flushed, not committed, so it is saved together with
        the user that owns it.

        :param db:
        :param user: user object
        :return: Newly created wallet object
        """
        settings = get_settings()

        max_attempts = 10
        for _ in range(max_attempts):
            wallet_number = Wallet.generate_wallet_number()
            if not WalletService.get_wallet_by_wallet_number(db, wallet_number):
                break
        else:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not generate a unique wallet number. Please try again later."
            )

        wallet = Wallet(
            user_id=user.id,
            wallet_number=wallet_number,
            balance=0.0,
            available_balance=0.0,
            ledger_balance=0.0,
            daily_limit=settings.DEFAULT_DAILY_LIMIT,
            monthly_limit=settings.DEFAULT_MONTHLY_LIMIT,
        )
        db.add(wallet)
        db.flush()
        return wallet

    @staticmethod
    def get_wallet_by_user_id(db: Session, user_id: str) -> Optional[Wallet]:
        """
        Get a user's wallet by their user ID.
        :param db:
        :param user_id:
        :return: Wallet object if found, None otherwise
        """
        return db.query(Wallet).filter(Wallet.user_id == user_id).first()

    @staticmethod
    def get_wallet_by_wallet_number(db: Session, wallet_number: str) -> Optional[Wallet]:
        return db.query(Wallet).filter(Wallet.wallet_number == wallet_number).first()

    @staticmethod
    def get_or_create_wallet(db: Session, user: User) -> Wallet:
        """
        Get existing wallet or create a new one for the user.

        :param db:
        :param user:
        :return: User's wallet
        """
        wallet = WalletService.get_wallet_by_user_id(db, user.id)

        if not wallet:
            wallet = WalletService.create_wallet_for_user(db, user)
            db.commit()
            db.refresh(wallet)

        return wallet

    @staticmethod
    def ensure_not_frozen(wallet: Wallet) -> None:
        if wallet.is_frozen:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Wallet is frozen. Please contact support."
            )

    @staticmethod
    def ensure_can_transact(user: User) -> None:
        """
        :raises: HTTPException 403 unless the account may move money
        """
        if user.status == UserStatus.PENDING_APPROVAL:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Your account is pending admin approval. You cannot transact until approved."
            )
        if user.status not in TRANSACTING_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is not active"
            )

    @staticmethod
    def reset_limits_if_needed(wallet: Wallet, now: Optional[datetime] = None) -> None:
        """
        Zero the funding counters when a new day or month has started since
        the last reset.
        """
        now = now or datetime.utcnow()

        if wallet.last_daily_reset is None or wallet.last_daily_reset.date() < now.date():
            wallet.daily_funding_spent = 0.0
            wallet.last_daily_reset = now

        last_monthly = wallet.last_monthly_reset
        if last_monthly is None or (last_monthly.year, last_monthly.month) < (now.year, now.month):
            wallet.monthly_funding_spent = 0.0
            wallet.last_monthly_reset = now

    @staticmethod
    def check_funding_limits(wallet: Wallet, amount: float) -> None:
        """
        :raises: HTTPException 400 if the amount is out of range or over a limit
        """
        if amount < MIN_FUNDING_AMOUNT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Minimum funding amount is ₦{MIN_FUNDING_AMOUNT:,}"
            )
        if amount > MAX_FUNDING_AMOUNT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Maximum funding amount is ₦{MAX_FUNDING_AMOUNT:,}"
            )

        if wallet.daily_funding_spent + amount > wallet.daily_limit:
            remaining = max(wallet.daily_limit - wallet.daily_funding_spent, 0)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Daily funding limit exceeded. You can fund ₦{remaining:,.2f} more today"
            )

        if wallet.monthly_funding_spent + amount > wallet.monthly_limit:
            remaining = max(wallet.monthly_limit - wallet.monthly_funding_spent, 0)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Monthly funding limit exceeded. You can fund ₦{remaining:,.2f} more this month"
            )

    @staticmethod
    def initiate_funding(
            db: Session,
            user: User,
            amount: float,
            callback_url: Optional[str] = None,
            metadata: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Payment, Dict[str, Any]]:
        """
        Start a card funding through Paystack.

        Flow:
        1. Check account status, frozen flag and funding limits.
        2. Record a PENDING WALLET_FUNDING payment.
        3. Initialize the Paystack transaction for the same reference.
        4. The wallet is credited later by verify_funding (webhook or callback).

        :param db: Database session
        :param user: The paying user
        :param amount: Amount in NGN
        :return: Tuple of (payment, Paystack data with authorization_url and access_code)
        """
        WalletService.ensure_can_transact(user)

        wallet = WalletService.get_or_create_wallet(db, user)
        WalletService.ensure_not_frozen(wallet)

        WalletService.reset_limits_if_needed(wallet)
        WalletService.check_funding_limits(wallet, amount)

        reference = PaystackService.generate_reference()
        payment = Payment(
            user_id=user.id,
            amount=amount,
            type=PaymentType.WALLET_FUNDING,
            method=PaymentMethod.CARD,
            status=PaymentStatus.PENDING,
            reference=reference,
            description="Wallet funding via Paystack",
            total_amount=amount,
            payment_metadata=metadata or {},
        )
        db.add(payment)
        db.commit()

        try:
            paystack_data = PaystackService.initialize_transaction(
                email=user.email,
                amount=amount,
                reference=reference,
                callback_url=callback_url,
                metadata={"user_id": user.id, "payment_type": PaymentType.WALLET_FUNDING.value, **(metadata or {})},
            )
        except HTTPException:
            payment.status = PaymentStatus.FAILED
            db.commit()
            raise

        payment.gateway_response = paystack_data
        db.commit()
        db.refresh(payment)

        logger.info("Wallet funding initialized", extra={"user_id": user.id, "reference": reference, "amount": amount})
        return payment, paystack_data

    @staticmethod
    def verify_funding(db: Session, reference: str, user: Optional[User] = None) -> Payment:
        """
        Complete a card funding after Paystack confirms it.

        Idempotent: a COMPLETED payment is returned unchanged, and a
        conditional status update makes sure concurrent callers credit the
        wallet once.

        :param db: Database session
        :param reference: Payment reference
        :param user: When given, the payment must belong to this user
        :return: The payment
        :raises: HTTPException 404 if not found, 400 if Paystack did not succeed
        """
        query = db.query(Payment).filter(
            Payment.reference == reference,
            Payment.type == PaymentType.WALLET_FUNDING,
        )
        if user is not None:
            query = query.filter(Payment.user_id == user.id)
        payment = query.first()

        if not payment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Transaction not found"
            )

        if payment.status == PaymentStatus.COMPLETED:
            return payment

        paystack_data = PaystackService.verify_transaction(reference)

        if paystack_data.get("status") != "success":
            payment.status = PaymentStatus.FAILED
            payment.gateway_response = paystack_data
            db.commit()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Payment verification failed: {paystack_data.get('gateway_response') or paystack_data.get('status')}"
            )

        amount_paid = PaystackService.kobo_to_naira(paystack_data.get("amount", 0))

        try:
            claimed = db.query(Payment).filter(
                Payment.id == payment.id,
                Payment.status != PaymentStatus.COMPLETED,
            ).update({
                Payment.status: PaymentStatus.COMPLETED,
                Payment.completed_at: datetime.utcnow(),
                Payment.gateway_response: paystack_data,
            }, synchronize_session=False)

            if claimed:
                wallet = WalletService.get_wallet_by_user_id(db, payment.user_id)
                WalletService.reset_limits_if_needed(wallet)
                wallet.credit(amount_paid)
                wallet.daily_funding_spent = round(wallet.daily_funding_spent + amount_paid, 2)
                wallet.monthly_funding_spent = round(wallet.monthly_funding_spent + amount_paid, 2)

                NotificationService.notify(
                    db,
                    user_id=payment.user_id,
                    notification_type="WALLET_FUNDED",
                    title="Wallet Funded",
                    message=f"Your wallet has been credited with ₦{amount_paid:,.2f}",
                    data={"reference": reference, "amount": amount_paid},
                )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(payment)
        if not claimed:
            return payment

        logger.info("Wallet funded", extra={"user_id": payment.user_id, "reference": reference, "amount": amount_paid})

        ReceiptService.issue_quietly(db, payment)
        EmailService.send_payment_success(
            payment.user.email, payment.user.first_name, amount_paid, reference, "Wallet Funding"
        )
        return payment

    @staticmethod
    def withdrawn_today(db: Session, user_id: str) -> float:
        """
        Sum of today's withdrawals that are completed or still in flight.
        """
        start_of_day = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        total = db.query(func.coalesce(func.sum(Payment.amount), 0.0)).filter(
            Payment.user_id == user_id,
            Payment.type == PaymentType.WITHDRAWAL,
            Payment.status.in_([PaymentStatus.COMPLETED, PaymentStatus.PROCESSING]),
            Payment.created_at >= start_of_day,
        ).scalar()
        return float(total or 0.0)

    @staticmethod
    def initiate_withdrawal(db: Session, user: User, request: WithdrawRequest) -> Tuple[Payment, Dict[str, Any]]:
        """
        Withdraw from the wallet to a Nigerian bank account.

        The amount is taken from available_balance immediately. balance and
        ledger_balance follow when Paystack reports transfer.success; a
        failed or reversed transfer gives the money back.

        :param db: Database session
        :param user: The withdrawing user
        :param request: Amount, bank account and reason
        :return: Tuple of (payment, Paystack transfer data)
        """
        WalletService.ensure_can_transact(user)

        wallet = WalletService.get_or_create_wallet(db, user)
        WalletService.ensure_not_frozen(wallet)

        amount = request.amount
        if wallet.available_balance < amount:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient balance. Available: ₦{wallet.available_balance:,.2f}"
            )

        if WalletService.withdrawn_today(db, user.id) + amount > wallet.daily_limit:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Daily withdrawal limit exceeded"
            )

        bank = request.bank_account
        account_name = bank.account_name
        if not account_name:
            resolved = PaystackService.resolve_account(bank.account_number, bank.bank_code)
            account_name = resolved["account_name"]

        recipient_code = PaystackService.create_transfer_recipient(account_name, bank.account_number, bank.bank_code)

        reference = PaystackService.generate_reference("WDR")
        payment = Payment(
            user_id=user.id,
            amount=amount,
            type=PaymentType.WITHDRAWAL,
            method=PaymentMethod.BANK_TRANSFER,
            status=PaymentStatus.PENDING,
            reference=reference,
            recipient_name=account_name,
            description=request.reason or "Wallet withdrawal",
            total_amount=amount,
            payment_metadata={
                "account_number": bank.account_number,
                "bank_code": bank.bank_code,
                "account_name": account_name,
                "recipient_code": recipient_code,
            },
        )
        db.add(payment)
        wallet.available_balance = round(wallet.available_balance - amount, 2)
        wallet.last_transaction_at = datetime.utcnow()
        db.commit()

        try:
            transfer = PaystackService.initiate_transfer(
                amount=amount,
                recipient_code=recipient_code,
                reference=reference,
                reason=request.reason or "REMIE wallet withdrawal",
            )
        except HTTPException:
            wallet.available_balance = round(wallet.available_balance + amount, 2)
            payment.status = PaymentStatus.FAILED
            db.commit()
            logger.warning("Withdrawal transfer failed to start", extra={"reference": reference})
            raise

        payment.status = PaymentStatus.PROCESSING
        payment.gateway_response = transfer
        db.commit()
        db.refresh(payment)
        db.refresh(wallet)

        logger.info("Withdrawal initiated", extra={"user_id": user.id, "reference": reference, "amount": amount})
        return payment, transfer

    @staticmethod
    def get_user_transactions(
            db: Session,
            user_id: str,
            page: int = 1,
            limit: int = 20,
            payment_type: Optional[PaymentType] = None,
    ) -> Tuple[List[Payment], int]:
        """
        Get paginated transaction history for a user, newest first.
        :return: Tuple of (payments, total count)
        """
        query = db.query(Payment).filter(Payment.user_id == user_id)
        if payment_type:
            query = query.filter(Payment.type == payment_type)

        total = query.count()
        payments = query.order_by(Payment.created_at.desc())\
            .offset((page - 1) * limit).limit(limit).all()
        return payments, total

    @staticmethod
    def get_user_transaction(db: Session, user_id: str, reference: str) -> Payment:
        payment = db.query(Payment).filter(
            Payment.user_id == user_id,
            Payment.reference == reference,
        ).first()

        if not payment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Transaction not found"
            )
        return payment
