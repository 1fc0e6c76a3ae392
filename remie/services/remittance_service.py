import logging
import secrets
import time
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from remie.core.config import get_settings
from remie.core.security import generate_reset_token
from remie.models.payment import Payment, PaymentType, PaymentMethod, PaymentStatus
from remie.models.user import User, UserStatus
from remie.schemas.remittance import SendRemittanceRequest
from remie.services.email_service import EmailService
from remie.services.notification_service import NotificationService
from remie.services.receipt_service import ReceiptService
from remie.services.user_service import UserService
from remie.services.wallet_service import WalletService
from typing import Dict, List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

MIN_REMITTANCE_AMOUNT = 5_000
MAX_REMITTANCE_AMOUNT = 5_000_000
RECIPIENT_LINK_VALIDITY = timedelta(days=7)


class ExchangeRate(NamedTuple):
    rate: float
    fee_percent: float


# Fixed NGN rates; there is no live FX feed.
EXCHANGE_RATES: Dict[Tuple[str, str], ExchangeRate] = {
    ("NGN", "USD"): ExchangeRate(0.0013, 2.5),
    ("NGN", "GBP"): ExchangeRate(0.001, 2.5),
    ("NGN", "EUR"): ExchangeRate(0.0012, 2.5),
    ("NGN", "CAD"): ExchangeRate(0.0017, 2.5),
    ("NGN", "ZAR"): ExchangeRate(0.024, 1.5),
}

COUNTRY_CURRENCIES = {
    "United States": "USD",
    "USA": "USD",
    "United Kingdom": "GBP",
    "UK": "GBP",
    "Canada": "CAD",
    "Germany": "EUR",
    "France": "EUR",
    "Spain": "EUR",
    "Italy": "EUR",
    "South Africa": "ZAR",
}


class Quote(NamedTuple):
    amount: float
    from_currency: str
    to_currency: str
    exchange_rate: float
    fee: float
    fee_percent: float
    total_amount: float
    receive_amount: float


class RemittanceService:
    """
    International remittances paid out of the sender's NGN wallet.

    The recipient is a REMIE user matched by email; one is created when the
    email is unknown. The recipient's wallet is credited in naira.
    """

    @staticmethod
    def get_country_currency(country: str) -> str:
        return COUNTRY_CURRENCIES.get(country.strip(), "USD")

    @staticmethod
    def get_exchange_rate(from_currency: str, to_currency: str) -> Optional[ExchangeRate]:
        return EXCHANGE_RATES.get((from_currency.upper(), to_currency.upper()))

    @staticmethod
    def calculate(amount: float, from_currency: str = "NGN", to_currency: str = "USD") -> Quote:
        """
        Price a remittance.

        fee = amount * fee% / 100, total = amount + fee,
        receive_amount = amount * rate.

        :raises: HTTPException 400 for an unsupported currency pair
        """
        exchange_rate = RemittanceService.get_exchange_rate(from_currency, to_currency)
        if exchange_rate is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Currency pair {from_currency}-{to_currency} is not supported"
            )

        fee = round(amount * exchange_rate.fee_percent / 100, 2)
        return Quote(
            amount=amount,
            from_currency=from_currency.upper(),
            to_currency=to_currency.upper(),
            exchange_rate=exchange_rate.rate,
            fee=fee,
            fee_percent=exchange_rate.fee_percent,
            total_amount=round(amount + fee, 2),
            receive_amount=round(amount * exchange_rate.rate, 2),
        )

    @staticmethod
    def _create_recipient(db: Session, request: SendRemittanceRequest) -> Tuple[User, str]:
        """
        Create an account for a recipient who has none.

        :return: Tuple of (user, plain reset token for the welcome email)
        :raises: HTTPException 409 if the phone number belongs to another user
        """
        if request.recipient_phone and UserService.get_user_by_phone(db, request.recipient_phone):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with this phone number already exists"
            )

        names = request.recipient_name.split(" ")
        token, token_hash = generate_reset_token()

        recipient = UserService.create_user(
            db,
            email=request.recipient_email,
            password=secrets.token_urlsafe(16),
            first_name=names[0],
            last_name=" ".join(names[1:]),
            user_status=UserStatus.PENDING_VERIFICATION,
            phone_number=request.recipient_phone or None,
        )
        recipient.reset_token = token_hash
        recipient.reset_token_expiry = datetime.utcnow() + RECIPIENT_LINK_VALIDITY
        return recipient, token

    @staticmethod
    def send(db: Session, sender: User, request: SendRemittanceRequest) -> Tuple[Payment, Quote, User, bool]:
        """
        Send money to a recipient abroad.

        The sender is charged amount + fee; the recipient's wallet receives
        amount. Both movements and the payment record commit together.

        :return: Tuple of (payment, quote, recipient, whether the recipient was created)
        """
        amount = request.amount
        if amount < MIN_REMITTANCE_AMOUNT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Minimum remittance amount is ₦{MIN_REMITTANCE_AMOUNT:,}"
            )
        if amount > MAX_REMITTANCE_AMOUNT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Maximum remittance amount is ₦{MAX_REMITTANCE_AMOUNT:,}"
            )

        WalletService.ensure_can_transact(sender)
        sender_wallet = WalletService.get_or_create_wallet(db, sender)
        WalletService.ensure_not_frozen(sender_wallet)

        currency = RemittanceService.get_country_currency(request.country)
        quote = RemittanceService.calculate(amount, "NGN", currency)

        if sender_wallet.available_balance < quote.total_amount:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient balance. You need ₦{quote.total_amount:,.2f} (including ₦{quote.fee:,.2f} fee)"
            )

        if request.recipient_email == sender.email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot send a remittance to yourself"
            )

        reference = f"REM-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"
        reset_token = None

        try:
            recipient = UserService.get_user_by_email(db, request.recipient_email)
            created = recipient is None
            if created:
                recipient, reset_token = RemittanceService._create_recipient(db, request)

            recipient_wallet = WalletService.get_wallet_by_user_id(db, recipient.id) \
                or WalletService.create_wallet_for_user(db, recipient)

            sender_wallet.debit(quote.total_amount)
            recipient_wallet.credit(amount)

            payment = Payment(
                user_id=sender.id,
                amount=amount,
                type=PaymentType.INTERNATIONAL_REMITTANCE,
                method=PaymentMethod.WALLET,
                status=PaymentStatus.COMPLETED,
                reference=reference,
                recipient_name=request.recipient_name,
                description=request.purpose,
                processing_fee=quote.fee,
                total_amount=quote.total_amount,
                payment_metadata={
                    "recipient_id": recipient.id,
                    "recipient_email": request.recipient_email,
                    "recipient_phone": request.recipient_phone,
                    "relationship": request.relationship,
                    "country": request.country,
                    "destination_currency": quote.to_currency,
                    "exchange_rate": quote.exchange_rate,
                    "receive_amount": quote.receive_amount,
                },
                completed_at=datetime.utcnow(),
            )
            db.add(payment)

            NotificationService.notify(
                db,
                user_id=recipient.id,
                notification_type="REMITTANCE_RECEIVED",
                title="Money Received",
                message=f"{sender.full_name} sent you ₦{amount:,.2f}",
                data={"reference": reference, "amount": amount},
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(payment)
        db.refresh(sender_wallet)
        logger.info("Remittance sent", extra={"reference": reference, "amount": amount, "currency": currency})

        ReceiptService.issue_quietly(db, payment)

        settings = get_settings()
        if created:
            EmailService.send_recipient_welcome(
                recipient.email, request.recipient_name, sender.full_name,
                f"{settings.FRONTEND_URL}/reset-password/{reset_token}",
            )
        EmailService.send_remittance_sent(
            sender.email, sender.first_name, request.recipient_name, amount, quote.fee,
            quote.receive_amount, quote.to_currency, reference, request.country,
        )
        EmailService.send_remittance_received(
            recipient.email, request.recipient_name, sender.full_name, amount, reference, request.relationship,
        )

        return payment, quote, recipient, created

    @staticmethod
    def get_sent(db: Session, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[Payment], int]:
        return WalletService.get_user_transactions(
            db, user_id, page, limit, payment_type=PaymentType.INTERNATIONAL_REMITTANCE
        )

    @staticmethod
    def get_received(db: Session, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[Payment], int]:
        """
        Remittances whose recipient is this user.
        """
        query = db.query(Payment).filter(
            Payment.type == PaymentType.INTERNATIONAL_REMITTANCE,
            Payment.payment_metadata["recipient_id"].as_string() == user_id,
        )

        total = query.count()
        payments = query.order_by(Payment.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

        return payments, total
