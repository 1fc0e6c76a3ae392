import uuid

from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
from remie.database import Base
import secrets


class Wallet(Base):
    """
    Wallet model - each user has one NGN wallet.

    Balances:
    - balance: settled funds.
    - available_balance: funds the user can spend now. Withdrawals debit it
      at initiation, before Paystack confirms the transfer.
    - ledger_balance: book balance, debited only when a withdrawal settles.

    Funding is capped per day and per month; the "spent" counters are reset
    lazily the first time the wallet is funded in a new day or month.
    """
    __tablename__ = "wallets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey('users.id'), unique=True, nullable=False)
    wallet_number = Column(String, unique=True, index=True, nullable=False)

    balance = Column(Float, default=0.0, nullable=False)
    available_balance = Column(Float, default=0.0, nullable=False)
    ledger_balance = Column(Float, default=0.0, nullable=False)

    # Funding limits
    daily_limit = Column(Float, nullable=False)
    monthly_limit = Column(Float, nullable=False)
    daily_funding_spent = Column(Float, default=0.0, nullable=False)
    monthly_funding_spent = Column(Float, default=0.0, nullable=False)
    last_daily_reset = Column(DateTime, default=datetime.utcnow)
    last_monthly_reset = Column(DateTime, default=datetime.utcnow)

    is_frozen = Column(Boolean, default=False)
    last_transaction_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="wallet")

    def __repr__(self):
        return f"<Wallet {self.wallet_number} - Balance: {self.balance}>"

    @staticmethod
    def generate_wallet_number() -> str:
        """
        Generate a 13-digit wallet number.

        :return: 13-digit wallet number as string
        """
        return ''.join([str(secrets.randbelow(10)) for _ in range(13)])

    def credit(self, amount: float) -> None:
        """Add settled funds to every balance."""
        self.balance = round(self.balance + amount, 2)
        self.available_balance = round(self.available_balance + amount, 2)
        self.ledger_balance = round(self.ledger_balance + amount, 2)
        self.last_transaction_at = datetime.utcnow()

    def debit(self, amount: float) -> None:
        """Remove funds from every balance. Callers check availability first."""
        self.balance = round(self.balance - amount, 2)
        self.available_balance = round(self.available_balance - amount, 2)
        self.ledger_balance = round(self.ledger_balance - amount, 2)
        self.last_transaction_at = datetime.utcnow()
