import uuid

from sqlalchemy import Column, ForeignKey, String, Float, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from remie.database import Base
import enum


class PaymentType(str, enum.Enum):
    """
    What the money was for.
    """
    SCHOOL_FEE = 'SCHOOL_FEE'
    ACCEPTANCE_FEE = 'ACCEPTANCE_FEE'
    HOSTEL_FEE = 'HOSTEL_FEE'
    EXAM_FEE = 'EXAM_FEE'
    NIN_REGISTRATION = 'NIN_REGISTRATION'
    JAMB_FEE = 'JAMB_FEE'
    WAEC_FEE = 'WAEC_FEE'
    NECO_FEE = 'NECO_FEE'
    OTHER_GOVERNMENT = 'OTHER_GOVERNMENT'
    UTILITY = 'UTILITY'
    WALLET_FUNDING = 'WALLET_FUNDING'
    WITHDRAWAL = 'WITHDRAWAL'
    RRR_PAYMENT = 'RRR_PAYMENT'
    INTERNATIONAL_REMITTANCE = 'INTERNATIONAL_REMITTANCE'
    P2P_TRANSFER = 'P2P_TRANSFER'
    LOAN_DISBURSEMENT = 'LOAN_DISBURSEMENT'
    LOAN_REPAYMENT = 'LOAN_REPAYMENT'
    OTHER = 'OTHER'


class PaymentMethod(str, enum.Enum):
    WALLET = 'WALLET'
    CARD = 'CARD'
    BANK_TRANSFER = 'BANK_TRANSFER'
    USSD = 'USSD'
    RRR = 'RRR'


class PaymentStatus(str, enum.Enum):
    PENDING = 'PENDING'
    PROCESSING = 'PROCESSING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'
    REFUNDED = 'REFUNDED'
    CANCELLED = 'CANCELLED'


class Payment(Base):
    """
    Payment model - the transaction ledger for every money movement.

    Card funding and withdrawals carry the Paystack reference, RRR payments
    the Remita order id, and wallet-only movements (P2P, remittance, loans)
    an internally generated reference.
    """
    __tablename__ = 'payments'

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)

    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="NGN", nullable=False)
    type = Column(SQLEnum(PaymentType), nullable=False)
    method = Column(SQLEnum(PaymentMethod), nullable=False)
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)

    reference = Column(String, unique=True, nullable=False, index=True)

    recipient_name = Column(String, nullable=True)
    institution_name = Column(String, nullable=True)
    description = Column(String, nullable=True)
    processing_fee = Column(Float, default=0.0)
    total_amount = Column(Float, nullable=True)

    payment_metadata = Column(JSON, nullable=True)
    gateway_response = Column(JSON, nullable=True)

    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship('User', back_populates='payments')
    receipt = relationship('Receipt', back_populates='payment', uselist=False)
    rrr_payment = relationship('RRRPayment', back_populates='payment', uselist=False)

    def __repr__(self):
        return f"<Payment {self.type.value} - {self.amount} - {self.status.value}>"
