import enum
import uuid

from sqlalchemy import Column, ForeignKey, String, Float, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from remie.database import Base


class RRRStatus(str, enum.Enum):
    INITIATED = 'INITIATED'
    PAID = 'PAID'
    EXPIRED = 'EXPIRED'
    FAILED = 'FAILED'


class RRRPayment(Base):
    """
    A Remita Retrieval Reference issued for an institutional payment.

    The payer settles the RRR on Remita (bank, card, USSD); REMIE only
    generates the code and polls Remita for its status.
    """
    __tablename__ = 'rrr_payments'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    payment_id = Column(String(36), ForeignKey('payments.id'), unique=True, nullable=False)

    rrr = Column(String, unique=True, nullable=False, index=True)
    order_id = Column(String, unique=True, nullable=False)
    amount = Column(Float, nullable=False)

    institution_code = Column(String, nullable=False)
    institution_name = Column(String, nullable=False)
    service_type_id = Column(String, nullable=False)
    payer_name = Column(String, nullable=False)
    payer_email = Column(String, nullable=False)
    payer_phone = Column(String, nullable=False)

    status = Column(SQLEnum(RRRStatus), default=RRRStatus.INITIATED, nullable=False)
    remita_reference = Column(String, nullable=True)
    expires_at = Column(DateTime, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship('User', back_populates='rrr_payments')
    payment = relationship('Payment', back_populates='rrr_payment')

    def __repr__(self):
        return f"<RRRPayment {self.rrr} - {self.status.value}>"

    def is_expired(self) -> bool:
        return datetime.utcnow() > self.expires_at
