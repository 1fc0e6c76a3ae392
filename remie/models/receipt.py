import uuid

from sqlalchemy import Column, ForeignKey, String, Float, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from remie.database import Base


class Receipt(Base):
    """
    Receipt issued once per completed payment.

    The verification URL points at the frontend page that looks the
    receipt up by number.
    """
    __tablename__ = 'receipts'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    receipt_number = Column(String, unique=True, nullable=False, index=True)
    payment_id = Column(String(36), ForeignKey('payments.id'), unique=True, nullable=False)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    verification_url = Column(String, nullable=False)
    receipt_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    payment = relationship('Payment', back_populates='receipt')

    def __repr__(self):
        return f"<Receipt {self.receipt_number}>"
