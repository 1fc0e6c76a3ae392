import enum
import uuid

from sqlalchemy import Column, ForeignKey, String, Float, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from remie.database import Base


class TransferStatus(str, enum.Enum):
    PENDING = 'PENDING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'


class P2PTransfer(Base):
    """
    Wallet-to-wallet transfer between two platform users.

    total_amount = amount + fee is what leaves the sender's wallet; the
    receiver is credited with amount.
    """
    __tablename__ = 'p2p_transfers'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sender_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    receiver_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    reference = Column(String, unique=True, nullable=False, index=True)

    amount = Column(Float, nullable=False)
    fee = Column(Float, default=0.0, nullable=False)
    total_amount = Column(Float, nullable=False)
    description = Column(String, nullable=True)
    category = Column(String, nullable=True)

    status = Column(SQLEnum(TransferStatus), default=TransferStatus.PENDING, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    sender = relationship('User', foreign_keys=[sender_id], back_populates='p2p_sent')
    receiver = relationship('User', foreign_keys=[receiver_id], back_populates='p2p_received')

    def __repr__(self):
        return f"<P2PTransfer {self.reference} - {self.amount}>"
