import uuid

from sqlalchemy import Column, ForeignKey, String, DateTime, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from remie.database import Base


class Notification(Base):
    """
    In-app notification shown on the dashboard bell.

    type is a free-form tag (P2P_SENT, LOAN_APPROVED, RECEIPT_READY, ...).
    """
    __tablename__ = 'notifications'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship('User', back_populates='notifications')

    def __repr__(self):
        return f"<Notification {self.type} - {self.user_id}>"
