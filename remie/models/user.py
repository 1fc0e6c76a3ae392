import enum
import uuid

from sqlalchemy import Column, String, DateTime, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from remie.database import Base


class UserRole(str, enum.Enum):
    STUDENT = 'STUDENT'
    ADMIN = 'ADMIN'
    SUPPORT = 'SUPPORT'


class UserStatus(str, enum.Enum):
    ACTIVE = 'ACTIVE'
    SUSPENDED = 'SUSPENDED'
    INACTIVE = 'INACTIVE'
    PENDING_VERIFICATION = 'PENDING_VERIFICATION'
    PENDING_APPROVAL = 'PENDING_APPROVAL'


class User(Base):
    """
    User model - students, admins and support staff.

    Self-registered students start as PENDING_APPROVAL and are activated
    by an admin. Remittance recipients that had no account are created as
    PENDING_VERIFICATION with a password reset link.

    Relationships:
    - One user has one wallet.
    - One user can have many payments, loans, RRR payments and notifications.
    """

    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False, default="")
    phone_number = Column(String, unique=True, index=True, nullable=True)
    student_id = Column(String, index=True, nullable=True)
    institution = Column(String, nullable=True)

    nickname = Column(String, unique=True, nullable=True)
    nickname_set_at = Column(DateTime, nullable=True)

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    status = Column(SQLEnum(UserStatus), default=UserStatus.PENDING_APPROVAL, nullable=False)
    email_verified = Column(Boolean, default=False)

    # Auth state
    refresh_token = Column(String, nullable=True)
    reset_token = Column(String, nullable=True, index=True)  # sha256 of the emailed token
    reset_token_expiry = Column(DateTime, nullable=True)

    approved_by = Column(String(36), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    wallet = relationship("Wallet", back_populates="user", uselist=False)
    payments = relationship("Payment", back_populates="user")
    loans = relationship("Loan", back_populates="user")
    rrr_payments = relationship("RRRPayment", back_populates="user")
    notifications = relationship("Notification", back_populates="user")
    p2p_sent = relationship("P2PTransfer", foreign_keys="P2PTransfer.sender_id", back_populates="sender")
    p2p_received = relationship("P2PTransfer", foreign_keys="P2PTransfer.receiver_id", back_populates="receiver")

    def __repr__(self):
        return f"<User {self.email} - {self.role.value}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
