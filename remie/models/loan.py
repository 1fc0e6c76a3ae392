import enum
import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, Float, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from remie.database import Base
from remie.models.payment import PaymentMethod, PaymentType


class LoanStatus(str, enum.Enum):
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    DISBURSED = 'DISBURSED'
    ACTIVE = 'ACTIVE'
    COMPLETED = 'COMPLETED'
    DEFAULTED = 'DEFAULTED'
    REJECTED = 'REJECTED'


# A user may hold only one loan in any of these states
OPEN_LOAN_STATUSES = (
    LoanStatus.PENDING,
    LoanStatus.APPROVED,
    LoanStatus.DISBURSED,
    LoanStatus.ACTIVE,
)

REPAYABLE_LOAN_STATUSES = (LoanStatus.DISBURSED, LoanStatus.ACTIVE)


class Loan(Base):
    """
    Student microloan with simple interest over a tenure in days.

    Lifecycle: PENDING -> DISBURSED (approved, wallet credited) -> ACTIVE
    (after the first partial repayment) -> COMPLETED. Loans still open past
    their due date become DEFAULTED. PENDING loans can be REJECTED.
    """
    __tablename__ = 'loans'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, index=True)
    loan_number = Column(String, unique=True, nullable=False, index=True)

    amount = Column(Float, nullable=False)
    interest_rate = Column(Float, nullable=False)  # Annual percentage
    tenure = Column(Integer, nullable=False)  # Days
    purpose = Column(String, nullable=False)
    purpose_type = Column(SQLEnum(PaymentType), nullable=False)

    total_repayable = Column(Float, nullable=False)
    amount_paid = Column(Float, default=0.0, nullable=False)
    amount_outstanding = Column(Float, nullable=False)
    due_date = Column(DateTime, nullable=False)
    credit_score = Column(Integer, nullable=True)

    status = Column(SQLEnum(LoanStatus), default=LoanStatus.PENDING, nullable=False)
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    disbursed_at = Column(DateTime, nullable=True)
    last_payment_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship('User', back_populates='loans')
    repayments = relationship(
        'LoanRepayment',
        back_populates='loan',
        order_by='LoanRepayment.created_at.desc()',
    )

    def __repr__(self):
        return f"<Loan {self.loan_number} - {self.status.value}>"


class LoanRepayment(Base):
    __tablename__ = 'loan_repayments'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    loan_id = Column(String(36), ForeignKey('loans.id'), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    reference = Column(String, unique=True, nullable=False)
    payment_method = Column(SQLEnum(PaymentMethod), default=PaymentMethod.WALLET, nullable=False)
    status = Column(String, default="COMPLETED", nullable=False)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    loan = relationship('Loan', back_populates='repayments')
