"""
Models package initialization.

This file imports all models so SQLAlchemy can discover them
and create the corresponding database tables.
"""

from remie.models.user import User, UserRole, UserStatus
from remie.models.wallet import Wallet
from remie.models.payment import Payment, PaymentType, PaymentMethod, PaymentStatus
from remie.models.rrr_payment import RRRPayment, RRRStatus
from remie.models.p2p_transfer import P2PTransfer, TransferStatus
from remie.models.loan import Loan, LoanRepayment, LoanStatus
from remie.models.receipt import Receipt
from remie.models.notification import Notification

__all__ = [
    "User",
    "UserRole",
    "UserStatus",
    "Wallet",
    "Payment",
    "PaymentType",
    "PaymentMethod",
    "PaymentStatus",
    "RRRPayment",
    "RRRStatus",
    "P2PTransfer",
    "TransferStatus",
    "Loan",
    "LoanRepayment",
    "LoanStatus",
    "Receipt",
    "Notification",
]
