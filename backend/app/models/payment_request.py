"""
Payment request model (advance payments, reimbursements, overtime, bonus).
"""

from sqlalchemy import Column, String, Date, Text, DateTime, Numeric, JSON, Enum as SQLEnum
import enum

from app.db.base import Base
from app.models.request_common import ApprovalRequestMixin


class PaymentRequestType(str, enum.Enum):
    """Payment request type enumeration."""
    ADVANCE_PAYMENT = "ADVANCE_PAYMENT"
    EXPENSE_REIMBURSEMENT = "EXPENSE_REIMBURSEMENT"
    OVERTIME_PAYMENT = "OVERTIME_PAYMENT"
    BONUS_REQUEST = "BONUS_REQUEST"


class PaymentRequest(ApprovalRequestMixin, Base):
    """Payment request submitted by a worker."""

    __tablename__ = "payment_requests"

    request_type = Column(
        SQLEnum(PaymentRequestType, native_enum=False, length=30),
        nullable=False,
        default=PaymentRequestType.ADVANCE_PAYMENT,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="SGD")
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)
    urgency = Column(String(20), nullable=False, default="NORMAL")
    required_date = Column(Date, nullable=True)
    justification = Column(Text, nullable=True)
    bank_details = Column(JSON, nullable=True)

    approved_amount = Column(Numeric(12, 2), nullable=True)
    processed_at = Column(DateTime, nullable=True)
