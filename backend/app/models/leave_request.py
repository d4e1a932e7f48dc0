"""
Leave request model.
"""

from sqlalchemy import Column, Integer, Date, Text, Enum as SQLEnum
import enum

from app.db.base import Base
from app.models.request_common import ApprovalRequestMixin


class LeaveType(str, enum.Enum):
    """Leave type enumeration."""
    ANNUAL = "ANNUAL"
    MEDICAL = "MEDICAL"
    EMERGENCY = "EMERGENCY"


class LeaveRequest(ApprovalRequestMixin, Base):
    """Leave request submitted by a worker."""

    __tablename__ = "leave_requests"

    leave_type = Column(SQLEnum(LeaveType, native_enum=False, length=20), nullable=False)
    from_date = Column(Date, nullable=False)
    to_date = Column(Date, nullable=False)
    total_days = Column(Integer, nullable=False)  # inclusive of both ends
    reason = Column(Text, nullable=True)
