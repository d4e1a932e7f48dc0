"""
Shared lifecycle vocabulary and columns for the approval request families.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Enum as SQLEnum
import enum

from app.utils.clock import utcnow


class RequestStatus(str, enum.Enum):
    """Request status enumeration.

    PENDING is the only non-terminal state. PROCESSED (payment, medical) and
    FULFILLED (material, tool) are reachable only from APPROVED.
    """
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    PROCESSED = "PROCESSED"
    FULFILLED = "FULFILLED"


class RequestFamily(str, enum.Enum):
    """Request family as used in routes and dashboards."""
    LEAVE = "leave"
    ADVANCE = "advance"
    MEDICAL = "medical"
    MATERIAL = "material"
    TOOL = "tool"


class ApprovalRequestMixin:
    """Columns common to every request family."""

    id = Column(Integer, primary_key=True, autoincrement=False)  # allocated from counters
    company_id = Column(Integer, nullable=False, index=True)
    employee_id = Column(Integer, nullable=False, index=True)
    status = Column(
        SQLEnum(RequestStatus, native_enum=False, length=20),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )
    created_by = Column(Integer, nullable=True)  # principal id of the submitter
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    approver_id = Column(Integer, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    remarks = Column(Text, nullable=True)

    attachments = Column(JSON, nullable=False, default=list)

    cancelled_at = Column(DateTime, nullable=True)
    cancel_reason = Column(String(500), nullable=True)
