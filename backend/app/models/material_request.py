"""
Material and tool request model. Both kinds share one table.
"""

from sqlalchemy import Column, Integer, String, Date, Text, DateTime, Float, Numeric, Enum as SQLEnum
import enum

from app.db.base import Base
from app.models.request_common import ApprovalRequestMixin


class MaterialRequestType(str, enum.Enum):
    """Material request type enumeration."""
    MATERIAL = "MATERIAL"
    TOOL = "TOOL"


class MaterialRequest(ApprovalRequestMixin, Base):
    """Material or tool request raised against a project."""

    __tablename__ = "material_requests"

    request_type = Column(SQLEnum(MaterialRequestType, native_enum=False, length=20), nullable=False, index=True)
    project_id = Column(Integer, nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    item_category = Column(String(100), nullable=False, default="other")
    quantity = Column(Float, nullable=False)
    unit = Column(String(50), nullable=False, default="pieces")
    urgency = Column(String(20), nullable=False, default="NORMAL")
    required_date = Column(Date, nullable=True)
    purpose = Column(Text, nullable=True)
    justification = Column(Text, nullable=True)
    specifications = Column(Text, nullable=True)
    estimated_cost = Column(Numeric(12, 2), nullable=True)

    # Populated on approval
    approved_quantity = Column(Float, nullable=True)
    pickup_location = Column(String(255), nullable=True)
    pickup_instructions = Column(Text, nullable=True)
    pickup_contact_person = Column(String(255), nullable=True)
    pickup_contact_phone = Column(String(50), nullable=True)

    fulfilled_at = Column(DateTime, nullable=True)
