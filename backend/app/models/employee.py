"""
Employee model - identity and employment record for site staff.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Enum as SQLEnum
import enum

from app.db.base import Base
from app.utils.clock import utcnow


class EmployeeStatus(str, enum.Enum):
    """Employee status enumeration."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class Employee(Base):
    """Employee model.

    Project assignment exists in two persisted forms: the embedded
    ``current_project`` object ({id, name, code}) and the older flat
    ``current_project_id``. Readers must consider both.
    """

    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=True, unique=True, index=True)  # no login for some staff
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    status = Column(SQLEnum(EmployeeStatus, native_enum=False, length=20), nullable=False, default=EmployeeStatus.ACTIVE)
    current_project = Column(JSON, nullable=True)
    current_project_id = Column(Integer, nullable=True, index=True)  # legacy flat field
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
