"""
Project model - a work site owned by at most one supervisor.
"""

from sqlalchemy import Column, Integer, String, DateTime

from app.db.base import Base
from app.utils.clock import utcnow


class Project(Base):
    """Project (work site) model. Geofence data lives elsewhere."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)
    supervisor_id = Column(Integer, nullable=True, index=True)  # Employee.id
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
