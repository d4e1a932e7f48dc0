"""
Medical claim model.
"""

from sqlalchemy import Column, Integer, String, Date, Text, DateTime, Numeric, Boolean, JSON

from app.db.base import Base
from app.models.request_common import ApprovalRequestMixin


class MedicalClaim(ApprovalRequestMixin, Base):
    """Medical reimbursement claim submitted by a worker."""

    __tablename__ = "medical_claims"

    claim_type = Column(String(50), nullable=False, default="MEDICAL_REIMBURSEMENT")
    claim_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="SGD")
    treatment_date = Column(Date, nullable=False)
    treatment_type = Column(String(100), nullable=True)
    hospital_clinic = Column(String(255), nullable=True)
    doctor_name = Column(String(255), nullable=True)
    diagnosis = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    is_work_related = Column(Boolean, nullable=False, default=False)
    work_incident_id = Column(Integer, nullable=True)

    receipts = Column(JSON, nullable=False, default=list)
    medical_reports = Column(JSON, nullable=False, default=list)

    approved_amount = Column(Numeric(12, 2), nullable=True)
    processed_at = Column(DateTime, nullable=True)
