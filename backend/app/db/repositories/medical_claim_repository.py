"""
Medical claim repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.request_repository import ApprovalRequestRepository
from app.models.medical_claim import MedicalClaim


class MedicalClaimRepository(ApprovalRequestRepository[MedicalClaim]):
    """Repository for medical claims."""

    def __init__(self, session: AsyncSession):
        super().__init__(MedicalClaim, session)
