"""
Payment request repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.request_repository import ApprovalRequestRepository
from app.models.payment_request import PaymentRequest


class PaymentRequestRepository(ApprovalRequestRepository[PaymentRequest]):
    """Repository for advance payment and reimbursement requests."""

    def __init__(self, session: AsyncSession):
        super().__init__(PaymentRequest, session)
