"""
Leave request repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.request_repository import ApprovalRequestRepository
from app.models.leave_request import LeaveRequest


class LeaveRequestRepository(ApprovalRequestRepository[LeaveRequest]):
    """Repository for leave requests."""

    def __init__(self, session: AsyncSession):
        super().__init__(LeaveRequest, session)
