"""
Approval controller - supervisor-facing decisions and inbox views.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.controllers.base_controller import BaseController
from app.services.approval_service import ApprovalService
from app.services.aggregation_service import AggregationService
from app.services.notification_service import NotificationDispatcher
from app.models.employee import Employee
from app.models.request_common import RequestFamily
from app.schemas.approval import (
    BatchDecisionRequest,
    BatchDecisionResponse,
    DecisionRequest,
    DecisionResponse,
    FulfillRequest,
    PendingListResponse,
    PendingSummary,
)


class ApprovalController(BaseController):
    """Controller for approval operations."""

    def __init__(self, session: AsyncSession, dispatcher: Optional[NotificationDispatcher] = None):
        self.approval_service = ApprovalService(session, dispatcher)
        self.aggregation_service = AggregationService(session)

    async def get_pending_summary(self, supervisor: Employee) -> PendingSummary:
        """Pending counts for the supervisor's team."""
        return await self.aggregation_service.pending_summary(supervisor.id)

    async def list_pending(self, supervisor: Employee, family: Optional[RequestFamily] = None) -> PendingListResponse:
        """Pending requests for the supervisor's team."""
        return await self.aggregation_service.pending_list(supervisor.id, family)

    async def decide(
        self,
        family: RequestFamily,
        request_id: int,
        supervisor: Employee,
        decision: DecisionRequest,
    ) -> DecisionResponse:
        """Approve or reject a request."""
        return await self.approval_service.decide(family, request_id, supervisor, decision)

    async def batch_decide(self, supervisor: Employee, body: BatchDecisionRequest) -> BatchDecisionResponse:
        """Apply several decisions."""
        return await self.approval_service.batch_decide(supervisor, body.decisions)

    async def fulfill(self, family: RequestFamily, request_id: int, body: FulfillRequest) -> DecisionResponse:
        """Mark an approved request processed or fulfilled."""
        return await self.approval_service.fulfill(family, request_id, body.remarks)
