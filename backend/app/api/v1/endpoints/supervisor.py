"""
Supervisor approval API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.api.v1.middleware import require_authentication
from app.controllers.approval_controller import ApprovalController
from app.deps.di_container import get_notification_dispatcher
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

router = APIRouter()


@router.get("/pending-approvals", response_model=PendingSummary)
async def get_pending_summary(
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> PendingSummary:
    """Pending request counts for the caller's team."""
    controller = ApprovalController(db)
    return await controller.get_pending_summary(current_employee)


@router.get("/pending-requests", response_model=PendingListResponse)
async def list_all_pending(
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> PendingListResponse:
    """Pending requests of every family for the caller's team."""
    controller = ApprovalController(db)
    return await controller.list_pending(current_employee)


@router.get("/pending-{family}-requests", response_model=PendingListResponse)
async def list_pending(
    family: RequestFamily,
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> PendingListResponse:
    """Pending requests of one family for the caller's team."""
    controller = ApprovalController(db)
    return await controller.list_pending(current_employee, family)


@router.post("/approvals/batch-process", response_model=BatchDecisionResponse)
async def batch_decide(
    body: BatchDecisionRequest,
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> BatchDecisionResponse:
    """Approve or reject several requests; each item is reported separately."""
    controller = ApprovalController(db, dispatcher)
    return await controller.batch_decide(current_employee, body)


@router.post("/approve-{family}/{request_id}", response_model=DecisionResponse)
async def decide(
    family: RequestFamily,
    request_id: int,
    decision: DecisionRequest,
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> DecisionResponse:
    """
    Approve or reject a pending request.
    400 invalid action, 403 not owner, 404 not found, 409 already decided.
    """
    controller = ApprovalController(db, dispatcher)
    return await controller.decide(family, request_id, current_employee, decision)


@router.post("/{family}/{request_id}/fulfill", response_model=DecisionResponse)
async def fulfill(
    family: RequestFamily,
    request_id: int,
    body: Optional[FulfillRequest] = None,
    db: AsyncSession = Depends(get_db),
) -> DecisionResponse:
    """Mark an approved request as processed or fulfilled."""
    controller = ApprovalController(db)
    return await controller.fulfill(family, request_id, body or FulfillRequest())
