"""
Approval decision schemas.
"""

from pydantic import Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum

from app.models.request_common import RequestStatus, RequestFamily
from app.schemas.common import CamelModel
from app.schemas.request import RequestResponse


class DecisionAction(str, Enum):
    """Supervisor decision on a pending request."""
    APPROVE = "approve"
    REJECT = "reject"


class DecisionRequest(CamelModel):
    """Schema for approving or rejecting a request."""
    action: DecisionAction
    remarks: Optional[str] = Field(None, max_length=2000)
    approved_amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    approved_quantity: Optional[float] = Field(None, gt=0)
    pickup_location: Optional[str] = Field(None, max_length=255)
    pickup_instructions: Optional[str] = Field(None, max_length=2000)
    pickup_contact_person: Optional[str] = Field(None, max_length=255)
    pickup_contact_phone: Optional[str] = Field(None, max_length=50)


class DecisionResponse(CamelModel):
    """Schema for the state of a request after a decision or fulfilment."""
    request_id: int
    family: RequestFamily
    status: RequestStatus
    approver_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    remarks: Optional[str] = None
    approved_amount: Optional[Decimal] = None
    approved_quantity: Optional[float] = None
    pickup_location: Optional[str] = None
    pickup_instructions: Optional[str] = None
    notification_sent: bool = False


class FulfillRequest(CamelModel):
    """Schema for marking an approved request processed or fulfilled."""
    remarks: Optional[str] = Field(None, max_length=2000)


class BatchDecisionItem(DecisionRequest):
    """One decision within a batch."""
    family: RequestFamily
    request_id: int


class BatchDecisionRequest(CamelModel):
    """Schema for deciding several requests at once."""
    decisions: List[BatchDecisionItem] = Field(..., min_length=1, max_length=100)


class BatchDecisionResult(CamelModel):
    """Outcome of one decision within a batch."""
    family: RequestFamily
    request_id: int
    success: bool
    status: Optional[RequestStatus] = None
    error: Optional[str] = None
    message: Optional[str] = None
    notification_sent: bool = False


class BatchDecisionResponse(CamelModel):
    """Schema for batch decision results."""
    processed: int
    succeeded: int
    failed: int
    results: List[BatchDecisionResult]


class PendingSummary(CamelModel):
    """Pending request counts for a supervisor's team."""
    leave: int = 0
    advance: int = 0
    medical: int = 0
    material: int = 0
    tool: int = 0
    urgent: int = 0
    total: int = 0


class PendingListResponse(CamelModel):
    """Schema for a supervisor's pending requests."""
    count: int
    requests: List[RequestResponse]
