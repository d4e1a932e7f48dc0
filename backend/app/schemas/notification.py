"""
Notification payload schemas.
"""

from pydantic import Field
from typing import Optional, List, Dict, Any
from enum import Enum

from app.models.request_common import RequestStatus, RequestFamily
from app.schemas.common import CamelModel


class NotificationPriority(str, Enum):
    """Notification priority."""
    NORMAL = "NORMAL"
    HIGH = "HIGH"


class NotificationPayload(CamelModel):
    """Payload handed to the notification channel."""
    type: str = "APPROVAL_STATUS"
    priority: NotificationPriority
    title: str
    message: str
    sender_id: Optional[int] = None
    recipients: List[int]
    requires_acknowledgment: bool = False
    language: str = "en"
    action_data: Dict[str, Any] = Field(default_factory=dict)


class DispatchResult(CamelModel):
    """What the channel reported for one notification."""
    success: bool
    channel: str
    notification_id: Optional[str] = None
    recipients: List[int] = []
    error: Optional[str] = None


class StatusNotification(CamelModel):
    """One status change to notify about, used for batch dispatch."""
    family: RequestFamily
    request_id: int
    status: RequestStatus
    actor_id: Optional[int] = None
    remarks: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
