"""
Notification dispatcher.

Turns a request status change into a worker-facing notification payload
(title, message and structured action data) and hands it to the configured
notification channel. Callers treat any DispatchError as non-fatal.
"""

import logging
from typing import Any, Dict, List, Optional

from app.core.exceptions import DispatchError, RequestValidationFailed
from app.core.integrations.notification_channel import NotificationChannel
from app.models.employee import Employee
from app.models.material_request import MaterialRequestType
from app.models.request_common import RequestFamily, RequestStatus
from app.schemas.notification import (
    NotificationPayload,
    NotificationPriority,
    DispatchResult,
    StatusNotification,
)

logger = logging.getLogger(__name__)

DEFAULT_PICKUP = {
    RequestFamily.MATERIAL: ("Site storage area", "Contact site supervisor for collection"),
    RequestFamily.TOOL: ("Tool storage area", "Contact site supervisor for tool collection"),
}

REFERENCE_PREFIX = {
    RequestFamily.LEAVE: "LR",
    RequestFamily.ADVANCE: "PR",
    RequestFamily.MEDICAL: "MC",
    RequestFamily.MATERIAL: "MR",
    RequestFamily.TOOL: "TR",
}

APPROVAL_TYPE = {
    RequestFamily.LEAVE: "LEAVE_REQUEST",
    RequestFamily.ADVANCE: "PAYMENT_REQUEST",
    RequestFamily.MEDICAL: "MEDICAL_CLAIM",
    RequestFamily.MATERIAL: "MATERIAL_REQUEST",
    RequestFamily.TOOL: "TOOL_REQUEST",
}

ACTION_URL = {
    RequestFamily.LEAVE: "/worker/leave-requests",
    RequestFamily.ADVANCE: "/worker/payment-requests",
    RequestFamily.MEDICAL: "/worker/medical-claims",
    RequestFamily.MATERIAL: "/worker/material-requests",
    RequestFamily.TOOL: "/worker/material-requests",
}

NOTIFIABLE_STATUSES = (RequestStatus.APPROVED, RequestStatus.REJECTED)


def family_of_material(request_type: MaterialRequestType) -> RequestFamily:
    return RequestFamily.TOOL if request_type == MaterialRequestType.TOOL else RequestFamily.MATERIAL


def approver_contact(approver: Optional[Employee]) -> Dict[str, str]:
    """Contact block shown to the worker; missing values read "N/A"."""
    if approver is None:
        return {"name": "Approver", "phone": "N/A", "email": "N/A"}
    return {
        "name": approver.full_name,
        "phone": approver.phone or "N/A",
        "email": approver.email or "N/A",
    }


def build_status_context(family: RequestFamily, request, approver: Optional[Employee] = None) -> Dict[str, Any]:
    """
    Snapshot the request fields a notification needs.

    Values are taken after the transition commits so approved amounts and
    pickup details are the persisted ones.
    """
    context: Dict[str, Any] = {
        "employeeId": request.employee_id,
        "approverContact": approver_contact(approver),
    }
    if family == RequestFamily.LEAVE:
        context.update(
            leaveType=request.leave_type.value,
            fromDate=request.from_date.isoformat(),
            toDate=request.to_date.isoformat(),
            totalDays=request.total_days,
        )
    elif family == RequestFamily.ADVANCE:
        context.update(
            amount=str(request.amount),
            approvedAmount=str(request.approved_amount) if request.approved_amount is not None else None,
            currency=request.currency or "SGD",
            requestType=request.request_type.value,
        )
    elif family == RequestFamily.MEDICAL:
        context.update(
            claimAmount=str(request.claim_amount),
            approvedAmount=str(request.approved_amount) if request.approved_amount is not None else None,
            currency=request.currency or "SGD",
            claimType=request.claim_type or "MEDICAL_REIMBURSEMENT",
            treatmentDate=request.treatment_date.isoformat(),
        )
    else:
        context.update(
            itemName=request.item_name,
            quantity=request.approved_quantity if request.approved_quantity is not None else request.quantity,
            requestedQuantity=request.quantity,
            unit=request.unit or "pieces",
            requestType=request.request_type.value,
            projectId=request.project_id,
            pickupLocation=request.pickup_location,
            pickupInstructions=request.pickup_instructions,
        )
    return context


def _format_quantity(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class NotificationDispatcher:
    """Builds approval status notifications and forwards them to a channel."""

    def __init__(self, channel: NotificationChannel):
        self.channel = channel

    def build_payload(
        self,
        family: RequestFamily,
        request_id: int,
        new_status: RequestStatus,
        actor_id: Optional[int],
        context: Dict[str, Any],
        remarks: Optional[str] = None,
    ) -> NotificationPayload:
        """Build the notification payload for one status change."""
        if new_status not in NOTIFIABLE_STATUSES:
            raise RequestValidationFailed(
                f"Invalid {family.value} request status for notification: {new_status.value}"
            )
        approved = new_status == RequestStatus.APPROVED
        title, message, next_steps, extra = self._content(family, approved, context)
        if not approved and remarks:
            message += f" Reason: {remarks}"

        action_data = {
            "referenceNumber": f"{REFERENCE_PREFIX[family]}-{request_id}",
            "approvalType": APPROVAL_TYPE[family],
            "status": new_status.value,
            **extra,
            "approverContact": context.get("approverContact") or approver_contact(None),
            "remarks": remarks,
            "nextSteps": next_steps,
            "actionUrl": ACTION_URL[family],
        }

        return NotificationPayload(
            priority=NotificationPriority.NORMAL if approved else NotificationPriority.HIGH,
            title=title,
            message=message,
            sender_id=actor_id,
            recipients=[context["employeeId"]],
            requires_acknowledgment=not approved,
            action_data=action_data,
        )

    def _content(self, family: RequestFamily, approved: bool, context: Dict[str, Any]):
        """Return (title, message, next steps, family action data)."""
        verb = "approved" if approved else "rejected"
        outcome = "Approved" if approved else "Rejected"

        if family == RequestFamily.LEAVE:
            title = f"Leave Request {outcome}"
            message = (
                f"Your {context['leaveType'].lower()} leave request from {context['fromDate']} "
                f"to {context['toDate']} has been {verb}."
            )
            next_steps = (
                "Your leave has been approved. Please coordinate with your supervisor for work handover."
                if approved
                else "Please contact your supervisor if you need to discuss this decision or submit a new request."
            )
            extra = {
                "leaveType": context["leaveType"],
                "fromDate": context["fromDate"],
                "toDate": context["toDate"],
                "totalDays": context["totalDays"],
            }
            return title, message, next_steps, extra

        if family == RequestFamily.ADVANCE:
            amount = context.get("approvedAmount") if approved and context.get("approvedAmount") else context["amount"]
            title = f"Payment Request {outcome}"
            message = f"Your advance payment request of ${amount} has been {verb}."
            if approved:
                message += " Payment will be processed within 3-5 business days."
            next_steps = (
                "Payment will be processed and credited to your account within 3-5 business days. "
                "You will receive a confirmation once processed."
                if approved
                else "Please contact HR or your supervisor if you need to discuss this decision or submit a new request."
            )
            extra = {
                "amount": amount,
                "currency": context.get("currency", "SGD"),
                "requestType": context.get("requestType", "ADVANCE_PAYMENT"),
                "paymentTimeline": "3-5 business days" if approved else None,
            }
            return title, message, next_steps, extra

        if family == RequestFamily.MEDICAL:
            amount = context.get("approvedAmount") if approved and context.get("approvedAmount") else context["claimAmount"]
            title = f"Medical Claim {outcome}"
            message = f"Your medical reimbursement claim of ${amount} has been {verb}."
            if approved:
                message += " Reimbursement will be processed with your next payroll."
            next_steps = (
                "Reimbursement will be included in your next payroll. You will see it reflected in your pay slip."
                if approved
                else "Please contact HR if you need to discuss this decision or submit additional documentation."
            )
            extra = {
                "claimAmount": amount,
                "currency": context.get("currency", "SGD"),
                "claimType": context.get("claimType", "MEDICAL_REIMBURSEMENT"),
                "treatmentDate": context.get("treatmentDate"),
                "paymentTimeline": "Next payroll cycle" if approved else None,
            }
            return title, message, next_steps, extra

        item_type = "tool" if family == RequestFamily.TOOL else "material"
        default_location, default_instructions = DEFAULT_PICKUP[family]
        pickup_location = context.get("pickupLocation") or default_location
        quantity = _format_quantity(context.get("quantity") or 1)
        item_name = context.get("itemName") or "requested item"

        title = f"{item_type.capitalize()} Request {outcome}"
        message = f"Your request for {quantity} {item_name} has been {verb}."
        if approved:
            message += " Please collect from the designated pickup location."
        next_steps = (
            f"Please collect your {item_type} from {pickup_location}. "
            "Contact your supervisor for specific pickup instructions and timing."
            if approved
            else "Please contact your supervisor if you need to discuss this decision "
            "or submit a new request with additional justification."
        )
        extra = {
            "itemName": context.get("itemName"),
            "quantity": context.get("quantity"),
            "unit": context.get("unit", "pieces"),
            "requestType": context.get("requestType"),
            "projectId": context.get("projectId"),
            "pickupLocation": pickup_location if approved else None,
            "pickupInstructions": (context.get("pickupInstructions") or default_instructions) if approved else None,
        }
        return title, message, next_steps, extra

    async def notify_status(
        self,
        family: RequestFamily,
        request_id: int,
        new_status: RequestStatus,
        actor_id: Optional[int],
        context: Dict[str, Any],
        remarks: Optional[str] = None,
    ) -> DispatchResult:
        """
        Build and send the notification for a status change.

        Raises:
            DispatchError: when the channel could not accept the payload
        """
        payload = self.build_payload(family, request_id, new_status, actor_id, context, remarks)
        try:
            result = await self.channel.send(payload)
        except DispatchError:
            raise
        except Exception as e:
            raise DispatchError(
                "Notification channel failed",
                details={"error": str(e), "referenceNumber": payload.action_data["referenceNumber"]},
            ) from e

        logger.info(
            f"{payload.title} notification sent",
            extra={
                "reference_number": payload.action_data["referenceNumber"],
                "recipients": payload.recipients,
                "channel": result.channel,
                "notification_id": result.notification_id,
            },
        )
        return result

    async def batch_notify(self, items: List[StatusNotification]) -> List[DispatchResult]:
        """Send several notifications; one failure never stops the rest."""
        results = []
        for item in items:
            try:
                result = await self.notify_status(
                    item.family,
                    item.request_id,
                    item.status,
                    item.actor_id,
                    item.context,
                    item.remarks,
                )
            except (DispatchError, RequestValidationFailed, KeyError) as e:
                logger.error(
                    "Batch notification failed",
                    extra={"family": item.family.value, "request_id": item.request_id, "error": str(e)},
                )
                result = DispatchResult(
                    success=False,
                    channel=self.channel.name,
                    recipients=[item.context["employeeId"]] if "employeeId" in item.context else [],
                    error=str(e),
                )
            results.append(result)
        return results
