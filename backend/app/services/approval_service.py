"""
Approval engine - approve, reject, fulfil, cancel and annotate requests.

Every status change is a single conditional UPDATE matching the expected
current status, so two racing decisions cannot both succeed. Notifications
are sent only after the transition is committed and never undo it.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AppException,
    ConflictError,
    ForbiddenError,
    RequestValidationFailed,
)
from app.services.base_service import BaseService
from app.services.request_service import RequestService, FamilyDefinition, get_family
from app.services.team_membership_service import TeamMembershipService, TeamMembership
from app.services.notification_service import (
    NotificationDispatcher,
    DEFAULT_PICKUP,
    build_status_context,
)
from app.models.employee import Employee
from app.models.request_common import RequestFamily, RequestStatus
from app.schemas.approval import (
    DecisionAction,
    DecisionRequest,
    DecisionResponse,
    BatchDecisionItem,
    BatchDecisionResult,
    BatchDecisionResponse,
)
from app.schemas.request import RequestStatusResponse
from app.schemas.notification import StatusNotification
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Cancelled by worker"


class ApprovalService(BaseService):
    """Service applying the request lifecycle."""

    def __init__(self, session: AsyncSession, dispatcher: Optional[NotificationDispatcher] = None):
        self.session = session
        self.dispatcher = dispatcher
        self.request_service = RequestService(session)
        self.team_service = TeamMembershipService(session)

    @staticmethod
    def is_owner(definition: FamilyDefinition, membership: TeamMembership, request) -> bool:
        """Whether the supervisor behind ``membership`` owns ``request``."""
        if definition.by_project:
            return membership.owns_project(request.project_id)
        return membership.owns_employee(request.employee_id)

    async def _authorize(self, definition: FamilyDefinition, actor: Employee, request) -> TeamMembership:
        membership = await self.team_service.resolve_supervised_employees(actor.id)
        if not self.is_owner(definition, membership, request):
            logger.warning(
                "Decision refused: request not owned by supervisor",
                extra={
                    "request_id": request.id,
                    "family": definition.family.value,
                    "supervisor_id": actor.id,
                },
            )
            raise ForbiddenError(
                f"You are not authorized to decide this {definition.label.lower()} request",
                details={"requestId": request.id},
            )
        return membership

    def _already(self, definition: FamilyDefinition, request_id: int, status: RequestStatus) -> ConflictError:
        return ConflictError(
            f"{definition.label} request already {status.value.lower()}",
            details={"requestId": request_id, "status": status.value},
        )

    def _approval_values(self, definition: FamilyDefinition, request, decision: DecisionRequest) -> dict:
        """Family-specific columns written on approval."""
        if definition.family == RequestFamily.ADVANCE:
            return {"approved_amount": decision.approved_amount or request.amount}
        if definition.family == RequestFamily.MEDICAL:
            return {"approved_amount": decision.approved_amount or request.claim_amount}
        if definition.by_project:
            quantity = decision.approved_quantity or request.quantity
            if quantity > request.quantity:
                raise RequestValidationFailed(
                    "Approved quantity cannot exceed requested quantity",
                    details={"approvedQuantity": quantity, "quantity": request.quantity},
                )
            default_location, default_instructions = DEFAULT_PICKUP[definition.family]
            return {
                "approved_quantity": quantity,
                "pickup_location": decision.pickup_location or default_location,
                "pickup_instructions": decision.pickup_instructions or default_instructions,
                "pickup_contact_person": decision.pickup_contact_person,
                "pickup_contact_phone": decision.pickup_contact_phone,
            }
        return {}

    def _decision_response(self, definition: FamilyDefinition, request, notification_sent: bool = False) -> DecisionResponse:
        return DecisionResponse(
            request_id=request.id,
            family=definition.family,
            status=request.status,
            approver_id=request.approver_id,
            approved_at=request.approved_at,
            remarks=request.remarks,
            approved_amount=getattr(request, "approved_amount", None),
            approved_quantity=getattr(request, "approved_quantity", None),
            pickup_location=getattr(request, "pickup_location", None),
            pickup_instructions=getattr(request, "pickup_instructions", None),
            notification_sent=notification_sent,
        )

    async def _apply_decision(
        self,
        family: RequestFamily,
        request_id: int,
        actor: Employee,
        decision: DecisionRequest,
    ):
        """
        Move a pending request to APPROVED or REJECTED and commit.

        Order of checks: existence (404), ownership (403), PENDING (409).
        Returns the family definition and the reloaded request.
        """
        definition = get_family(family)
        request = await self.request_service.get(definition.family, request_id)
        await self._authorize(definition, actor, request)

        if request.status != RequestStatus.PENDING:
            raise self._already(definition, request_id, request.status)

        approve = decision.action == DecisionAction.APPROVE
        new_status = RequestStatus.APPROVED if approve else RequestStatus.REJECTED
        repo = self.request_service.repository(definition.family)
        values = {
            "approver_id": actor.id,
            "approved_at": utcnow(),
        }
        if decision.remarks:
            # Remarks added while pending are kept
            values["remarks"] = repo.appended_remarks(decision.remarks)
        if approve:
            values.update(self._approval_values(definition, request, decision))

        moved = await repo.transition(request_id, RequestStatus.PENDING, new_status, **values)
        if not moved:
            current = await self.request_service.get(definition.family, request_id)
            raise self._already(definition, request_id, current.status)
        await self.session.commit()

        request = await self.request_service.get(definition.family, request_id)
        logger.info(
            f"{definition.label} request {new_status.value.lower()}",
            extra={
                "request_id": request_id,
                "family": definition.family.value,
                "approver_id": actor.id,
                "employee_id": request.employee_id,
            },
        )
        return definition, request

    async def decide(
        self,
        family: RequestFamily,
        request_id: int,
        actor: Employee,
        decision: DecisionRequest,
    ) -> DecisionResponse:
        """Approve or reject a pending request, then notify the submitter."""
        definition, request = await self._apply_decision(family, request_id, actor, decision)
        notification_sent = await self._notify(definition, request, request.status, actor, decision.remarks)
        return self._decision_response(definition, request, notification_sent)

    async def _notify(
        self,
        definition: FamilyDefinition,
        request,
        new_status: RequestStatus,
        actor: Employee,
        remarks: Optional[str],
    ) -> bool:
        """Send the status notification; failures are logged and reported as False."""
        if self.dispatcher is None:
            return False
        try:
            await self.dispatcher.notify_status(
                definition.family,
                request.id,
                new_status,
                actor.id,
                build_status_context(definition.family, request, actor),
                remarks,
            )
            return True
        except Exception:
            logger.exception(
                "Status notification failed; decision stands",
                extra={"request_id": request.id, "family": definition.family.value},
            )
            return False

    async def fulfill(
        self,
        family: RequestFamily,
        request_id: int,
        remarks: Optional[str] = None,
    ) -> DecisionResponse:
        """Move an APPROVED request to PROCESSED (payment, medical) or FULFILLED (material, tool)."""
        definition = get_family(family)
        target = definition.fulfilled_status
        if target is None:
            raise RequestValidationFailed(f"{definition.label} requests have no fulfilment step")

        request = await self.request_service.get(definition.family, request_id)
        if request.status != RequestStatus.APPROVED:
            raise ConflictError(
                f"{definition.label} request is {request.status.value.lower()}, not approved",
                details={"requestId": request_id, "status": request.status.value},
            )

        stamp = "fulfilled_at" if target == RequestStatus.FULFILLED else "processed_at"
        repo = self.request_service.repository(definition.family)
        moved = await repo.transition(request_id, RequestStatus.APPROVED, target, **{stamp: utcnow()})
        if not moved:
            current = await self.request_service.get(definition.family, request_id)
            raise self._already(definition, request_id, current.status)
        if remarks:
            await repo.append_remarks(request_id, remarks)
        await self.session.commit()

        request = await self.request_service.get(definition.family, request_id)
        logger.info(
            f"{definition.label} request {target.value.lower()}",
            extra={"request_id": request_id, "family": definition.family.value},
        )
        return self._decision_response(definition, request)

    async def cancel(
        self,
        request_id: int,
        actor: Employee,
        reason: Optional[str] = None,
    ) -> RequestStatusResponse:
        """Cancel the actor's own PENDING request, whichever family it belongs to."""
        family, request = await self.request_service.find(request_id)
        definition = get_family(family)
        if request.employee_id != actor.id:
            raise ForbiddenError("Only the submitter can cancel a request", details={"requestId": request_id})
        if request.status != RequestStatus.PENDING:
            raise self._already(definition, request_id, request.status)

        repo = self.request_service.repository(family)
        moved = await repo.transition(
            request_id,
            RequestStatus.PENDING,
            RequestStatus.CANCELLED,
            cancelled_at=utcnow(),
            cancel_reason=reason or DEFAULT_CANCEL_REASON,
        )
        if not moved:
            current = await self.request_service.get(family, request_id)
            raise self._already(definition, request_id, current.status)
        await self.session.commit()

        logger.info(
            f"{definition.label} request cancelled",
            extra={"request_id": request_id, "family": family.value, "employee_id": actor.id},
        )
        return RequestStatusResponse(request_id=request_id, family=family, status=RequestStatus.CANCELLED)

    async def append_remarks(
        self,
        family: RequestFamily,
        request_id: int,
        actor: Employee,
        text: str,
    ):
        """Append a remark on a request of any status. Existing remarks are kept."""
        definition = get_family(family)
        request = await self.request_service.get(definition.family, request_id)
        if request.employee_id != actor.id:
            await self._authorize(definition, actor, request)

        repo = self.request_service.repository(definition.family)
        await repo.append_remarks(request_id, f"{actor.full_name}: {text}")
        await self.session.commit()

        logger.info(
            "Remark appended",
            extra={"request_id": request_id, "family": definition.family.value, "author_id": actor.id},
        )
        request = await self.request_service.get(definition.family, request_id)
        return self.request_service.to_response(definition.family, request)

    async def batch_decide(self, actor: Employee, decisions: List[BatchDecisionItem]) -> BatchDecisionResponse:
        """
        Apply several decisions independently.

        Each item succeeds or fails on its own; a failure is reported with
        the error name and never aborts the remaining items. Notifications
        for the committed decisions go out together once every item has
        been processed.
        """
        results = []
        pending_notifications = []
        for item in decisions:
            try:
                definition, request = await self._apply_decision(item.family, item.request_id, actor, item)
            except AppException as e:
                results.append(
                    BatchDecisionResult(
                        family=item.family,
                        request_id=item.request_id,
                        success=False,
                        error=type(e).__name__,
                        message=e.message,
                    )
                )
                continue

            result = BatchDecisionResult(
                family=item.family,
                request_id=item.request_id,
                success=True,
                status=request.status,
            )
            results.append(result)
            pending_notifications.append((
                result,
                StatusNotification(
                    family=definition.family,
                    request_id=request.id,
                    status=request.status,
                    actor_id=actor.id,
                    remarks=item.remarks,
                    context=build_status_context(definition.family, request, actor),
                ),
            ))

        await self._notify_batch(pending_notifications)

        succeeded = sum(1 for r in results if r.success)
        logger.info(
            "Batch decisions processed",
            extra={"supervisor_id": actor.id, "succeeded": succeeded, "failed": len(results) - succeeded},
        )
        return BatchDecisionResponse(
            processed=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=results,
        )

    async def _notify_batch(self, pending_notifications: list) -> None:
        """Send batch notifications and mark which results were delivered."""
        if self.dispatcher is None or not pending_notifications:
            return
        try:
            dispatched = await self.dispatcher.batch_notify([n for _, n in pending_notifications])
        except Exception:
            logger.exception(
                "Batch status notifications failed; decisions stand",
                extra={"count": len(pending_notifications)},
            )
            return
        for (result, _), outcome in zip(pending_notifications, dispatched):
            result.notification_sent = outcome.success
