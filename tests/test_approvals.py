"""
Approval engine tests: decisions, authorization, fulfilment, batch
processing, notification isolation and supervisor inbox views.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import update

from app.core.exceptions import ConflictError
from app.db.repositories.employee_repository import EmployeeRepository
from app.models.leave_request import LeaveRequest
from app.models.material_request import MaterialRequest
from app.models.payment_request import PaymentRequest
from app.models.request_common import RequestStatus, RequestFamily
from app.schemas.approval import DecisionAction, DecisionRequest
from app.services.approval_service import ApprovalService
from app.services.notification_service import NotificationDispatcher
from app.utils.clock import utcnow

from tests.conftest import (
    SUPERVISOR_1003,
    SUPERVISOR_1001_1002,
    SUPERVISOR_NO_PROJECTS,
    WORKER_107,
    WORKER_LEGACY,
    WORKER_EMBEDDED,
    auth,
    RecordingChannel,
)
from tests.test_requests import LEAVE, ADVANCE, MEDICAL, MATERIAL, TOOL, submit


async def decide(client, family, request_id, supervisor_id, **body):
    body.setdefault("action", "approve")
    return await client.post(
        f"/api/v1/supervisor/approve-{family}/{request_id}", json=body, headers=auth(supervisor_id)
    )


async def get_status(session_maker, model, request_id):
    async with session_maker() as session:
        return (await session.get(model, request_id)).status


@pytest.mark.asyncio
async def test_approve_leave_then_second_decision_conflicts(test_client, test_session_maker, notification_channel):
    request_id = await submit(test_client, "leave", LEAVE, employee_id=WORKER_107)
    assert await get_status(test_session_maker, LeaveRequest, request_id) == RequestStatus.PENDING

    first = await decide(test_client, "leave", request_id, SUPERVISOR_1003)
    assert first.status_code == 200
    data = first.json()
    assert data["status"] == "APPROVED"
    assert data["approverId"] == SUPERVISOR_1003
    assert data["approvedAt"] is not None
    assert data["notificationSent"] is True

    second = await decide(test_client, "leave", request_id, SUPERVISOR_1003)
    assert second.status_code == 409
    assert second.json()["error"]["message"] == "Leave request already approved"

    rejected_after = await decide(test_client, "leave", request_id, SUPERVISOR_1003, action="reject")
    assert rejected_after.status_code == 409
    assert await get_status(test_session_maker, LeaveRequest, request_id) == RequestStatus.APPROVED
    assert len(notification_channel.sent) == 1


@pytest.mark.asyncio
async def test_tool_request_refused_for_supervisor_of_another_project(test_client, test_session_maker, notification_channel):
    request_id = await submit(test_client, "tool", TOOL)

    response = await decide(test_client, "tool", request_id, SUPERVISOR_1001_1002)

    assert response.status_code == 403
    assert await get_status(test_session_maker, MaterialRequest, request_id) == RequestStatus.PENDING
    assert notification_channel.sent == []


@pytest.mark.asyncio
async def test_partial_material_approval_then_fulfil(test_client, notification_channel):
    request_id = await submit(test_client, "material", MATERIAL)

    response = await decide(test_client, "material", request_id, SUPERVISOR_1003, approvedQuantity=3)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "APPROVED"
    assert data["approvedQuantity"] == 3
    assert data["pickupLocation"] == "Site storage area"
    assert data["pickupInstructions"] == "Contact site supervisor for collection"

    fulfilled = await test_client.post(
        f"/api/v1/supervisor/material/{request_id}/fulfill", headers=auth(SUPERVISOR_1003)
    )
    assert fulfilled.status_code == 200
    assert fulfilled.json()["status"] == "FULFILLED"

    detail = await test_client.get(f"/api/v1/requests/my/{request_id}", headers=auth(WORKER_107))
    assert detail.json()["fulfilledAt"] is not None
    assert detail.json()["approvedQuantity"] == 3


@pytest.mark.asyncio
async def test_tool_approval_uses_tool_pickup_defaults_and_overrides(test_client, notification_channel):
    default_id = await submit(test_client, "tool", TOOL)
    custom_id = await submit(test_client, "tool", TOOL)

    default = await decide(test_client, "tool", default_id, SUPERVISOR_1003)
    custom = await decide(
        test_client, "tool", custom_id, SUPERVISOR_1003, pickupLocation="Container 4", approvedQuantity=2
    )

    assert default.json()["pickupLocation"] == "Tool storage area"
    assert default.json()["approvedQuantity"] == 5
    assert custom.json()["pickupLocation"] == "Container 4"
    assert custom.json()["pickupInstructions"] == "Contact site supervisor for tool collection"


@pytest.mark.asyncio
async def test_approved_quantity_cannot_exceed_request(test_client, test_session_maker, notification_channel):
    request_id = await submit(test_client, "material", MATERIAL)

    response = await decide(test_client, "material", request_id, SUPERVISOR_1003, approvedQuantity=6)

    assert response.status_code == 400
    assert await get_status(test_session_maker, MaterialRequest, request_id) == RequestStatus.PENDING


@pytest.mark.asyncio
async def test_pending_summary_for_supervisor_of_two_projects(test_client, notification_channel):
    await submit(test_client, "leave", LEAVE, employee_id=WORKER_LEGACY)
    await submit(test_client, "leave", LEAVE, employee_id=WORKER_EMBEDDED)
    await submit(test_client, "material", dict(MATERIAL, projectId=1001), employee_id=WORKER_LEGACY)
    # Owned by supervisor 201, must not be counted
    await submit(test_client, "leave", LEAVE, employee_id=WORKER_107)
    await submit(test_client, "tool", TOOL, employee_id=WORKER_107)

    response = await test_client.get("/api/v1/supervisor/pending-approvals", headers=auth(SUPERVISOR_1001_1002))

    assert response.status_code == 200
    summary = response.json()
    assert {k: summary[k] for k in ("leave", "material", "tool", "advance", "total")} == {
        "leave": 2,
        "material": 1,
        "tool": 0,
        "advance": 0,
        "total": 3,
    }
    assert summary["medical"] == 0
    assert summary["urgent"] == 0


@pytest.mark.asyncio
async def test_summary_and_authorization_agree_for_new_team_member(test_client, notification_channel):
    # Move the legacy-only worker onto project 1003 and check both views at once
    assign = await test_client.put(
        f"/api/v1/employees/{WORKER_LEGACY}/current-project",
        json={"projectId": 1003},
        headers=auth(SUPERVISOR_1003),
    )
    assert assign.status_code == 200
    request_id = await submit(test_client, "advance", ADVANCE, employee_id=WORKER_LEGACY)

    summary = await test_client.get("/api/v1/supervisor/pending-approvals", headers=auth(SUPERVISOR_1003))
    assert summary.json()["advance"] == 1
    old_summary = await test_client.get("/api/v1/supervisor/pending-approvals", headers=auth(SUPERVISOR_1001_1002))
    assert old_summary.json()["advance"] == 0

    refused = await decide(test_client, "advance", request_id, SUPERVISOR_1001_1002)
    assert refused.status_code == 403
    approved = await decide(test_client, "advance", request_id, SUPERVISOR_1003)
    assert approved.status_code == 200
    assert Decimal(approved.json()["approvedAmount"]) == Decimal("250")


@pytest.mark.asyncio
async def test_legacy_only_worker_is_routed_to_supervisor(test_client, notification_channel):
    request_id = await submit(test_client, "leave", LEAVE, employee_id=WORKER_LEGACY)

    listing = await test_client.get("/api/v1/supervisor/pending-leave-requests", headers=auth(SUPERVISOR_1001_1002))
    assert listing.json()["count"] == 1
    item = listing.json()["requests"][0]
    assert item["id"] == request_id
    assert item["employeeName"] == "Ahmad Legacy"
    assert item["projectId"] == 1001
    assert item["projectName"] == "Changi Annex"

    response = await decide(test_client, "leave", request_id, SUPERVISOR_1001_1002)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_supervisor_without_projects_sees_nothing_and_decides_nothing(test_client, notification_channel):
    leave_id = await submit(test_client, "leave", LEAVE)
    tool_id = await submit(test_client, "tool", TOOL)

    summary = await test_client.get("/api/v1/supervisor/pending-approvals", headers=auth(SUPERVISOR_NO_PROJECTS))
    assert summary.json()["total"] == 0
    listing = await test_client.get("/api/v1/supervisor/pending-requests", headers=auth(SUPERVISOR_NO_PROJECTS))
    assert listing.json() == {"count": 0, "requests": []}

    assert (await decide(test_client, "leave", leave_id, SUPERVISOR_NO_PROJECTS)).status_code == 403
    assert (await decide(test_client, "tool", tool_id, SUPERVISOR_NO_PROJECTS, action="reject")).status_code == 403


@pytest.mark.asyncio
async def test_decided_requests_leave_the_pending_list(test_client, notification_channel):
    keep = await submit(test_client, "medical", MEDICAL)
    decided = await submit(test_client, "medical", MEDICAL)
    await decide(test_client, "medical", decided, SUPERVISOR_1003, action="reject", remarks="No receipt")

    listing = await test_client.get("/api/v1/supervisor/pending-medical-requests", headers=auth(SUPERVISOR_1003))

    assert [r["id"] for r in listing.json()["requests"]] == [keep]


@pytest.mark.asyncio
async def test_decision_survives_notification_failure(test_client, test_session_maker, failing_channel):
    request_id = await submit(test_client, "leave", LEAVE)

    response = await decide(test_client, "leave", request_id, SUPERVISOR_1003)

    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"
    assert response.json()["notificationSent"] is False
    assert failing_channel.attempts == 1
    assert await get_status(test_session_maker, LeaveRequest, request_id) == RequestStatus.APPROVED


@pytest.mark.asyncio
async def test_missing_request_is_404(test_client, notification_channel):
    response = await decide(test_client, "leave", 555555, SUPERVISOR_1003)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invalid_action_is_400(test_client, notification_channel):
    request_id = await submit(test_client, "leave", LEAVE)

    response = await decide(test_client, "leave", request_id, SUPERVISOR_1003, action="escalate")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_rejection_sends_high_priority_notification_with_reason(test_client, notification_channel):
    request_id = await submit(test_client, "advance", ADVANCE)

    response = await decide(test_client, "advance", request_id, SUPERVISOR_1003, action="reject", remarks="Budget freeze")

    assert response.json()["status"] == "REJECTED"
    assert response.json()["remarks"] == "Budget freeze"
    assert response.json()["approvedAmount"] is None
    payload = notification_channel.sent[0]
    assert payload.title == "Payment Request Rejected"
    assert payload.message == "Your advance payment request of $250.00 has been rejected. Reason: Budget freeze"
    assert payload.priority.value == "HIGH"
    assert payload.requires_acknowledgment is True
    assert payload.recipients == [WORKER_107]
    assert payload.sender_id == SUPERVISOR_1003
    assert payload.action_data["referenceNumber"] == f"PR-{request_id}"
    assert payload.action_data["approverContact"] == {
        "name": "Sam Supervisor",
        "phone": "+65 6000 0201",
        "email": "sam@site.test",
    }


@pytest.mark.asyncio
async def test_fulfil_requires_approved_status(test_client, notification_channel):
    request_id = await submit(test_client, "advance", ADVANCE)

    early = await test_client.post(f"/api/v1/supervisor/advance/{request_id}/fulfill", headers=auth(SUPERVISOR_1003))
    assert early.status_code == 409

    await decide(test_client, "advance", request_id, SUPERVISOR_1003, approvedAmount="200.00")
    processed = await test_client.post(
        f"/api/v1/supervisor/advance/{request_id}/fulfill",
        json={"remarks": "Paid via GIRO"},
        headers=auth(SUPERVISOR_1003),
    )
    assert processed.status_code == 200
    assert processed.json()["status"] == "PROCESSED"
    assert Decimal(processed.json()["approvedAmount"]) == Decimal("200")
    assert processed.json()["remarks"] == "Paid via GIRO"

    again = await test_client.post(f"/api/v1/supervisor/advance/{request_id}/fulfill", headers=auth(SUPERVISOR_1003))
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_leave_has_no_fulfilment(test_client, notification_channel):
    request_id = await submit(test_client, "leave", LEAVE)
    await decide(test_client, "leave", request_id, SUPERVISOR_1003)

    response = await test_client.post(f"/api/v1/supervisor/leave/{request_id}/fulfill", headers=auth(SUPERVISOR_1003))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_batch_decisions_report_each_item(test_client, test_session_maker, notification_channel):
    leave_id = await submit(test_client, "leave", LEAVE)
    tool_id = await submit(test_client, "tool", TOOL)
    foreign_id = await submit(test_client, "leave", LEAVE, employee_id=WORKER_LEGACY)

    response = await test_client.post(
        "/api/v1/supervisor/approvals/batch-process",
        json={
            "decisions": [
                {"family": "leave", "requestId": leave_id, "action": "approve"},
                {"family": "leave", "requestId": foreign_id, "action": "approve"},
                {"family": "tool", "requestId": tool_id, "action": "reject", "remarks": "Use site stock"},
                {"family": "leave", "requestId": leave_id, "action": "reject"},
            ]
        },
        headers=auth(SUPERVISOR_1003),
    )

    assert response.status_code == 200
    data = response.json()
    assert (data["processed"], data["succeeded"], data["failed"]) == (4, 2, 2)
    assert [(r["success"], r["status"], r["error"]) for r in data["results"]] == [
        (True, "APPROVED", None),
        (False, None, "ForbiddenError"),
        (True, "REJECTED", None),
        (False, None, "ConflictError"),
    ]
    assert [r["notificationSent"] for r in data["results"]] == [True, False, True, False]
    assert await get_status(test_session_maker, LeaveRequest, foreign_id) == RequestStatus.PENDING
    assert len(notification_channel.sent) == 2


@pytest.mark.asyncio
async def test_urgent_counts_requests_pending_over_a_day(test_client, test_session_maker, notification_channel):
    old_id = await submit(test_client, "leave", LEAVE)
    await submit(test_client, "leave", LEAVE)
    async with test_session_maker() as session:
        await session.execute(
            update(LeaveRequest)
            .where(LeaveRequest.id == old_id)
            .values(created_at=utcnow() - timedelta(hours=25))
        )
        await session.commit()

    response = await test_client.get("/api/v1/supervisor/pending-approvals", headers=auth(SUPERVISOR_1003))

    assert response.json()["leave"] == 2
    assert response.json()["urgent"] == 1


@pytest.mark.asyncio
async def test_decision_keeps_remarks_added_while_pending(test_client, notification_channel):
    approved_id = await submit(test_client, "leave", LEAVE)
    rejected_id = await submit(test_client, "leave", LEAVE)
    for request_id in (approved_id, rejected_id):
        added = await test_client.post(
            f"/api/v1/requests/leave/{request_id}/remarks",
            json={"text": "Family emergency, docs to follow"},
            headers=auth(WORKER_107),
        )
        assert added.status_code == 200

    approved = await decide(test_client, "leave", approved_id, SUPERVISOR_1003)
    rejected = await decide(test_client, "leave", rejected_id, SUPERVISOR_1003, action="reject", remarks="Dates clash")

    assert approved.json()["remarks"] == "Ravi Kumar: Family emergency, docs to follow"
    assert rejected.json()["remarks"] == "Ravi Kumar: Family emergency, docs to follow\nDates clash"
    payload = notification_channel.sent[-1]
    assert payload.action_data["remarks"] == "Dates clash"
    assert payload.message.endswith("has been rejected. Reason: Dates clash")


@pytest.mark.asyncio
async def test_decision_that_loses_a_race_conflicts(test_client, test_session_maker):
    request_id = await submit(test_client, "leave", LEAVE)
    channel = RecordingChannel()
    dispatcher = NotificationDispatcher(channel)

    async with test_session_maker() as winner_session, test_session_maker() as loser_session:
        winner = ApprovalService(winner_session, dispatcher)
        loser = ApprovalService(loser_session, dispatcher)
        winner_actor = await EmployeeRepository(winner_session).get(SUPERVISOR_1003)
        loser_actor = await EmployeeRepository(loser_session).get(SUPERVISOR_1003)

        read_request = loser.request_service.get

        async def read_then_get_overtaken(family, rid):
            # The loser holds a PENDING snapshot while the winner commits
            request = await read_request(family, rid)
            if request.status == RequestStatus.PENDING:
                await winner.decide(family, rid, winner_actor, DecisionRequest(action=DecisionAction.APPROVE))
            return request

        loser.request_service.get = read_then_get_overtaken

        with pytest.raises(ConflictError) as exc_info:
            await loser.decide(
                RequestFamily.LEAVE,
                request_id,
                loser_actor,
                DecisionRequest(action=DecisionAction.REJECT, remarks="Too late"),
            )

    assert exc_info.value.message == "Leave request already approved"
    assert exc_info.value.status_code == 409
    async with test_session_maker() as session:
        stored = await session.get(LeaveRequest, request_id)
        assert stored.status == RequestStatus.APPROVED
        assert stored.remarks is None
    assert len(channel.sent) == 1
    assert channel.sent[0].title == "Leave Request Approved"


@pytest.mark.asyncio
async def test_fulfilment_that_loses_a_race_conflicts(test_client, test_session_maker, notification_channel):
    request_id = await submit(test_client, "advance", ADVANCE)
    await decide(test_client, "advance", request_id, SUPERVISOR_1003)

    async with test_session_maker() as winner_session, test_session_maker() as loser_session:
        winner = ApprovalService(winner_session)
        loser = ApprovalService(loser_session)
        read_request = loser.request_service.get

        async def read_then_get_overtaken(family, rid):
            request = await read_request(family, rid)
            if request.status == RequestStatus.APPROVED:
                await winner.fulfill(family, rid, remarks="Paid via GIRO")
            return request

        loser.request_service.get = read_then_get_overtaken

        with pytest.raises(ConflictError) as exc_info:
            await loser.fulfill(RequestFamily.ADVANCE, request_id, remarks="Paid twice")

    assert exc_info.value.message == "Payment request already processed"
    async with test_session_maker() as session:
        stored = await session.get(PaymentRequest, request_id)
        assert stored.status == RequestStatus.PROCESSED
        assert stored.remarks == "Paid via GIRO"


@pytest.mark.asyncio
async def test_cancel_that_loses_a_race_to_a_decision_conflicts(test_client, test_session_maker):
    request_id = await submit(test_client, "leave", LEAVE)

    async with test_session_maker() as supervisor_session, test_session_maker() as worker_session:
        supervisor_side = ApprovalService(supervisor_session)
        worker_side = ApprovalService(worker_session)
        supervisor = await EmployeeRepository(supervisor_session).get(SUPERVISOR_1003)
        worker = await EmployeeRepository(worker_session).get(WORKER_107)
        locate = worker_side.request_service.find

        async def locate_then_get_overtaken(rid):
            family, request = await locate(rid)
            await supervisor_side.decide(family, rid, supervisor, DecisionRequest(action=DecisionAction.APPROVE))
            return family, request

        worker_side.request_service.find = locate_then_get_overtaken

        with pytest.raises(ConflictError) as exc_info:
            await worker_side.cancel(request_id, worker, reason="Plans changed")

    assert exc_info.value.message == "Leave request already approved"
    assert await get_status(test_session_maker, LeaveRequest, request_id) == RequestStatus.APPROVED
