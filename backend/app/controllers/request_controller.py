"""
Request controller - worker-facing request operations.
"""

from datetime import date
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.controllers.base_controller import BaseController
from app.services.request_service import RequestService
from app.services.approval_service import ApprovalService
from app.models.employee import Employee
from app.models.request_common import RequestFamily, RequestStatus
from app.schemas.request import (
    AttachmentsAdd,
    CancelRequest,
    MyRequestsResponse,
    RemarksAdd,
    RequestCreatedResponse,
    RequestResponse,
    RequestStatusResponse,
)


class RequestController(BaseController):
    """Controller for request submission and a worker's own requests."""

    def __init__(self, session: AsyncSession):
        self.request_service = RequestService(session)
        self.approval_service = ApprovalService(session)

    async def create_request(self, family: RequestFamily, submitter: Employee, payload: Any) -> RequestCreatedResponse:
        """Submit a request of ``family``."""
        return await self.request_service.create(family, submitter, payload)

    async def list_my_requests(
        self,
        family: RequestFamily,
        employee: Employee,
        status: Optional[RequestStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[RequestResponse]:
        """List own requests of one family."""
        return await self.request_service.list_mine(
            family, employee.id, status=status, from_date=from_date, to_date=to_date
        )

    async def list_all_my_requests(
        self,
        employee: Employee,
        family: Optional[RequestFamily] = None,
        status: Optional[RequestStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> MyRequestsResponse:
        """List own requests across families."""
        return await self.request_service.list_all_mine(
            employee.id,
            family=family,
            status=status,
            from_date=from_date,
            to_date=to_date,
            limit=limit,
            offset=offset,
        )

    async def get_my_request(self, employee: Employee, request_id: int) -> RequestResponse:
        """Get one own request."""
        return await self.request_service.get_mine(employee.id, request_id)

    async def cancel_request(self, employee: Employee, request_id: int, body: CancelRequest) -> RequestStatusResponse:
        """Cancel an own pending request."""
        return await self.approval_service.cancel(request_id, employee, body.reason)

    async def attach_files(
        self,
        family: RequestFamily,
        request_id: int,
        employee: Employee,
        body: AttachmentsAdd,
    ) -> RequestResponse:
        """Attach stored files to an own pending request."""
        return await self.request_service.attach_files(family, request_id, employee, body.files)

    async def append_remarks(
        self,
        family: RequestFamily,
        request_id: int,
        employee: Employee,
        body: RemarksAdd,
    ) -> RequestResponse:
        """Append a remark as submitter or owning supervisor."""
        return await self.approval_service.append_remarks(family, request_id, employee, body.text)
