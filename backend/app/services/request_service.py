"""
Request store service for the four request families.

Leave, payment (advance), medical claim and material/tool requests each live
in their own table but share ids, lifecycle and submission rules. Ids come
from one shared counter so a request id identifies a request across
families.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, NotFoundError, RequestValidationFailed, ConflictError
from app.services.base_service import BaseService
from app.services.team_membership_service import TeamMembership
from app.db.repositories.counter_repository import CounterRepository
from app.db.repositories.project_repository import ProjectRepository
from app.db.repositories.leave_request_repository import LeaveRequestRepository
from app.db.repositories.payment_request_repository import PaymentRequestRepository
from app.db.repositories.medical_claim_repository import MedicalClaimRepository
from app.db.repositories.material_request_repository import MaterialRequestRepository
from app.db.repositories.request_repository import ApprovalRequestRepository
from app.models.employee import Employee
from app.models.counter import REQUEST_COUNTER
from app.models.material_request import MaterialRequestType
from app.models.request_common import RequestFamily, RequestStatus
from app.schemas.request import (
    Attachment,
    AttachmentCategory,
    LeaveRequestCreate,
    PaymentRequestCreate,
    MedicalClaimCreate,
    MaterialRequestCreate,
    LeaveRequestResponse,
    PaymentRequestResponse,
    MedicalClaimResponse,
    MaterialRequestResponse,
    RequestCreatedResponse,
    MyRequestsResponse,
)
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FamilyDefinition:
    """How one request family is stored and exposed."""
    family: RequestFamily
    label: str
    repository: Callable[[AsyncSession], ApprovalRequestRepository]
    create_schema: Type[BaseModel]
    response_schema: Type[BaseModel]
    material_type: Optional[MaterialRequestType] = None

    @property
    def by_project(self) -> bool:
        """Material and tool requests are owned through their project."""
        return self.material_type is not None

    @property
    def fulfilled_status(self) -> Optional[RequestStatus]:
        if self.family == RequestFamily.LEAVE:
            return None
        return RequestStatus.FULFILLED if self.by_project else RequestStatus.PROCESSED


FAMILIES: Dict[RequestFamily, FamilyDefinition] = {
    RequestFamily.LEAVE: FamilyDefinition(
        family=RequestFamily.LEAVE,
        label="Leave",
        repository=LeaveRequestRepository,
        create_schema=LeaveRequestCreate,
        response_schema=LeaveRequestResponse,
    ),
    RequestFamily.ADVANCE: FamilyDefinition(
        family=RequestFamily.ADVANCE,
        label="Payment",
        repository=PaymentRequestRepository,
        create_schema=PaymentRequestCreate,
        response_schema=PaymentRequestResponse,
    ),
    RequestFamily.MEDICAL: FamilyDefinition(
        family=RequestFamily.MEDICAL,
        label="Medical claim",
        repository=MedicalClaimRepository,
        create_schema=MedicalClaimCreate,
        response_schema=MedicalClaimResponse,
    ),
    RequestFamily.MATERIAL: FamilyDefinition(
        family=RequestFamily.MATERIAL,
        label="Material",
        repository=lambda session: MaterialRequestRepository(session, MaterialRequestType.MATERIAL),
        create_schema=MaterialRequestCreate,
        response_schema=MaterialRequestResponse,
        material_type=MaterialRequestType.MATERIAL,
    ),
    RequestFamily.TOOL: FamilyDefinition(
        family=RequestFamily.TOOL,
        label="Tool",
        repository=lambda session: MaterialRequestRepository(session, MaterialRequestType.TOOL),
        create_schema=MaterialRequestCreate,
        response_schema=MaterialRequestResponse,
        material_type=MaterialRequestType.TOOL,
    ),
}


def get_family(family: RequestFamily) -> FamilyDefinition:
    return FAMILIES[RequestFamily(family)]


def inclusive_days(from_date: date, to_date: date) -> int:
    """Number of calendar days from ``from_date`` to ``to_date``, both included."""
    return (to_date - from_date).days + 1


class RequestService(BaseService):
    """Service for submitting and reading approval requests."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.counter_repo = CounterRepository(session)
        self.project_repo = ProjectRepository(session)

    def repository(self, family: RequestFamily) -> ApprovalRequestRepository:
        return get_family(family).repository(self.session)

    def to_response(self, family: RequestFamily, request, **enrichment) -> BaseModel:
        """Convert a request row to its family response schema."""
        response = get_family(family).response_schema.model_validate(request)
        if enrichment:
            response = response.model_copy(update=enrichment)
        return response

    def _validate_payload(self, definition: FamilyDefinition, payload: Any) -> BaseModel:
        if isinstance(payload, definition.create_schema):
            return payload
        try:
            return definition.create_schema.model_validate(payload)
        except ValidationError as e:
            raise RequestValidationFailed(
                f"Invalid {definition.label.lower()} request",
                details=e.errors(include_url=False, include_context=False, include_input=False),
            ) from e

    async def create(self, family: RequestFamily, submitter: Employee, payload: Any) -> RequestCreatedResponse:
        """
        Submit a new request on behalf of ``submitter``.

        Company, employee and creator are always taken from the submitter;
        the payload cannot override them.
        """
        definition = get_family(family)
        data = self._validate_payload(definition, payload)
        values = data.model_dump()

        if definition.family == RequestFamily.LEAVE:
            values["total_days"] = inclusive_days(data.from_date, data.to_date)
        elif definition.family == RequestFamily.ADVANCE:
            values["urgency"] = data.urgency.value
        elif definition.family == RequestFamily.MEDICAL:
            values["receipts"] = []
            values["medical_reports"] = []
        else:
            project = await self.project_repo.get(data.project_id)
            if not project:
                raise NotFoundError("Project not found", details={"projectId": data.project_id})
            if project.company_id != submitter.company_id:
                raise RequestValidationFailed(
                    "Project belongs to a different company",
                    details={"projectId": data.project_id},
                )
            values["request_type"] = definition.material_type
            values["urgency"] = data.urgency.value

        request_id = await self.counter_repo.next_value(REQUEST_COUNTER)
        request = await self.repository(definition.family).create(
            id=request_id,
            company_id=submitter.company_id,
            employee_id=submitter.id,
            created_by=submitter.user_id,
            status=RequestStatus.PENDING,
            attachments=[],
            **values,
        )
        await self.session.commit()

        logger.info(
            f"{definition.label} request submitted",
            extra={
                "request_id": request.id,
                "family": definition.family.value,
                "employee_id": submitter.id,
                "company_id": submitter.company_id,
            },
        )
        return RequestCreatedResponse(request_id=request.id, request_type=definition.family)

    async def get(self, family: RequestFamily, request_id: int):
        """Get a request of ``family`` or raise NotFoundError."""
        definition = get_family(family)
        request = await self.repository(definition.family).get(request_id)
        if not request:
            raise NotFoundError(f"{definition.label} request not found", details={"requestId": request_id})
        return request

    async def find(self, request_id: int) -> Tuple[RequestFamily, Any]:
        """Locate a request in whichever family holds ``request_id``."""
        for family in (RequestFamily.LEAVE, RequestFamily.ADVANCE, RequestFamily.MEDICAL):
            request = await self.repository(family).get(request_id)
            if request:
                return family, request

        request = await MaterialRequestRepository(self.session).get(request_id)
        if request:
            family = RequestFamily.TOOL if request.request_type == MaterialRequestType.TOOL else RequestFamily.MATERIAL
            return family, request

        raise NotFoundError("Request not found", details={"requestId": request_id})

    async def list_mine(
        self,
        family: RequestFamily,
        employee_id: int,
        status: Optional[RequestStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[BaseModel]:
        """List an employee's own requests of one family, newest first."""
        requests = await self.repository(family).list_by_employee(
            employee_id, status=status, from_date=from_date, to_date=to_date
        )
        return [self.to_response(family, r) for r in requests]

    async def list_all_mine(
        self,
        employee_id: int,
        family: Optional[RequestFamily] = None,
        status: Optional[RequestStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> MyRequestsResponse:
        """List an employee's requests across families, newest first, paginated."""
        families = [family] if family else list(FAMILIES)
        items = []
        for f in families:
            items.extend(
                await self.list_mine(f, employee_id, status=status, from_date=from_date, to_date=to_date)
            )
        items.sort(key=lambda r: (r.created_at, r.id), reverse=True)

        return MyRequestsResponse(
            items=items[offset:offset + limit],
            total=len(items),
            limit=limit,
            offset=offset,
        )

    async def get_mine(self, employee_id: int, request_id: int) -> BaseModel:
        """Get one of the employee's own requests from any family."""
        family, request = await self.find(request_id)
        if request.employee_id != employee_id:
            # Other workers' requests are indistinguishable from missing ones
            raise NotFoundError("Request not found", details={"requestId": request_id})
        return self.to_response(family, request)

    async def list_pending_for(self, family: RequestFamily, membership: TeamMembership) -> list:
        """
        List PENDING requests of ``family`` owned through ``membership``.

        Material and tool requests are matched on their project, every other
        family on the submitting employee.
        """
        definition = get_family(family)
        repo = self.repository(definition.family)
        if definition.by_project:
            return await repo.list_pending_for_projects(membership.project_ids)
        return await repo.list_pending_for_employees(membership.employee_ids)

    async def attach_files(
        self,
        family: RequestFamily,
        request_id: int,
        submitter: Employee,
        files: List[Attachment],
    ) -> BaseModel:
        """
        Record stored-file metadata on the submitter's pending request.

        Medical claim files are also filed as receipts or medical reports
        according to their category; uncategorized files count as receipts.
        """
        definition = get_family(family)
        request = await self.get(definition.family, request_id)
        if request.employee_id != submitter.id:
            raise ForbiddenError("Only the submitter can attach files", details={"requestId": request_id})

        now = utcnow()
        entries = []
        for f in files:
            entry = f.model_dump(mode="json", by_alias=True, exclude_none=True)
            entry.setdefault("uploadedAt", now.isoformat())
            entries.append(entry)

        values = {"attachments": list(request.attachments or []) + entries}
        if definition.family == RequestFamily.MEDICAL:
            reports = [e for f, e in zip(files, entries) if f.category == AttachmentCategory.MEDICAL_REPORT]
            receipts = [e for f, e in zip(files, entries) if f.category != AttachmentCategory.MEDICAL_REPORT]
            values["receipts"] = list(request.receipts or []) + receipts
            values["medical_reports"] = list(request.medical_reports or []) + reports

        updated = await self.repository(definition.family).update_pending(request_id, **values)
        if not updated:
            current = await self.get(definition.family, request_id)
            raise ConflictError(
                f"{definition.label} request already {current.status.value.lower()}",
                details={"requestId": request_id, "status": current.status.value},
            )
        await self.session.commit()

        logger.info(
            "Attachments added",
            extra={"request_id": request_id, "family": definition.family.value, "count": len(entries)},
        )
        return self.to_response(definition.family, await self.get(definition.family, request_id))
