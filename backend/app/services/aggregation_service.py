"""
Aggregation queries for supervisor dashboards and approval inboxes.
Built on the same team membership derivation as approval authorization.
"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.services.base_service import BaseService
from app.services.request_service import RequestService, FAMILIES, get_family
from app.services.team_membership_service import TeamMembershipService, TeamMembership
from app.db.repositories.employee_repository import EmployeeRepository
from app.models.request_common import RequestFamily
from app.schemas.approval import PendingSummary, PendingListResponse
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class AggregationService(BaseService):
    """Service for pending counts and pending lists."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.request_service = RequestService(session)
        self.team_service = TeamMembershipService(session)
        self.employee_repo = EmployeeRepository(session)

    async def _count(self, family: RequestFamily, membership: TeamMembership, created_before=None) -> int:
        definition = get_family(family)
        repo = self.request_service.repository(family)
        if definition.by_project:
            return await repo.count_pending_for_projects(membership.project_ids, created_before=created_before)
        return await repo.count_pending_for_employees(membership.employee_ids, created_before=created_before)

    async def pending_summary(self, supervisor_id: int) -> PendingSummary:
        """
        Count pending requests per family for a supervisor's team.

        ``urgent`` counts pending requests older than URGENT_THRESHOLD_HOURS.
        """
        membership = await self.team_service.resolve_supervised_employees(supervisor_id)
        urgent_before = utcnow() - timedelta(hours=settings.URGENT_THRESHOLD_HOURS)

        counts = {}
        urgent = 0
        for family in FAMILIES:
            counts[family.value] = await self._count(family, membership)
            urgent += await self._count(family, membership, created_before=urgent_before)

        summary = PendingSummary(**counts, urgent=urgent, total=sum(counts.values()))
        logger.debug(
            "Pending summary computed",
            extra={"supervisor_id": supervisor_id, **summary.model_dump()},
        )
        return summary

    async def pending_list(self, supervisor_id: int, family: Optional[RequestFamily] = None) -> PendingListResponse:
        """
        List pending requests owned by a supervisor, newest first.

        Each item carries the submitter's name and the owning project.
        """
        membership = await self.team_service.resolve_supervised_employees(supervisor_id)
        families = [family] if family else list(FAMILIES)

        rows = []
        for f in families:
            for request in await self.request_service.list_pending_for(f, membership):
                rows.append((f, request))

        # Material/tool submitters may have moved off the project since submitting
        missing = {r.employee_id for _, r in rows} - set(membership.employees)
        others = {e.id: e for e in await self.employee_repo.list_by_ids(missing)}

        items = []
        for f, request in rows:
            employee = membership.employees.get(request.employee_id) or others.get(request.employee_id)
            if get_family(f).by_project:
                project = membership.projects.get(request.project_id)
            else:
                project = membership.project_for_employee(request.employee_id)
            items.append(
                self.request_service.to_response(
                    f,
                    request,
                    employee_name=employee.full_name if employee else None,
                    project_id=project.id if project else None,
                    project_name=project.name if project else None,
                )
            )
        items.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return PendingListResponse(count=len(items), requests=items)
