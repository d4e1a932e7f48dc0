"""
Team membership resolution.

A supervisor owns every project whose ``supervisor_id`` is the supervisor's
employee id, and through those projects every employee currently assigned
to one of them. The relationship is derived on every call and never cached.
Approval authorization and the dashboard/inbox queries both go through
``resolve_supervised_employees`` so they cannot disagree.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.base_service import BaseService
from app.db.repositories.employee_repository import EmployeeRepository
from app.db.repositories.project_repository import ProjectRepository
from app.services.identity_service import effective_project_id, assigned_project_ids

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TeamMembership:
    """Projects a supervisor owns and the employees assigned to them."""
    supervisor_id: int
    project_ids: FrozenSet[int] = field(default_factory=frozenset)
    employee_ids: FrozenSet[int] = field(default_factory=frozenset)
    projects: dict = field(default_factory=dict, compare=False, repr=False)
    employees: dict = field(default_factory=dict, compare=False, repr=False)

    def owns_employee(self, employee_id: int) -> bool:
        return employee_id in self.employee_ids

    def owns_project(self, project_id: Optional[int]) -> bool:
        return project_id is not None and project_id in self.project_ids

    def project_for_employee(self, employee_id: int):
        """The owned project the employee is assigned to, if loaded."""
        employee = self.employees.get(employee_id)
        if employee is None:
            return None
        project_id = effective_project_id(employee)
        if project_id not in self.project_ids:
            # Legacy field may point at an owned project while the embedded one does not
            owned = assigned_project_ids(employee) & self.project_ids
            project_id = min(owned) if owned else None
        return self.projects.get(project_id)


class TeamMembershipService(BaseService):
    """Service deriving supervisor -> projects -> employees."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.project_repo = ProjectRepository(session)
        self.employee_repo = EmployeeRepository(session)

    async def resolve_supervised_employees(self, supervisor_employee_id: int) -> TeamMembership:
        """
        Resolve the projects a supervisor owns and the employees on them.

        A supervisor with no projects gets empty sets. Employees with no
        project in either field are never included.
        """
        projects = await self.project_repo.list_by_supervisor(supervisor_employee_id)
        if not projects:
            logger.info(
                "Supervisor owns no projects",
                extra={"supervisor_id": supervisor_employee_id},
            )
            return TeamMembership(supervisor_id=supervisor_employee_id)

        project_ids = frozenset(p.id for p in projects)
        employees = await self.employee_repo.list_assigned_to_projects(project_ids)
        employees_by_id = {e.id: e for e in employees}

        membership = TeamMembership(
            supervisor_id=supervisor_employee_id,
            project_ids=project_ids,
            employee_ids=frozenset(employees_by_id),
            projects={p.id: p for p in projects},
            employees=employees_by_id,
        )
        logger.debug(
            "Resolved team membership",
            extra={
                "supervisor_id": supervisor_employee_id,
                "project_count": len(project_ids),
                "employee_count": len(membership.employee_ids),
            },
        )
        return membership
