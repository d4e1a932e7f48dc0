"""
Identity resolution and project assignment.
"""

import logging
from typing import FrozenSet, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ForbiddenError, NotFoundError, RequestValidationFailed
from app.services.base_service import BaseService
from app.db.repositories.employee_repository import EmployeeRepository
from app.db.repositories.project_repository import ProjectRepository
from app.models.employee import Employee

logger = logging.getLogger(__name__)


def effective_project_id(employee: Employee) -> Optional[int]:
    """
    Return the project an employee is assigned to, or None.

    The embedded ``current_project.id`` takes precedence over the legacy
    ``current_project_id``.
    """
    current = employee.current_project or {}
    embedded = current.get("id") if isinstance(current, dict) else None
    if embedded is not None:
        return int(embedded)
    if employee.current_project_id is not None:
        return int(employee.current_project_id)
    return None


def assigned_project_ids(employee: Employee) -> FrozenSet[int]:
    """Every project id recorded on the employee, in either field."""
    ids = set()
    current = employee.current_project or {}
    if isinstance(current, dict) and current.get("id") is not None:
        ids.add(int(current["id"]))
    if employee.current_project_id is not None:
        ids.add(int(employee.current_project_id))
    return frozenset(ids)


class IdentityService(BaseService):
    """Service mapping authenticated principals to employees."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.employee_repo = EmployeeRepository(session)
        self.project_repo = ProjectRepository(session)

    async def resolve_employee(self, principal_id: int) -> Employee:
        """Resolve the employee linked to ``principal_id`` or raise NotFoundError."""
        employee = await self.employee_repo.get_by_user_id(principal_id)
        if not employee:
            raise NotFoundError("Employee not found", details={"userId": principal_id})
        return employee

    async def get_employee(self, employee_id: int) -> Employee:
        employee = await self.employee_repo.get(employee_id)
        if not employee:
            raise NotFoundError("Employee not found", details={"employeeId": employee_id})
        return employee

    async def ensure_same_company(self, actor: Employee, employee_id: int) -> Employee:
        """Load an employee the actor may manage; other companies are off limits."""
        employee = await self.get_employee(employee_id)
        if employee.company_id != actor.company_id:
            raise ForbiddenError("Employee belongs to a different company", details={"employeeId": employee_id})
        return employee

    async def assign_project(self, employee_id: int, project_id: int, actor: Optional[Employee] = None) -> Employee:
        """
        Assign an employee to a project.

        When ``actor`` is given it must be the supervisor of the project,
        since the assignment decides who approves the employee's requests.

        Both assignment fields are written in the same flush so readers of
        either form agree. The legacy flat field is only written while
        WRITE_LEGACY_PROJECT_FIELD is enabled; otherwise it is cleared.
        """
        employee = await self.get_employee(employee_id)
        project = await self.project_repo.get(project_id)
        if not project:
            raise NotFoundError("Project not found", details={"projectId": project_id})
        if project.company_id != employee.company_id:
            raise RequestValidationFailed(
                "Project belongs to a different company",
                details={"projectId": project_id, "employeeId": employee_id},
            )
        if actor is not None and project.supervisor_id != actor.id:
            raise ForbiddenError(
                "Only the project supervisor can assign staff to it",
                details={"projectId": project_id, "employeeId": employee_id},
            )

        values = {
            "current_project": {"id": project.id, "name": project.name, "code": project.code},
            "current_project_id": project.id if settings.WRITE_LEGACY_PROJECT_FIELD else None,
        }
        employee = await self.employee_repo.update(employee_id, **values)
        await self.session.commit()

        logger.info(
            "Employee assigned to project",
            extra={"employee_id": employee_id, "project_id": project_id},
        )
        return employee

    async def clear_project(self, employee_id: int, actor: Optional[Employee] = None) -> Employee:
        """
        Remove an employee's project assignment in both fields.

        When ``actor`` is given it must supervise the employee's current project.
        """
        employee = await self.get_employee(employee_id)
        if actor is not None:
            project_id = effective_project_id(employee)
            project = await self.project_repo.get(project_id) if project_id is not None else None
            if project is None or project.supervisor_id != actor.id:
                raise ForbiddenError(
                    "Only the supervisor of the current project can clear the assignment",
                    details={"employeeId": employee_id, "projectId": project_id},
                )
        employee = await self.employee_repo.update(
            employee_id, current_project=None, current_project_id=None
        )
        await self.session.commit()
        logger.info("Employee project assignment cleared", extra={"employee_id": employee_id})
        return employee

