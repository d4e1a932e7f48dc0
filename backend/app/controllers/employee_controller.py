"""
Employee controller.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.controllers.base_controller import BaseController
from app.services.identity_service import IdentityService, effective_project_id
from app.models.employee import Employee
from app.schemas.employee import EmployeeResponse


class EmployeeController(BaseController):
    """Controller for employee identity and project assignment."""

    def __init__(self, session: AsyncSession):
        self.identity_service = IdentityService(session)

    @staticmethod
    def to_response(employee: Employee) -> EmployeeResponse:
        response = EmployeeResponse.model_validate(employee)
        return response.model_copy(update={"effective_project_id": effective_project_id(employee)})

    async def get_me(self, employee: Employee) -> EmployeeResponse:
        """Return the resolved identity of the caller."""
        return self.to_response(employee)

    async def set_current_project(self, actor: Employee, employee_id: int, project_id: Optional[int]) -> EmployeeResponse:
        """Assign or clear an employee's current project; the caller must supervise the project."""
        await self.identity_service.ensure_same_company(actor, employee_id)
        if project_id is None:
            employee = await self.identity_service.clear_project(employee_id, actor=actor)
        else:
            employee = await self.identity_service.assign_project(employee_id, project_id, actor=actor)
        return self.to_response(employee)
