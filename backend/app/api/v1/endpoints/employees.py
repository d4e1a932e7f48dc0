"""
Employee API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.api.v1.middleware import require_authentication
from app.controllers.employee_controller import EmployeeController
from app.models.employee import Employee
from app.schemas.employee import EmployeeResponse, ProjectAssignment

router = APIRouter()


@router.get("/me", response_model=EmployeeResponse)
async def get_me(
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> EmployeeResponse:
    """Get the employee linked to the authenticated principal."""
    controller = EmployeeController(db)
    return await controller.get_me(current_employee)


@router.put("/{employee_id}/current-project", response_model=EmployeeResponse)
async def set_current_project(
    employee_id: int,
    assignment: ProjectAssignment,
    current_employee: Employee = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> EmployeeResponse:
    """
    Assign an employee to a project, or clear the assignment with a null projectId.
    Only the supervisor of the target project (when clearing, of the current
    project) may change an assignment.
    """
    controller = EmployeeController(db)
    return await controller.set_current_project(current_employee, employee_id, assignment.project_id)
