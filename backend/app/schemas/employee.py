"""
Employee Pydantic schemas for request/response validation.
"""

from pydantic import Field
from typing import Optional

from app.models.employee import EmployeeStatus
from app.schemas.common import CamelModel


class CurrentProject(CamelModel):
    """Embedded project pointer stored on the employee."""
    id: int
    name: Optional[str] = None
    code: Optional[str] = None


class EmployeeResponse(CamelModel):
    """Schema for employee response."""
    id: int
    company_id: int
    user_id: Optional[int] = None
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: EmployeeStatus
    current_project: Optional[CurrentProject] = None
    current_project_id: Optional[int] = None
    effective_project_id: Optional[int] = None


class ProjectAssignment(CamelModel):
    """Schema for assigning an employee to a project; null clears the assignment."""
    project_id: Optional[int] = Field(None, gt=0)
