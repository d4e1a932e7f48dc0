"""
API middleware for authentication and common concerns.
Centralized authentication enforcement for all protected routes.

Tokens are verified upstream; requests reach this service with the
authenticated principal id in a trusted header.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db
from app.models.employee import Employee, EmployeeStatus
from app.services.identity_service import IdentityService

principal_header = APIKeyHeader(name=settings.PRINCIPAL_HEADER, auto_error=False)


async def require_authentication(
    request: Request,
    principal: str = Depends(principal_header),
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """
    Centralized authentication dependency.
    This should be used as a dependency on all protected routes.

    Usage:
        @router.get("/endpoint")
        async def my_endpoint(
            current_employee: Employee = Depends(require_authentication)
        ):
            ...

    Returns:
        Current authenticated Employee

    Raises:
        HTTPException: 401 if the principal header is missing or malformed,
            403 if the employee is not active
        NotFoundError: if no employee is linked to the principal
    """
    if not principal:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authenticated principal",
        )

    try:
        principal_id = int(principal)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid principal id",
        )

    employee = await IdentityService(db).resolve_employee(principal_id)

    if employee.status != EmployeeStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Employee account is not active. Status: {employee.status.value}",
        )

    request.state.employee_id = employee.id
    return employee
