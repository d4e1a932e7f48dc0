"""
Employee repository for database operations.
"""

from typing import Optional, List, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from app.db.repositories.base_repository import BaseRepository
from app.models.employee import Employee


class EmployeeRepository(BaseRepository[Employee]):
    """Repository for employee operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Employee, session)

    async def get_by_user_id(self, user_id: int) -> Optional[Employee]:
        """Get employee linked to an authentication principal."""
        result = await self.session.execute(
            select(Employee).where(Employee.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_assigned_to_projects(self, project_ids: Iterable[int]) -> List[Employee]:
        """
        List employees currently assigned to any of ``project_ids``.

        Matches the embedded ``current_project.id`` OR the legacy flat
        ``current_project_id``; both forms exist in persisted data.
        """
        project_ids = list(project_ids)
        if not project_ids:
            return []

        result = await self.session.execute(
            select(Employee)
            .where(
                or_(
                    Employee.current_project["id"].as_integer().in_(project_ids),
                    Employee.current_project_id.in_(project_ids),
                )
            )
            .order_by(Employee.id)
        )
        return list(result.scalars().unique().all())
