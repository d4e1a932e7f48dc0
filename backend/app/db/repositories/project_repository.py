"""
Project repository for database operations.
"""

from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.repositories.base_repository import BaseRepository
from app.models.project import Project


class ProjectRepository(BaseRepository[Project]):
    """Repository for project operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Project, session)

    async def list_by_supervisor(self, supervisor_id: int) -> List[Project]:
        """List projects owned by a supervisor."""
        result = await self.session.execute(
            select(Project)
            .where(Project.supervisor_id == supervisor_id)
            .order_by(Project.id)
        )
        return list(result.scalars().all())
