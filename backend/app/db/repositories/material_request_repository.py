"""
Material/tool request repository.
One table holds both kinds; an instance is scoped to one request type.
"""

from datetime import datetime
from typing import Optional, List, Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.db.repositories.request_repository import ApprovalRequestRepository
from app.models.material_request import MaterialRequest, MaterialRequestType
from app.models.request_common import RequestStatus


class MaterialRequestRepository(ApprovalRequestRepository[MaterialRequest]):
    """Repository for material and tool requests."""

    def __init__(self, session: AsyncSession, request_type: Optional[MaterialRequestType] = None):
        super().__init__(MaterialRequest, session)
        self.request_type = request_type

    def _scope_criteria(self) -> list:
        if self.request_type is None:
            return []
        return [MaterialRequest.request_type == self.request_type]

    def _scope(self, query):
        return query.where(*self._scope_criteria()) if self.request_type else query

    async def list_pending_for_projects(self, project_ids: Iterable[int]) -> List[MaterialRequest]:
        """List PENDING requests raised against any of ``project_ids``."""
        project_ids = list(project_ids)
        if not project_ids:
            return []
        result = await self.session.execute(
            self._scope(
                select(MaterialRequest).where(
                    MaterialRequest.project_id.in_(project_ids),
                    MaterialRequest.status == RequestStatus.PENDING,
                )
            ).order_by(MaterialRequest.created_at.desc(), MaterialRequest.id.desc())
        )
        return list(result.scalars().all())

    async def count_pending_for_projects(
        self,
        project_ids: Iterable[int],
        created_before: Optional[datetime] = None,
    ) -> int:
        """Count PENDING requests for ``project_ids``, optionally only older ones."""
        project_ids = list(project_ids)
        if not project_ids:
            return 0
        query = select(func.count()).select_from(MaterialRequest).where(
            MaterialRequest.project_id.in_(project_ids),
            MaterialRequest.status == RequestStatus.PENDING,
            *self._scope_criteria(),
        )
        if created_before is not None:
            query = query.where(MaterialRequest.created_at < created_before)
        result = await self.session.execute(query)
        return result.scalar_one()
