"""
Shared repository for the approval request families.
All status changes go through ``transition``, a single conditional UPDATE.
"""

from datetime import date, datetime, time
from typing import Optional, List, Iterable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, case, literal

from app.db.repositories.base_repository import BaseRepository
from app.models.request_common import RequestStatus
from app.utils.clock import utcnow

RequestModel = TypeVar("RequestModel")


class ApprovalRequestRepository(BaseRepository[RequestModel]):
    """Repository with lifecycle-aware queries for one request family."""

    def __init__(self, model, session: AsyncSession):
        super().__init__(model, session)

    def _scope(self, query):
        """Restrict a query to this repository's family. Overridden by subclasses."""
        return query

    def _scope_criteria(self) -> list:
        return []

    async def get(self, id: int):
        """Get a request of this family by ID."""
        result = await self.session.execute(
            self._scope(select(self.model).where(self.model.id == id))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_employee(
        self,
        employee_id: int,
        status: Optional[RequestStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[RequestModel]:
        """List requests submitted by an employee, newest first."""
        query = self._scope(select(self.model).where(self.model.employee_id == employee_id))
        if status is not None:
            query = query.where(self.model.status == status)
        if from_date is not None:
            query = query.where(self.model.created_at >= datetime.combine(from_date, time.min))
        if to_date is not None:
            query = query.where(self.model.created_at <= datetime.combine(to_date, time.max))

        result = await self.session.execute(
            query.order_by(self.model.created_at.desc(), self.model.id.desc())
        )
        return list(result.scalars().all())

    async def list_pending_for_employees(self, employee_ids: Iterable[int]) -> List[RequestModel]:
        """List PENDING requests whose submitter is in ``employee_ids``."""
        employee_ids = list(employee_ids)
        if not employee_ids:
            return []
        result = await self.session.execute(
            self._scope(
                select(self.model).where(
                    self.model.employee_id.in_(employee_ids),
                    self.model.status == RequestStatus.PENDING,
                )
            ).order_by(self.model.created_at.desc(), self.model.id.desc())
        )
        return list(result.scalars().all())

    async def count_pending_for_employees(
        self,
        employee_ids: Iterable[int],
        created_before: Optional[datetime] = None,
    ) -> int:
        """Count PENDING requests for ``employee_ids``, optionally only older ones."""
        employee_ids = list(employee_ids)
        if not employee_ids:
            return 0
        query = select(func.count()).select_from(self.model).where(
            self.model.employee_id.in_(employee_ids),
            self.model.status == RequestStatus.PENDING,
            *self._scope_criteria(),
        )
        if created_before is not None:
            query = query.where(self.model.created_at < created_before)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def transition(
        self,
        id: int,
        from_status: RequestStatus,
        to_status: RequestStatus,
        **values,
    ) -> bool:
        """
        Move a request from ``from_status`` to ``to_status`` in one statement.

        Returns False when no row matched, i.e. the request is missing or
        some other writer already moved it out of ``from_status``.
        """
        result = await self.session.execute(
            update(self.model)
            .where(
                self.model.id == id,
                self.model.status == from_status,
                *self._scope_criteria(),
            )
            .values(status=to_status, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount > 0

    def appended_remarks(self, text: str):
        """SQL expression for the remarks column with ``text`` added as a new line."""
        remarks = self.model.remarks
        return case(
            (remarks.is_(None), literal(text)),
            (remarks == "", literal(text)),
            else_=remarks + literal("\n") + literal(text),
        )

    async def append_remarks(self, id: int, text: str) -> bool:
        """Append a line to the remarks column without rewriting prior remarks."""
        result = await self.session.execute(
            update(self.model)
            .where(self.model.id == id, *self._scope_criteria())
            .values(remarks=self.appended_remarks(text), updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount > 0

    async def update_pending(self, id: int, **values) -> bool:
        """Update fields of a request only while it is still PENDING."""
        result = await self.session.execute(
            update(self.model)
            .where(
                self.model.id == id,
                self.model.status == RequestStatus.PENDING,
                *self._scope_criteria(),
            )
            .values(updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount > 0
