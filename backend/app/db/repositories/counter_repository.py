"""
Counter repository - allocates ids from named sequences.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite

from app.models.counter import Counter

_DIALECT_INSERT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class CounterRepository:
    """Repository for named sequence counters."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _increment(self, name: str):
        result = await self.session.execute(
            update(Counter)
            .where(Counter.name == name)
            .values(seq=Counter.seq + 1)
            .returning(Counter.seq)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def ensure(self, name: str) -> None:
        """Create the counter row at zero unless it already exists."""
        dialect = self.session.get_bind().dialect.name
        insert = _DIALECT_INSERT[dialect]
        await self.session.execute(
            insert(Counter)
            .values(name=name, seq=0)
            .on_conflict_do_nothing(index_elements=[Counter.name])
        )

    async def next_value(self, name: str) -> int:
        """
        Atomically increment and return the next value of ``name``.

        The increment is a single UPDATE ... RETURNING, so concurrent
        callers serialize on the counter row. A missing row is created with
        INSERT ... ON CONFLICT DO NOTHING, so concurrent first uses both
        fall through to the increment instead of failing.
        """
        value = await self._increment(name)
        if value is not None:
            return value

        await self.ensure(name)
        return await self._increment(name)
