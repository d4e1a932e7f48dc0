"""
Named sequence counters used to allocate request ids.
"""

from sqlalchemy import Column, Integer, String

from app.db.base import Base


class Counter(Base):
    """A named monotonically increasing sequence."""

    __tablename__ = "counters"

    name = Column(String(50), primary_key=True)
    seq = Column(Integer, nullable=False, default=0)


# Shared by every request family so request ids are unique across them
REQUEST_COUNTER = "request"
