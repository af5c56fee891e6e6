"""
Monitor model.

Only the columns needed to count a user's monitors against tier quota.
Check execution lives outside this package.
"""

import uuid

from sqlalchemy import Boolean, Column, Integer, String

from heartbeat.db_base import Base
from heartbeat.models.base import TimestampMixin


class Monitor(Base, TimestampMixin):
    """A monitored URL owned by a user."""

    __tablename__ = "monitors"

    id = Column(
        String(255),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    url = Column(String(2048), nullable=False)
    interval_seconds = Column(Integer, nullable=False, default=300)
    enabled = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Monitor(id={self.id}, user_id={self.user_id}, name={self.name})>"
