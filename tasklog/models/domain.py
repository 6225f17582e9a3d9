"""Domain models - the task record managed by clients."""
from sqlalchemy import Column, String, Integer, DateTime

from tasklog.database import Base
from tasklog.utils.time import utc_now

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class Task(Base):
    """
    A task is created by POST, edited in place by PUT and physically removed by DELETE.

    Invariants enforced here:
    - id and created_at are assigned by the store and never change
    - Only title and description are writable (handled in service layer)
    """
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(String(DESCRIPTION_MAX_LENGTH), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
