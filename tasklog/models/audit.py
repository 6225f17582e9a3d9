"""
Audit log model - the append-only trail of task mutations.

Entries are written by the service layer only and exposed read-only
through the logs listing.
"""
from sqlalchemy import Column, String, Integer, DateTime, JSON, Text

from tasklog.database import Base


class AuditLog(Base):
    """
    Immutable audit entry for one successful task mutation.

    Invariants:
    - Once written, never edited or deleted
    - Append-only, exactly one per successful mutation
    - task_id is a plain back-reference, not a foreign key (deleted tasks keep their history)
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)  # Set by the service clock
    action = Column(String, nullable=False, index=True)  # One of AuditAction
    task_id = Column(Integer, nullable=True, index=True)
    updated_content = Column(JSON, nullable=True)  # Field name -> new value; null for deletions
    notes = Column(Text, nullable=True)  # Manual annotation only
