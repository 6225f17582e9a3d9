"""
Append-only audit trail for task mutations.

One entry per successful mutation, stamped with the service clock rather
than the store's. Entries are never updated or deleted.
"""
import logging
from typing import Any, Dict, Optional

from tasklog.models.audit import AuditLog
from tasklog.models.enums import AuditAction
from tasklog.services.errors import StoreError
from tasklog.services.store import Store
from tasklog.utils.time import utc_now

logger = logging.getLogger("tasklog.service")


def changed_fields(current: Any, incoming: Dict[str, str]) -> Dict[str, str]:
    """Return the subset of ``incoming`` whose value differs from the stored record."""
    return {
        field: value
        for field, value in incoming.items()
        if getattr(current, field) != value
    }


class AuditTrail:
    """Writes audit entries through the store."""

    def __init__(self, store: Store):
        self.store = store

    async def record(
        self,
        action: AuditAction,
        task_id: Optional[int],
        updated_content: Optional[Dict[str, str]],
    ) -> Optional[AuditLog]:
        """
        Append one entry.

        Best-effort: the mutation it describes has already committed, so a
        failed write is logged and None is returned instead of raising.
        """
        try:
            return await self.store.insert(AuditLog, {
                "timestamp": utc_now(),
                "action": action.value,
                "task_id": task_id,
                "updated_content": updated_content,
            })
        except StoreError:
            logger.error(
                "Audit entry %r for task %s was not written", action.value, task_id, exc_info=True
            )
            return None
