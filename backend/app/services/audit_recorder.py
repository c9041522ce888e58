"""Audit Recorder: append-only log of every committed mutating action.

Invariants:
    - Called only AFTER the primary transition committed
    - Inserts only; never updates or deletes audit_logs rows
    - A failed audit write is logged and swallowed: it never fails the operation
    - metadata stored as JSON-safe values (Decimal -> str, UUID -> str)

Design Decisions:
    - Shares the request's AsyncSession: the primary transaction is already
      committed, so the audit insert runs in its own short transaction
    - Callers snapshot their response before record(): a rollback here expires
      every ORM object in the session
"""

import logging
from uuid import UUID

from pydantic_core import to_jsonable_python
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import AuditAction
from app.models.audit_log import AuditLogEntry

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Best-effort audit trail writer."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        *,
        actor_id: UUID | None,
        action: AuditAction,
        target_table: str,
        target_id: UUID | str,
        metadata: dict | None = None,
    ) -> bool:
        """Append one entry. Returns False (after logging) if the write failed."""
        try:
            await self._write(AuditLogEntry(
                actor_id=actor_id,
                action=action.value,
                target_table=target_table,
                target_id=str(target_id),
                metadata_=to_jsonable_python(metadata or {}),
            ))
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Audit write failed for {action.value} on {target_table}/{target_id}: {e}",
                extra={"action": action.value, "actor_id": actor_id, "error_code": "AUDIT_WRITE_FAILED"},
            )
            return False
        return True

    async def _write(self, entry: AuditLogEntry) -> None:
        self.db.add(entry)
        await self.db.commit()
