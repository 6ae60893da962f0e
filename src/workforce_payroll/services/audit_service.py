"""Audit trail recording and queries."""

from __future__ import annotations

import logging
from typing import Any

from workforce_payroll.entities import AuditEntityType, AuditLogEntry
from workforce_payroll.repositories.base import AuditRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Append-only audit log shared by payroll, approvals and config."""

    def __init__(self, repository: AuditRepository):
        self.repository = repository

    async def record(
        self,
        entity_type: AuditEntityType | str,
        entity_id: str,
        action: str,
        performed_by: str,
        performed_by_name: str | None = None,
        step: int | None = None,
        request_type: str | None = None,
        employee_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            entity_type=entity_type.value if isinstance(entity_type, AuditEntityType) else entity_type,
            entity_id=entity_id,
            action=action,
            performed_by=performed_by,
            performed_by_name=performed_by_name,
            step=step,
            request_type=request_type,
            employee_id=employee_id,
            details=details or {},
        )
        stored = await self.repository.append(entry)
        logger.debug("Audit %s %s/%s by %s", action, entry.entity_type, entity_id, performed_by)
        return stored

    async def payroll_trail(self, payroll_month_id: str) -> list[AuditLogEntry]:
        """Payroll month audit entries, newest first."""
        return await self.repository.list_entries(
            entity_type=AuditEntityType.PAYROLL_MONTH.value, entity_id=payroll_month_id
        )

    async def request_trail(self, request_id: str) -> list[AuditLogEntry]:
        return await self.repository.list_entries(
            entity_type=AuditEntityType.APPROVAL_REQUEST.value, entity_id=request_id
        )

    async def by_employee(self, employee_id: str) -> list[AuditLogEntry]:
        return await self.repository.list_entries(employee_id=employee_id)

    async def by_performer(self, performed_by: str) -> list[AuditLogEntry]:
        return await self.repository.list_entries(performed_by=performed_by)

    async def by_action(self, action: str) -> list[AuditLogEntry]:
        return await self.repository.list_entries(action=action)
