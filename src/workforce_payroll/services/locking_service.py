"""Month-level write locking and the final payroll lock (finalized → locked)."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import AsyncGenerator, Callable
from uuid import uuid4

from workforce_payroll.calculators.payroll_calculator import month_range
from workforce_payroll.entities import AuditEntityType, PayrollAuditAction, PayrollMonth
from workforce_payroll.errors import (
    ConcurrencyConflictError,
    HRError,
    NotFoundError,
    OperationResult,
)
from workforce_payroll.repositories.base import MAX_WRITE_CHUNK, PayrollRepository, chunked
from workforce_payroll.services.audit_service import AuditService
from workforce_payroll.services.state_machine import (
    PayrollMonthStateMachine,
    PayrollMonthStatus,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def hold_month_lock(
    repository: PayrollRepository, month: str
) -> AsyncGenerator[str, None]:
    """Hold the single-writer lock of a payroll month for the enclosed block.

    Fails fast with ConcurrencyConflictError when another operation holds it.
    """
    holder = uuid4().hex
    acquired = await repository.try_acquire_month_lock(month, holder)
    if not acquired:
        raise ConcurrencyConflictError(
            f"Payroll {month} is being processed by another operation",
            code="month_busy",
        )
    try:
        yield holder
    finally:
        await repository.release_month_lock(month, holder)


class PayrollLocker:
    """Permanently freezes a finalized payroll month.

    Locking:
    1. Marks every record of the month as locked (idempotent)
    2. Moves the month finalized → locked with a compare-and-set write
    3. Records a ``lock`` audit entry

    After this no service or repository accepts changes to the month.
    """

    def __init__(
        self,
        repository: PayrollRepository,
        audit: AuditService,
        chunk_size: int = MAX_WRITE_CHUNK,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repository = repository
        self.audit = audit
        self.chunk_size = chunk_size
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def lock(self, month: str, locked_by: str) -> OperationResult[PayrollMonth]:
        try:
            month_range(month)
            async with hold_month_lock(self.repository, month):
                return OperationResult.success(await self._lock(month, locked_by))
        except HRError as exc:
            logger.warning("Lock of payroll %s rejected: %s", month, exc)
            return OperationResult.failure(exc)

    async def _lock(self, month: str, locked_by: str) -> PayrollMonth:
        payroll_month = await self.repository.get_month(month)
        if payroll_month is None:
            raise NotFoundError(f"Payroll month {month} not found")

        PayrollMonthStateMachine.validate_transition(
            payroll_month.status, PayrollMonthStatus.LOCKED
        )

        records = await self.repository.list_records(payroll_month.month_id)
        for chunk in chunked([r.record_id for r in records], self.chunk_size):
            await self.repository.stamp_records(chunk, None, lock=True)

        locked = replace(
            payroll_month,
            status=PayrollMonthStatus.LOCKED.value,
            locked_at=self.clock(),
            locked_by=locked_by,
        )
        if not await self.repository.update_month(
            locked, expected_status=PayrollMonthStatus.FINALIZED.value
        ):
            raise ConcurrencyConflictError(
                f"Payroll {month} changed while locking", code="stale_write"
            )

        await self.audit.record(
            AuditEntityType.PAYROLL_MONTH,
            payroll_month.month_id,
            PayrollAuditAction.LOCK.value,
            locked_by,
            details={"month": month, "records_locked": len(records)},
        )
        logger.info("Payroll %s locked by %s", month, locked_by)
        return locked
