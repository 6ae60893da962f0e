"""Loan activation and monthly installment processing."""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from workforce_payroll.entities import (
    ApprovalRequest,
    AuditEntityType,
    Loan,
    LoanInstallment,
    LoanStatus,
    LoanType,
    RequestStatus,
    RequestType,
)
from workforce_payroll.errors import (
    ConcurrencyConflictError,
    HRError,
    NotFoundError,
    OperationResult,
)
from workforce_payroll.repositories.base import LoanRepository
from workforce_payroll.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class LoanService:
    """Service for the loan lifecycle: pending → active → closed."""

    def __init__(self, repository: LoanRepository, audit: AuditService):
        self.repository = repository
        self.audit = audit

    async def open_loan(
        self,
        employee_id: str,
        loan_amount: Decimal,
        total_installments: int,
        start_month: str,
        loan_type: LoanType = LoanType.INSTALLMENT,
        approval_request_id: str | None = None,
    ) -> OperationResult[Loan]:
        try:
            loan = Loan.open(employee_id, loan_amount, total_installments, start_month, loan_type)
        except HRError as exc:
            return OperationResult.failure(exc)
        loan.approval_request_id = approval_request_id
        await self.repository.add_loan(loan)
        return OperationResult.success(loan)

    async def apply_approval_outcome(
        self, loan_id: str, approved: bool, performed_by: str = "system"
    ) -> OperationResult[Loan]:
        """Activate an approved loan; a rejected one is closed without payments."""
        try:
            loan = await self._get(loan_id)
            if loan.status != LoanStatus.PENDING.value:
                return OperationResult.success(loan)
            new_status = LoanStatus.ACTIVE if approved else LoanStatus.CLOSED
            updated = replace(loan, status=new_status.value)
            await self._save(updated, expected_status=loan.status)
            await self.audit.record(
                AuditEntityType.LOAN,
                loan.loan_id,
                "activate" if approved else "close",
                performed_by,
                employee_id=loan.employee_id,
                details={"status": new_status.value},
            )
            return OperationResult.success(updated)
        except HRError as exc:
            return OperationResult.failure(exc)

    async def handle_approval_decision(self, request: ApprovalRequest) -> None:
        """Approval-engine listener: applies the outcome of a loan request."""
        if request.request_type != RequestType.LOAN.value:
            return
        loan_id = request.request_data.get("loan_id")
        if not loan_id:
            return
        if request.status not in (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value):
            return
        result = await self.apply_approval_outcome(
            loan_id, request.status == RequestStatus.APPROVED.value
        )
        if not result.ok:
            logger.warning("Loan %s not updated: %s", loan_id, result.message)

    async def process_installment(self, loan_id: str) -> OperationResult[Loan]:
        """Record one paid installment; the loan closes when none remain.

        Non-active loans are returned unchanged.
        """
        try:
            loan = await self._get(loan_id)
            if loan.status != LoanStatus.ACTIVE.value:
                return OperationResult.success(loan)
            remaining = max(0, loan.remaining_installments - 1)
            updated = replace(
                loan,
                remaining_installments=remaining,
                status=LoanStatus.CLOSED.value if remaining == 0 else LoanStatus.ACTIVE.value,
            )
            await self._save(updated, expected_status=LoanStatus.ACTIVE.value)
            if remaining == 0:
                logger.info("Loan %s fully repaid", loan_id)
            return OperationResult.success(updated)
        except HRError as exc:
            return OperationResult.failure(exc)

    async def active_installments(self, employee_id: str | None = None) -> list[LoanInstallment]:
        loans = await self.repository.list_active_loans(employee_id)
        return [
            LoanInstallment(
                loan_id=loan.loan_id,
                employee_id=loan.employee_id,
                installment_amount=loan.installment_amount,
                remaining_installments=loan.remaining_installments,
            )
            for loan in loans
        ]

    async def _get(self, loan_id: str) -> Loan:
        loan = await self.repository.get_loan(loan_id)
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        return loan

    async def _save(self, loan: Loan, expected_status: str) -> None:
        if not await self.repository.update_loan(loan, expected_status):
            raise ConcurrencyConflictError(
                f"Loan {loan.loan_id} was changed concurrently", code="stale_write"
            )
