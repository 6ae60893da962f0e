"""Tests for the loan lifecycle."""

from decimal import Decimal

import pytest

pytestmark = pytest.mark.asyncio


class TestLoanService:
    """Test pending → active → closed."""

    async def test_open_loan_splits_installments(self, container):
        result = await container.loans.open_loan("emp-worker", Decimal("1000"), 3, "2024-04")

        loan = result.value
        assert loan.status == "pending"
        assert loan.installment_amount == Decimal("333.33")
        assert loan.remaining_installments == 3

    async def test_open_loan_requires_installments(self, container):
        result = await container.loans.open_loan("emp-worker", Decimal("1000"), 0, "2024-04")
        assert result.error_code == "validation_error"

    async def test_installments_close_loan(self, container):
        loan = (await container.loans.open_loan("emp-worker", Decimal("500"), 2, "2024-04")).value
        await container.loans.apply_approval_outcome(loan.loan_id, approved=True)

        first = await container.loans.process_installment(loan.loan_id)
        second = await container.loans.process_installment(loan.loan_id)
        third = await container.loans.process_installment(loan.loan_id)

        assert first.value.remaining_installments == 1
        assert first.value.status == "active"
        assert second.value.status == "closed"
        assert third.value.remaining_installments == 0

    async def test_pending_loan_has_no_installments(self, container):
        await container.loans.open_loan("emp-worker", Decimal("500"), 2, "2024-04")
        assert await container.loans.active_installments("emp-worker") == []

    async def test_outcome_applied_once(self, container):
        loan = (await container.loans.open_loan("emp-worker", Decimal("500"), 2, "2024-04")).value

        await container.loans.apply_approval_outcome(loan.loan_id, approved=True)
        repeated = await container.loans.apply_approval_outcome(loan.loan_id, approved=False)

        assert repeated.value.status == "active"
        installments = await container.loans.active_installments("emp-worker")
        assert [i.installment_amount for i in installments] == [Decimal("250.00")]

    async def test_unknown_loan(self, container):
        result = await container.loans.process_installment("missing")
        assert result.error_code == "not_found"
