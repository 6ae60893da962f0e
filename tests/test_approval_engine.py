"""Tests for the approval workflow engine, escalation and decision listeners."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from workforce_payroll.entities import ApprovalDelegation, AutoApproveThreshold
from workforce_payroll.services.access import ActorContext

pytestmark = pytest.mark.asyncio

LEAVE = {"leave_type": "annual", "start_date": "2024-03-20", "end_date": "2024-03-21", "days": 2}


def march_delegation(from_id: str, to_id: str, **kwargs) -> ApprovalDelegation:
    return ApprovalDelegation(
        from_employee_id=from_id,
        from_employee_name=from_id,
        to_employee_id=to_id,
        to_employee_name=to_id,
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 31),
        **kwargs,
    )


@pytest.fixture
def engine(container):
    return container.approvals


@pytest_asyncio.fixture
async def leave_request(engine, worker):
    result = await engine.create_request(worker, "leave", "emp-worker", LEAVE)
    assert result.ok
    return result.value


class TestCreateRequest:
    """Test filing requests."""

    async def test_create_snapshots_chain(self, engine, worker, container):
        result = await engine.create_request(worker, "leave", "emp-worker", LEAVE)

        assert result.ok
        request = result.value
        assert request.status == "pending"
        assert request.current_step == 0
        assert [s.approver_employee_id for s in request.approval_chain] == [
            "emp-super",
            "emp-manager",
            "emp-hr",
        ]
        assert [h.action for h in request.history] == ["created"]
        assert request.department_id == "dep-prod"

        trail = await container.audit.request_trail(request.request_id)
        assert [e.action for e in trail] == ["created"]

    async def test_employee_cannot_file_for_others(self, engine, worker):
        result = await engine.create_request(worker, "leave", "emp-daily", LEAVE)
        assert result.error_code == "not_authorized"

    async def test_hr_files_for_others(self, engine, hr_officer):
        result = await engine.create_request(hr_officer, "overtime", "emp-daily", {"hours": 3})
        assert result.ok
        assert result.value.employee_name == "Karim Daily"

    async def test_unknown_type(self, engine, worker):
        result = await engine.create_request(worker, "bonus", "emp-worker", {})
        assert result.error_code == "unknown_request_type"

    async def test_unknown_employee(self, engine, hr_officer):
        result = await engine.create_request(hr_officer, "leave", "emp-ghost", LEAVE)
        assert result.error_code == "not_found"

    async def test_auto_approve(self, engine, worker, config_repository):
        config_repository.approval_settings = replace(
            config_repository.approval_settings,
            auto_approve_thresholds=(AutoApproveThreshold("overtime", "hours", Decimal("2")),),
        )

        small = await engine.create_request(worker, "overtime", "emp-worker", {"hours": 1.5})
        large = await engine.create_request(worker, "overtime", "emp-worker", {"hours": 4})

        assert small.value.status == "approved"
        assert small.value.approval_chain == ()
        assert small.value.history[0].action == "auto_approved"
        assert small.value.history[0].performed_by == "system"
        assert large.value.status == "pending"

    async def test_delegation_stamped_at_creation(self, engine, worker, supervisor):
        await engine.add_delegation(supervisor, march_delegation("emp-super", "emp-exec"))

        result = await engine.create_request(worker, "leave", "emp-worker", LEAVE)

        assert result.value.approval_chain[0].delegated_to == "emp-exec"


class TestDecisions:
    """Test approve and reject through the chain."""

    async def test_full_chain_approval(self, engine, leave_request, supervisor, manager, hr_officer):
        request_id = leave_request.request_id

        first = await engine.approve(request_id, supervisor, notes="ok")
        assert first.value.status == "in_progress"
        assert first.value.current_step == 1
        assert first.value.version == 1
        assert first.value.approval_chain[0].acted_by == "emp-super"

        await engine.approve(request_id, manager)
        final = await engine.approve(request_id, hr_officer)

        assert final.ok
        assert final.value.status == "approved"
        assert final.value.current_step == 3
        assert [h.action for h in final.value.history] == [
            "created",
            "approved",
            "approved",
            "approved",
        ]

    async def test_wrong_approver_rejected(self, engine, leave_request, manager):
        result = await engine.approve(leave_request.request_id, manager)
        assert result.error_code == "not_authorized"

    async def test_explicit_later_step_out_of_order(self, engine, leave_request, manager):
        result = await engine.approve(leave_request.request_id, manager, step=1)
        assert result.error_code == "step_out_of_order"

    async def test_reject_closes_request(self, engine, leave_request, supervisor, manager):
        rejected = await engine.reject(leave_request.request_id, supervisor, notes="busy season")

        assert rejected.value.status == "rejected"
        assert rejected.value.current_step == 0
        assert rejected.value.approval_chain[0].status == "rejected"

        again = await engine.approve(leave_request.request_id, manager, step=1)
        assert again.error_code == "request_closed"

    async def test_hr_acts_on_final_step_on_behalf(self, engine, leave_request, supervisor, manager):
        other_hr = ActorContext.from_claims("emp-hr2", "Second HR", ["approval.manage"])
        await engine.approve(leave_request.request_id, supervisor)
        await engine.approve(leave_request.request_id, manager)

        result = await engine.approve(leave_request.request_id, other_hr)

        assert result.value.status == "approved"
        assert result.value.history[-1].on_behalf_of == "emp-hr"

    async def test_admin_override_approves_remaining_steps(self, engine, leave_request, admin):
        result = await engine.approve(leave_request.request_id, admin, notes="urgent")

        assert result.value.status == "approved"
        assert all(s.status == "approved" for s in result.value.approval_chain)
        assert result.value.history[-1].action == "admin_override"

    async def test_admin_override_reject(self, engine, leave_request, admin):
        result = await engine.reject(leave_request.request_id, admin)

        assert result.value.status == "rejected"
        assert [s.status for s in result.value.approval_chain] == [
            "rejected",
            "pending",
            "pending",
        ]

    async def test_stale_write(self, engine, leave_request, supervisor, repositories, monkeypatch):
        stale = await repositories.approvals.get_request(leave_request.request_id)
        await engine.approve(leave_request.request_id, supervisor)

        async def stale_get(request_id):
            return stale

        monkeypatch.setattr(repositories.approvals, "get_request", stale_get)
        result = await engine.approve(leave_request.request_id, supervisor)

        assert result.error_code == "stale_write"

    async def test_unknown_request(self, engine, supervisor):
        result = await engine.approve("missing", supervisor)
        assert result.error_code == "not_found"

    async def test_decisions_are_audited(self, engine, leave_request, supervisor, container):
        await engine.approve(leave_request.request_id, supervisor)

        trail = await container.audit.request_trail(leave_request.request_id)

        assert [e.action for e in trail] == ["approved", "created"]
        assert trail[0].step == 0
        assert trail[0].details == {"previous_status": "pending", "new_status": "in_progress"}
        assert await container.audit.by_performer("emp-super") == [trail[0]]


class TestDelegation:
    """Test acting through delegations."""

    async def test_delegate_approves_on_behalf(self, engine, leave_request, supervisor):
        await engine.add_delegation(supervisor, march_delegation("emp-super", "emp-exec"))
        delegate = ActorContext.from_claims("emp-exec", "Laila Executive")

        pending = await engine.pending_for_approver("emp-exec")
        result = await engine.approve(leave_request.request_id, delegate)

        assert [r.request_id for r in pending] == [leave_request.request_id]
        assert result.ok
        assert result.value.history[-1].on_behalf_of == "emp-super"

    async def test_deactivated_delegation_revokes_stamped_delegate(
        self, engine, repositories, worker, supervisor
    ):
        await engine.add_delegation(supervisor, march_delegation("emp-super", "emp-exec"))
        created = await engine.create_request(worker, "leave", "emp-worker", LEAVE)
        assert created.value.approval_chain[0].delegated_to == "emp-exec"
        repositories.approvals.delegations[0] = replace(
            repositories.approvals.delegations[0], is_active=False
        )

        result = await engine.approve(created.value.request_id, ActorContext.from_claims("emp-exec"))

        assert result.error_code == "not_authorized"
        assert await engine.pending_for_approver("emp-exec") == []

    async def test_expired_delegation_revokes_stamped_delegate(
        self, engine, clock, worker, supervisor
    ):
        await engine.add_delegation(supervisor, march_delegation("emp-super", "emp-exec"))
        created = await engine.create_request(worker, "leave", "emp-worker", LEAVE)
        clock.advance(days=30)

        result = await engine.approve(created.value.request_id, ActorContext.from_claims("emp-exec"))

        assert result.error_code == "not_authorized"

    async def test_disabling_delegation_revokes_stamped_delegate(
        self, engine, config_repository, worker, supervisor
    ):
        await engine.add_delegation(supervisor, march_delegation("emp-super", "emp-exec"))
        created = await engine.create_request(worker, "leave", "emp-worker", LEAVE)
        config_repository.approval_settings = replace(
            config_repository.approval_settings, allow_delegation=False
        )

        result = await engine.approve(created.value.request_id, ActorContext.from_claims("emp-exec"))
        own = await engine.approve(created.value.request_id, supervisor)

        assert result.error_code == "not_authorized"
        assert await engine.pending_for_approver("emp-exec") == []
        assert own.ok

    async def test_delegation_limited_to_request_types(self, engine, leave_request, supervisor):
        await engine.add_delegation(
            supervisor, march_delegation("emp-super", "emp-exec", request_types=("loan",))
        )
        delegate = ActorContext.from_claims("emp-exec")

        result = await engine.approve(leave_request.request_id, delegate)

        assert result.error_code == "not_authorized"

    async def test_only_delegator_or_hr_may_delegate(self, engine, worker, hr_officer):
        denied = await engine.add_delegation(worker, march_delegation("emp-super", "emp-exec"))
        allowed = await engine.add_delegation(hr_officer, march_delegation("emp-super", "emp-exec"))

        assert denied.error_code == "not_authorized"
        assert allowed.ok

    async def test_invalid_delegations(self, engine, supervisor):
        backwards = replace(
            march_delegation("emp-super", "emp-exec"), end_date=date(2024, 2, 1)
        )
        to_self = march_delegation("emp-super", "emp-super")

        assert (await engine.add_delegation(supervisor, backwards)).error_code == "validation_error"
        assert (await engine.add_delegation(supervisor, to_self)).error_code == "validation_error"

    async def test_delegation_disabled(self, engine, supervisor, config_repository):
        config_repository.approval_settings = replace(
            config_repository.approval_settings, allow_delegation=False
        )
        result = await engine.add_delegation(supervisor, march_delegation("emp-super", "emp-exec"))
        assert result.error_code == "delegation_disabled"


class TestCancel:
    """Test cancellation rules."""

    async def test_owner_cancels_untouched_request(self, engine, leave_request, worker):
        result = await engine.cancel(leave_request.request_id, worker, notes="plans changed")

        assert result.value.status == "cancelled"
        assert result.value.history[-1].action == "cancelled"

    async def test_owner_cannot_cancel_after_action(self, engine, leave_request, worker, supervisor):
        await engine.approve(leave_request.request_id, supervisor)

        result = await engine.cancel(leave_request.request_id, worker)

        assert result.error_code == "step_not_pending"

    async def test_hr_cancels_in_progress(self, engine, leave_request, supervisor, hr_officer):
        await engine.approve(leave_request.request_id, supervisor)

        result = await engine.cancel(leave_request.request_id, hr_officer)

        assert result.value.status == "cancelled"

    async def test_cancel_closed_request(self, engine, leave_request, worker):
        await engine.cancel(leave_request.request_id, worker)

        result = await engine.cancel(leave_request.request_id, worker)

        assert result.error_code == "request_closed"


class TestEscalation:
    """Test escalation of idle requests."""

    async def test_idle_step_is_skipped(self, container, leave_request, clock):
        clock.advance(days=4)

        report = await container.escalator.process_escalations()

        assert report.processed == 1
        assert report.escalated == [leave_request.request_id]
        request = await container.approvals.get_request(leave_request.request_id)
        assert request.status == "in_progress"
        assert request.current_step == 1
        assert request.approval_chain[0].status == "skipped"
        assert request.approval_chain[0].acted_by == "system"
        assert request.history[-1].action == "escalated"

        trail = await container.audit.request_trail(leave_request.request_id)
        assert trail[0].details["skipped_approver"] == "emp-super"
        assert trail[0].details["is_last_step"] is False

    async def test_recent_request_untouched(self, container, leave_request, clock):
        clock.advance(days=2)

        report = await container.escalator.process_escalations()

        assert report.escalated == []
        request = await container.approvals.get_request(leave_request.request_id)
        assert request.current_step == 0

    async def test_last_step_waits_for_admin(self, container, leave_request, clock, admin):
        for _ in range(3):
            clock.advance(days=4)
            await container.escalator.process_escalations()

        escalated = await container.approvals.get_request(leave_request.request_id)
        assert escalated.status == "escalated"
        assert escalated.current_step == 2

        clock.advance(days=4)
        assert (await container.escalator.process_escalations()).processed == 0

        resolved = await container.approvals.approve(leave_request.request_id, admin)
        assert resolved.value.status == "approved"


class TestLoanListener:
    """Test loan activation from approval decisions."""

    async def open_loan_request(self, container, worker):
        loan = (await container.loans.open_loan("emp-worker", Decimal("1200"), 4, "2024-04")).value
        request = (
            await container.approvals.create_request(
                worker, "loan", "emp-worker", {"loan_id": loan.loan_id, "amount": 1200}
            )
        ).value
        return loan, request

    async def test_approved_loan_becomes_active(self, container, worker, admin):
        loan, request = await self.open_loan_request(container, worker)

        await container.approvals.approve(request.request_id, admin)

        stored = await container.repositories.loans.get_loan(loan.loan_id)
        assert stored.status == "active"
        assert stored.installment_amount == Decimal("300.00")

    async def test_rejected_loan_is_closed(self, container, worker, supervisor):
        loan, request = await self.open_loan_request(container, worker)

        await container.approvals.reject(request.request_id, supervisor)

        stored = await container.repositories.loans.get_loan(loan.loan_id)
        assert stored.status == "closed"

    async def test_failing_listener_does_not_undo_decision(self, container, leave_request, admin):
        async def broken(request):
            raise RuntimeError("notification service down")

        container.approvals.add_listener(broken)

        result = await container.approvals.approve(leave_request.request_id, admin)

        assert result.ok
        stored = await container.approvals.get_request(leave_request.request_id)
        assert stored.status == "approved"
