"""Delegation lookup and chain stamping."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Iterable

from workforce_payroll.entities import ApprovalDelegation, ApprovalStep, StepStatus


def is_effective(delegation: ApprovalDelegation, request_type: str, day: date) -> bool:
    return (
        delegation.is_active
        and delegation.covers(day)
        and delegation.applies_to(request_type)
    )


def find_active_delegation(
    delegations: Iterable[ApprovalDelegation],
    from_employee_id: str,
    request_type: str,
    day: date,
    to_employee_id: str | None = None,
) -> ApprovalDelegation | None:
    """First delegation from the approver that is in force on ``day``."""
    for delegation in delegations:
        if delegation.from_employee_id != from_employee_id:
            continue
        if to_employee_id is not None and delegation.to_employee_id != to_employee_id:
            continue
        if is_effective(delegation, request_type, day):
            return delegation
    return None


def stamp_delegations(
    chain: Iterable[ApprovalStep],
    delegations: list[ApprovalDelegation],
    request_type: str,
    day: date,
) -> tuple[ApprovalStep, ...]:
    """Record the current delegate on each pending step of a new chain."""
    stamped = []
    for step in chain:
        delegation = None
        if step.status == StepStatus.PENDING.value:
            delegation = find_active_delegation(
                delegations, step.approver_employee_id, request_type, day
            )
        if delegation is not None:
            step = replace(
                step,
                delegated_to=delegation.to_employee_id,
                delegated_to_name=delegation.to_employee_name,
            )
        stamped.append(step)
    return tuple(stamped)
