"""Approval chain construction from the org chart."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable

from workforce_payroll.entities import (
    ApprovalEmployee,
    ApprovalSettings,
    ApprovalStep,
    AutoApproveThreshold,
)
from workforce_payroll.errors import ValidationError

EmployeeLookup = Callable[[str], "ApprovalEmployee | None"]


def _step_for(employee: ApprovalEmployee) -> ApprovalStep:
    return ApprovalStep(
        approver_employee_id=employee.employee_id,
        approver_name=employee.employee_name,
        approver_job_title=employee.job_title,
        level=int(employee.job_level),
        department_id=employee.department_id,
        department_name=employee.department_name,
    )


def collect_managers(
    requester: ApprovalEmployee,
    lookup: EmployeeLookup,
    limit: int,
) -> list[ApprovalEmployee]:
    """Walk ``manager_id`` links upward, keeping managers senior to the requester.

    Stops at the top of the hierarchy, at a missing manager, on a cycle, or
    once ``limit`` managers were found.
    """
    managers: list[ApprovalEmployee] = []
    visited = {requester.employee_id}
    current_id = requester.manager_id

    while current_id and current_id not in visited and len(managers) < limit:
        visited.add(current_id)
        manager = lookup(current_id)
        if manager is None:
            break
        if manager.job_level > requester.job_level:
            managers.append(manager)
        current_id = manager.manager_id

    return managers


def build_approval_chain(
    requester: ApprovalEmployee,
    lookup: EmployeeLookup,
    settings: ApprovalSettings,
    hr_approver: ApprovalEmployee | None = None,
) -> tuple[ApprovalStep, ...]:
    """Build the ordered approver snapshot for a new request.

    Managers are ordered by level. When ``hr_always_final_level`` is set the
    HR approver is always the last step and managers are capped so that the
    chain never exceeds ``max_approval_levels``.
    """
    max_levels = settings.max_approval_levels
    include_hr = (
        settings.hr_always_final_level
        and hr_approver is not None
        and hr_approver.employee_id != requester.employee_id
    )
    manager_limit = max_levels - 1 if include_hr else max_levels
    if not requester.manager_id and not include_hr:
        raise ValidationError(
            f"Employee {requester.employee_id} has no manager assigned", code="no_manager"
        )

    managers = collect_managers(requester, lookup, max_levels)
    if include_hr:
        managers = [m for m in managers if m.employee_id != hr_approver.employee_id]
    managers = sorted(managers, key=lambda m: m.job_level)[: max(manager_limit, 0)]

    chain = [_step_for(m) for m in managers]
    if include_hr:
        chain.append(_step_for(hr_approver))
    return tuple(chain[:max_levels])


def validate_chain(chain: Iterable[ApprovalStep], settings: ApprovalSettings) -> list[str]:
    """Structural problems of a chain (empty, too long, duplicate approvers)."""
    steps = list(chain)
    errors: list[str] = []
    if not steps:
        errors.append("Approval chain is empty")
    if len(steps) > settings.max_approval_levels:
        errors.append(
            f"Approval chain has {len(steps)} levels, maximum is {settings.max_approval_levels}"
        )
    approver_ids = [s.approver_employee_id for s in steps]
    if len(set(approver_ids)) != len(approver_ids):
        errors.append("Approval chain contains duplicate approvers")
    return errors


def _numeric(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def should_auto_approve(
    request_type: str,
    request_data: dict[str, Any],
    thresholds: Iterable[AutoApproveThreshold],
) -> bool:
    """True when the type has thresholds and the request is within all of them."""
    applicable = [t for t in thresholds if t.request_type == request_type]
    if not applicable:
        return False
    for threshold in applicable:
        value = _numeric(request_data.get(threshold.field))
        if value is None or value > threshold.max_value:
            return False
    return True
