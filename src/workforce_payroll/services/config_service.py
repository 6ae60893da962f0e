"""Versioned HR configuration modules."""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from workforce_payroll.entities import (
    AuditEntityType,
    ConfigModule,
    ConfigModuleName,
    ConfigVersionSnapshot,
)
from workforce_payroll.errors import (
    ConcurrencyConflictError,
    HRError,
    OperationResult,
    ValidationError,
)
from workforce_payroll.repositories.base import ConfigRepository
from workforce_payroll.services.audit_service import AuditService

logger = logging.getLogger(__name__)

DEFAULT_MODULES: dict[str, dict[str, Any]] = {
    ConfigModuleName.GENERAL.value: {
        "working_days_per_week": 6,
        "hours_per_day": 8,
        "weekly_off_days": ["friday"],
        "minimum_rest_hours": 10,
        "use_multiple_shifts": False,
        "currency": "SAR",
        "fiscal_year_start_month": 1,
    },
    ConfigModuleName.ATTENDANCE.value: {
        "late_grace_minutes": 10,
        "auto_mark_absent_after_minutes": 240,
        "allow_manual_entry": True,
        "require_check_out": True,
        "minimum_work_hours_for_present": 4,
    },
    ConfigModuleName.OVERTIME.value: {
        "multiplier": 1.5,
        "max_per_day": 4,
        "max_per_month": 60,
        "require_approval": True,
        "weekend_multiplier": 2.0,
        "holiday_multiplier": 2.5,
    },
    ConfigModuleName.LEAVE.value: {
        "annual_days": 21,
        "sick_days": 14,
        "emergency_days": 5,
        "allow_negative_balance": False,
        "carry_over_max_days": 10,
        "max_consecutive_days": 30,
        "require_document_for_sick": True,
        "sick_document_threshold_days": 3,
    },
    ConfigModuleName.LOAN.value: {
        "max_loan_multiplier": 3,
        "max_installments": 12,
        "max_active_loans": 1,
        "min_service_months": 6,
        "allow_during_probation": False,
    },
    ConfigModuleName.PAYROLL.value: {
        "allow_negative_salary": False,
        "auto_close": False,
        "pay_day": 28,
        "rounding_method": "nearest",
        "include_transport_in_gross": False,
        "social_security_rate": 0,
        "tax_enabled": False,
    },
    ConfigModuleName.APPROVAL.value: {
        "require_manager_approval": True,
        "auto_approve_below": 0,
        "escalation_after_days": 3,
        "max_approval_levels": 3,
        "notify_on_pending": True,
        "hr_always_final_level": True,
        "allow_delegation": True,
    },
    ConfigModuleName.TRANSPORT.value: {
        "default_allowance": 0,
        "deduct_on_absence": True,
        "zone_based": False,
        "zones": [],
    },
}


def _validate_name(name: str) -> None:
    if name not in DEFAULT_MODULES:
        raise ValidationError(f"Unknown config module '{name}'", code="unknown_config_module")


class HRConfigService:
    """Read, update and version the HR configuration modules.

    Every effective change bumps the module's ``config_version`` and writes an
    ``hr_config`` audit entry. Payroll captures the versions of all modules so
    a month can be traced back to the configuration it was computed with.
    """

    def __init__(
        self,
        repository: ConfigRepository,
        audit: AuditService,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repository = repository
        self.audit = audit
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_module(self, name: str) -> ConfigModule:
        """Stored module, or the defaults at version 0 when never written."""
        _validate_name(name)
        module = await self.repository.get_config_module(name)
        if module is None:
            return ConfigModule(name=name, values=copy.deepcopy(DEFAULT_MODULES[name]))
        return module

    async def get_all_modules(self) -> dict[str, ConfigModule]:
        return {name: await self.get_module(name) for name in DEFAULT_MODULES}

    async def update_module(
        self,
        name: str,
        changes: dict[str, Any],
        performed_by: str,
        details: str | None = None,
    ) -> OperationResult[ConfigModule]:
        try:
            return OperationResult.success(
                await self._write(name, changes, performed_by, "update", details)
            )
        except HRError as exc:
            logger.warning("Config update of %s rejected: %s", name, exc)
            return OperationResult.failure(exc)

    async def reset_module(
        self, name: str, performed_by: str
    ) -> OperationResult[ConfigModule]:
        try:
            _validate_name(name)
            return OperationResult.success(
                await self._write(
                    name, copy.deepcopy(DEFAULT_MODULES[name]), performed_by, "reset", None,
                    force=True,
                )
            )
        except HRError as exc:
            return OperationResult.failure(exc)

    async def initialize_modules(self, performed_by: str) -> list[str]:
        """Persist defaults (version 1) for modules that were never written."""
        created: list[str] = []
        for name, defaults in DEFAULT_MODULES.items():
            if await self.repository.get_config_module(name) is not None:
                continue
            module = ConfigModule(
                name=name,
                values=copy.deepcopy(defaults),
                config_version=1,
                updated_at=self.clock(),
                updated_by=performed_by,
            )
            if await self.repository.save_config_module(module, expected_version=0):
                created.append(name)
        if created:
            logger.info("Initialized config modules: %s", ", ".join(created))
        return created

    async def capture_version_snapshot(self) -> ConfigVersionSnapshot:
        modules = await self.get_all_modules()
        return ConfigVersionSnapshot(
            captured_at=self.clock(),
            versions={name: m.config_version for name, m in modules.items()},
        )

    async def _write(
        self,
        name: str,
        changes: dict[str, Any],
        performed_by: str,
        action: str,
        details: str | None,
        force: bool = False,
    ) -> ConfigModule:
        _validate_name(name)
        current = await self.get_module(name)
        unknown = set(changes) - set(DEFAULT_MODULES[name])
        if unknown:
            raise ValidationError(
                f"Unknown fields for {name}: {', '.join(sorted(unknown))}",
                code="unknown_config_field",
            )

        changed = sorted(k for k, v in changes.items() if current.values.get(k) != v)
        if not changed and not force:
            return current

        new_values = {**current.values, **changes}
        updated = ConfigModule(
            name=name,
            values=new_values,
            config_version=current.config_version + 1,
            updated_at=self.clock(),
            updated_by=performed_by,
        )
        saved = await self.repository.save_config_module(
            updated, expected_version=current.config_version
        )
        if not saved:
            raise ConcurrencyConflictError(
                f"Config module {name} was changed concurrently", code="stale_write"
            )

        await self.audit.record(
            AuditEntityType.HR_CONFIG,
            name,
            action,
            performed_by,
            details={
                "module": name,
                "previous_version": current.config_version,
                "new_version": updated.config_version,
                "changed_fields": changed,
                "note": details,
            },
        )
        return updated
