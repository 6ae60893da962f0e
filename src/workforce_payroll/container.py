"""Wiring of services on top of one repository backend."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from workforce_payroll.config import Settings, get_settings
from workforce_payroll.repositories.base import RepositoryBundle
from workforce_payroll.services.approval import ApprovalEngine, ApprovalEscalator
from workforce_payroll.services.attendance_service import AttendanceImportService
from workforce_payroll.services.audit_service import AuditService
from workforce_payroll.services.config_service import HRConfigService
from workforce_payroll.services.finalizer import PayrollFinalizer
from workforce_payroll.services.loan_service import LoanService
from workforce_payroll.services.locking_service import PayrollLocker
from workforce_payroll.services.payroll_service import PayrollService


@dataclass
class ServiceContainer:
    repositories: RepositoryBundle
    audit: AuditService
    config: HRConfigService
    payroll: PayrollService
    finalizer: PayrollFinalizer
    locker: PayrollLocker
    approvals: ApprovalEngine
    escalator: ApprovalEscalator
    loans: LoanService
    attendance: AttendanceImportService

    @classmethod
    def build(
        cls,
        repositories: RepositoryBundle,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> ServiceContainer:
        settings = settings or get_settings()
        chunk_size = settings.write_chunk_size
        audit = AuditService(repositories.audit)
        config = HRConfigService(repositories.config, audit, clock=clock)
        loans = LoanService(repositories.loans, audit)
        approvals = ApprovalEngine(
            repositories.approvals,
            repositories.employees,
            repositories.config,
            audit,
            clock=clock,
            listeners=[loans.handle_approval_decision],
        )
        return cls(
            repositories=repositories,
            audit=audit,
            config=config,
            payroll=PayrollService(
                repositories,
                audit,
                config,
                batch_size=settings.payroll_batch_size,
                chunk_size=chunk_size,
                clock=clock,
            ),
            finalizer=PayrollFinalizer(
                repositories, audit, config, chunk_size=chunk_size, clock=clock
            ),
            locker=PayrollLocker(repositories.payroll, audit, chunk_size=chunk_size, clock=clock),
            approvals=approvals,
            escalator=ApprovalEscalator(
                repositories.approvals, repositories.config, audit, clock=clock
            ),
            loans=loans,
            attendance=AttendanceImportService(
                repositories.attendance,
                repositories.config,
                repositories.employees,
                chunk_size=chunk_size,
            ),
        )
