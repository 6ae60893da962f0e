"""Workforce payroll: attendance processing, payroll months and approval workflows."""

__version__ = "0.1.0"
