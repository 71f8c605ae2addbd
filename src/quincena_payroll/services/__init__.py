"""Payroll run engine services."""
