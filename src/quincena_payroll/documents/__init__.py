"""Payslip snapshots and their rendered documents."""

from quincena_payroll.documents.payslip_pdf import PayslipPdfRenderer
from quincena_payroll.documents.snapshot import PayslipSnapshot

__all__ = ["PayslipPdfRenderer", "PayslipSnapshot"]
