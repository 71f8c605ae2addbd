"""Payroll calculation engine."""

from quincena_payroll.calculators.engine import CalculationEngine, PayrollCalculator
from quincena_payroll.calculators.line_builder import LineItemBuilder
from quincena_payroll.calculators.rate_resolver import RateResolver
from quincena_payroll.calculators.types import CalculationResult, RunCalculationResult

__all__ = [
    "CalculationEngine",
    "PayrollCalculator",
    "CalculationResult",
    "RunCalculationResult",
    "LineItemBuilder",
    "RateResolver",
]
