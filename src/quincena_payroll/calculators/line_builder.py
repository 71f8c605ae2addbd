"""Line item builder and money rounding helpers."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from quincena_payroll.calculators.types import (
    LineCandidate,
    LineType,
    MovementInput,
    StatutoryRate,
)

BASE_SALARY_CODE = "BASE_SALARY"
COMMISSION_CODE = "COMMISSION"
OTHER_EARNINGS_CODE = "OTHER"


class LineItemBuilder:
    """Builds summary line items.

    Sign conventions:
    - every amount is stored as a non-negative value
    - EARNING lines add to gross, DEDUCTION lines subtract from net

    Rounding:
    - two decimals at every intermediate sum
    - ROUND_HALF_UP, which for Decimal rounds half away from zero
    """

    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal | int | str) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return Decimal(amount).quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def to_money(value: Any) -> Decimal:
        """Coerce a stored or user value to cents; non-numeric values become 0."""
        if value is None:
            return Decimal("0.00")
        if isinstance(value, float):
            value = repr(value)
        try:
            amount = Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            return Decimal("0.00")
        if not amount.is_finite():
            return Decimal("0.00")
        return LineItemBuilder.round_to_cents(amount)

    @staticmethod
    def sum_money(amounts: Iterable[Decimal]) -> Decimal:
        """Sum amounts, rounding each term and the total to cents."""
        total = Decimal("0")
        for amount in amounts:
            total += LineItemBuilder.round_to_cents(amount)
        return LineItemBuilder.round_to_cents(total)

    @staticmethod
    def create_base_salary_line(amount: Decimal) -> LineCandidate:
        return LineCandidate(
            line_type=LineType.EARNING,
            concept_code=BASE_SALARY_CODE,
            concept_name="Sueldo base",
            amount=LineItemBuilder.round_to_cents(abs(amount)),
        )

    @staticmethod
    def create_aggregate_earning_line(
        concept_code: str,
        concept_name: str,
        amount: Decimal,
        movements: list[MovementInput],
    ) -> LineCandidate:
        """Create an aggregate earning line tracing back to its movements."""
        return LineCandidate(
            line_type=LineType.EARNING,
            concept_code=concept_code,
            concept_name=concept_name,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
            meta={"movementIds": [str(m.movement_id) for m in movements]},
        )

    @staticmethod
    def create_statutory_line(rate: StatutoryRate, amount: Decimal) -> LineCandidate:
        """Create a statutory deduction line."""
        return LineCandidate(
            line_type=LineType.DEDUCTION,
            concept_code=rate.concept_code,
            concept_name=rate.concept_name,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
            meta={"rate": str(rate.rate), "statutory": True},
        )

    @staticmethod
    def create_movement_line(movement: MovementInput) -> LineCandidate:
        """Create the line for one individual movement."""
        return LineCandidate(
            line_type=LineType(movement.movement_type.value),
            concept_code=movement.concept_code,
            concept_name=movement.concept_name,
            amount=LineItemBuilder.round_to_cents(abs(movement.amount)),
            meta={"movementId": str(movement.movement_id), "source": movement.source.value},
        )

    @staticmethod
    def sum_by_type(lines: list[LineCandidate]) -> dict[LineType, Decimal]:
        """Sum line amounts by type."""
        totals: dict[LineType, Decimal] = {lt: Decimal("0") for lt in LineType}
        for line in lines:
            totals[line.line_type] += line.amount
        return {lt: LineItemBuilder.round_to_cents(v) for lt, v in totals.items()}

    @staticmethod
    def validate_lines(lines: list[LineCandidate]) -> list[str]:
        """Validate that all line amounts are non-negative cents.

        Returns list of error messages (empty if all valid).
        """
        errors: list[str] = []

        for i, line in enumerate(lines):
            if line.amount < 0:
                errors.append(
                    f"Line {i} ({line.concept_code}) has negative amount {line.amount}"
                )
            if line.amount != LineItemBuilder.round_to_cents(line.amount):
                errors.append(
                    f"Line {i} ({line.concept_code}) is not rounded to cents: {line.amount}"
                )

        return errors
