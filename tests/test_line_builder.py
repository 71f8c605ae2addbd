"""Tests for line item builder."""

from decimal import Decimal
from uuid import uuid4

from quincena_payroll.calculators.line_builder import LineItemBuilder
from quincena_payroll.calculators.types import (
    LineCandidate,
    LineType,
    MovementInput,
    StatutoryRate,
)
from quincena_payroll.models import MovementSource, MovementType


class TestLineItemBuilder:
    """Test line item builder functionality."""

    def test_round_to_cents(self):
        """Rounding is half away from zero."""
        assert LineItemBuilder.round_to_cents(Decimal("10.125")) == Decimal("10.13")
        assert LineItemBuilder.round_to_cents(Decimal("10.124")) == Decimal("10.12")
        assert LineItemBuilder.round_to_cents(Decimal("2.675")) == Decimal("2.68")
        assert LineItemBuilder.round_to_cents(Decimal("-0.005")) == Decimal("-0.01")

    def test_to_money(self):
        assert LineItemBuilder.to_money(None) == Decimal("0.00")
        assert LineItemBuilder.to_money("abc") == Decimal("0.00")
        assert LineItemBuilder.to_money(0.1) == Decimal("0.10")
        assert LineItemBuilder.to_money("15000") == Decimal("15000.00")
        assert LineItemBuilder.to_money(Decimal("NaN")) == Decimal("0.00")

    def test_sum_money(self):
        """Each term is rounded before summing."""
        total = LineItemBuilder.sum_money([Decimal("0.005"), Decimal("0.005")])
        assert total == Decimal("0.02")
        assert LineItemBuilder.sum_money([]) == Decimal("0.00")

    def test_create_movement_line_keeps_traceability(self):
        movement_id = uuid4()
        movement = MovementInput(
            movement_id=movement_id,
            movement_type=MovementType.DEDUCTION,
            source=MovementSource.LOAN,
            concept_code="PRESTAMO",
            concept_name="Cuota préstamo",
            amount=Decimal("500"),
        )
        line = LineItemBuilder.create_movement_line(movement)

        assert line.line_type == LineType.DEDUCTION
        assert line.amount == Decimal("500.00")
        assert line.meta == {"movementId": str(movement_id), "source": "LOAN"}

    def test_create_statutory_line(self):
        rate = StatutoryRate("tss_sfs", "TSS_SFS", "TSS SFS", Decimal("0.0304"))
        line = LineItemBuilder.create_statutory_line(rate, Decimal("516.80"))

        assert line.line_type == LineType.DEDUCTION
        assert line.concept_code == "TSS_SFS"
        assert line.meta == {"rate": "0.0304", "statutory": True}

    def test_sum_by_type(self):
        lines = [
            LineCandidate(LineType.EARNING, "BASE_SALARY", "Sueldo base", Decimal("15000.00")),
            LineCandidate(LineType.EARNING, "COMMISSION", "Comisiones", Decimal("2000.00")),
            LineCandidate(LineType.DEDUCTION, "TSS_SFS", "TSS SFS", Decimal("516.80")),
        ]
        totals = LineItemBuilder.sum_by_type(lines)

        assert totals[LineType.EARNING] == Decimal("17000.00")
        assert totals[LineType.DEDUCTION] == Decimal("516.80")

    def test_validate_lines(self):
        lines = [
            LineCandidate(LineType.EARNING, "OK", "ok", Decimal("1.00")),
            LineCandidate(LineType.EARNING, "NEG", "neg", Decimal("-1.00")),
            LineCandidate(LineType.EARNING, "FRAC", "frac", Decimal("1.001")),
        ]
        errors = LineItemBuilder.validate_lines(lines)

        assert len(errors) == 2
        assert "NEG" in errors[0]
        assert "FRAC" in errors[1]
