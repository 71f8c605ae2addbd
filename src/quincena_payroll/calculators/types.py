"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from quincena_payroll.models.enums import LineItemType, MovementSource, MovementType

# Re-exported so calculator code does not reach into the ORM package for it
LineType = LineItemType


@dataclass
class LineCandidate:
    """A line item before persistence.

    Amounts are always non-negative; ``line_type`` carries the direction.
    """

    line_type: LineType
    concept_code: str
    concept_name: str
    amount: Decimal
    meta: dict[str, Any] | None = None


@dataclass(frozen=True)
class MovementInput:
    """The parts of a movement the calculator needs."""

    movement_id: UUID
    movement_type: MovementType
    source: MovementSource
    concept_code: str
    concept_name: str
    amount: Decimal

    @property
    def is_commission(self) -> bool:
        return (
            self.source == MovementSource.SALES_COMMISSION
            and self.movement_type == MovementType.EARNING
        )

    @property
    def is_earning(self) -> bool:
        return self.movement_type == MovementType.EARNING

    @property
    def is_deduction(self) -> bool:
        return self.movement_type == MovementType.DEDUCTION


@dataclass(frozen=True)
class StatutoryRate:
    """One statutory withholding applied to gross pay."""

    key: str  # normalized config key, e.g. 'tss_sfs'
    concept_code: str
    concept_name: str
    rate: Decimal  # as decimal, e.g. 0.0304 for 3.04%


@dataclass(frozen=True)
class ResolvedRates:
    """Statutory rates in force for a company and year."""

    config_id: UUID | None
    year: int
    rates: tuple[StatutoryRate, ...] = ()

    @property
    def is_configured(self) -> bool:
        return self.config_id is not None


@dataclass
class CalculationResult:
    """Result of calculating one employee summary."""

    base: Decimal
    commissions: Decimal
    other_earnings: Decimal
    gross: Decimal
    statutory_total: Decimal
    other_deductions: Decimal
    net: Decimal
    needs_review: bool
    lines: list[LineCandidate] = field(default_factory=list)
    review_reasons: list[str] = field(default_factory=list)


@dataclass
class RunCalculationResult:
    """Result of recalculating an entire run."""

    run_id: UUID
    statutory_config_id: UUID | None
    results: dict[UUID, CalculationResult]  # employee_id -> result
    total_gross: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    needs_review_count: int = 0
