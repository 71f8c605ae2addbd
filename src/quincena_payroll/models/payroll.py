"""Payroll period, run, summary, line item, movement and payslip models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from quincena_payroll.models.base import Base, JSONType, TimestampMixin
from quincena_payroll.models.enums import (
    LineItemType,
    MovementSource,
    MovementStatus,
    MovementType,
    PeriodHalf,
    PeriodStatus,
    RunStatus,
    SummaryStatus,
)

if TYPE_CHECKING:
    from quincena_payroll.models.company import Employee


def _enum(enum_cls: type) -> SAEnum:
    """Non-native enum column so SQLite and PostgreSQL store the same strings."""
    return SAEnum(enum_cls, native_enum=False, length=32, validate_strings=True)


MONEY = Numeric(14, 2)


# ===== Periods =====


class PayrollPeriod(Base, TimestampMixin):
    """Bi-weekly (quincena) pay period."""

    __tablename__ = "payroll_period"

    period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    half: Mapped[PeriodHalf] = mapped_column(_enum(PeriodHalf), nullable=False)
    date_from: Mapped[date] = mapped_column(Date, nullable=False)
    date_to: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[PeriodStatus] = mapped_column(
        _enum(PeriodStatus), nullable=False, default=PeriodStatus.OPEN
    )

    __table_args__ = (
        UniqueConstraint(
            "company_id", "year", "month", "half", name="payroll_period_company_year_month_half"
        ),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_period_month_check"),
        CheckConstraint("date_to >= date_from", name="payroll_period_dates_check"),
    )

    # Relationships
    run: Mapped[PayrollRun | None] = relationship(back_populates="period", uselist=False)


# ===== Runs =====


class PayrollRun(Base, TimestampMixin):
    """One calculation/approval/payment cycle for exactly one period."""

    __tablename__ = "payroll_run"

    run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    period_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_period.period_id", ondelete="RESTRICT"),
        nullable=False,
    )
    status: Mapped[RunStatus] = mapped_column(
        _enum(RunStatus), nullable=False, default=RunStatus.DRAFT
    )
    created_by_user_id: Mapped[UUID] = mapped_column(nullable=False)
    approved_by_user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_by_user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Optimistic concurrency token, bumped on every status transition
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("period_id", name="payroll_run_period_unique"),
        Index("ix_payroll_run_company_status", "company_id", "status"),
    )

    # Relationships
    period: Mapped[PayrollPeriod] = relationship(back_populates="run")
    summaries: Mapped[list[PayrollEmployeeSummary]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
    )
    payslips: Mapped[list[PayrollPayslip]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
    )


class PayrollEmployeeSummary(Base, TimestampMixin):
    """Per-employee figures of a run, overwritten by each recalculation."""

    __tablename__ = "payroll_employee_summary"

    summary_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    base_salary_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    commissions_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    other_earnings_amount: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
    gross_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    statutory_deductions_amount: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
    other_deductions_amount: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
    net_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="DOP")
    status: Mapped[SummaryStatus] = mapped_column(
        _enum(SummaryStatus), nullable=False, default=SummaryStatus.READY
    )

    __table_args__ = (
        UniqueConstraint("run_id", "employee_id", name="payroll_summary_run_employee"),
    )

    # Relationships
    run: Mapped[PayrollRun] = relationship(back_populates="summaries")
    employee: Mapped[Employee] = relationship()
    line_items: Mapped[list[PayrollLineItem]] = relationship(
        back_populates="summary",
        cascade="all, delete-orphan",
        order_by="PayrollLineItem.position",
    )


class PayrollLineItem(Base, TimestampMixin):
    """Derived, disposable line of a summary (regenerated on recalculation)."""

    __tablename__ = "payroll_line_item"

    line_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    summary_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_employee_summary.summary_id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    type: Mapped[LineItemType] = mapped_column(_enum(LineItemType), nullable=False)
    concept_code: Mapped[str] = mapped_column(String(64), nullable=False)
    concept_name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    __table_args__ = (Index("ix_payroll_line_item_summary", "summary_id"),)

    # Relationships
    summary: Mapped[PayrollEmployeeSummary] = relationship(back_populates="line_items")


# ===== Movements =====


class PayrollMovement(Base, TimestampMixin):
    """Earning or deduction event, claimed into one period at most once."""

    __tablename__ = "payroll_movement"

    movement_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    movement_type: Mapped[MovementType] = mapped_column(_enum(MovementType), nullable=False)
    source: Mapped[MovementSource] = mapped_column(_enum(MovementSource), nullable=False)
    concept_code: Mapped[str] = mapped_column(String(64), nullable=False)
    concept_name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_period.period_id", ondelete="RESTRICT"),
        nullable=True,
    )
    status: Mapped[MovementStatus] = mapped_column(
        _enum(MovementStatus), nullable=False, default=MovementStatus.PENDING
    )
    created_by_user_id: Mapped[UUID] = mapped_column(nullable=False)
    approved_by_user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="payroll_movement_amount_positive"),
        Index(
            "ix_payroll_movement_claim",
            "company_id",
            "status",
            "period_id",
            "effective_date",
        ),
        Index("ix_payroll_movement_employee_period", "employee_id", "period_id"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship()

    @property
    def is_claimed(self) -> bool:
        return self.period_id is not None

    @validates("period_id")
    def _validate_period_id(self, key: str, value: UUID | None) -> UUID | None:
        current = self.__dict__.get("period_id")
        if current is not None and value != current:
            raise ValueError(
                f"Movement {self.movement_id} is already claimed by period {current}"
            )
        return value


# ===== Statutory configuration =====


class StatutoryConfig(Base, TimestampMixin):
    """Injected statutory deduction rates for one company and year."""

    __tablename__ = "statutory_config"

    statutory_config_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    rates: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("ix_statutory_config_company_year", "company_id", "year", "active"),)


# ===== Payslips =====


class PayrollPayslip(Base, TimestampMixin):
    """Immutable snapshot of an approved summary, later rendered to a PDF."""

    __tablename__ = "payroll_payslip"

    payslip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    snapshot: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    pdf_url: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("run_id", "employee_id", name="payroll_payslip_run_employee"),
    )

    # Relationships
    run: Mapped[PayrollRun] = relationship(back_populates="payslips")
