"""Statutory rate resolution from the active configuration."""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from quincena_payroll.calculators.types import ResolvedRates, StatutoryRate
from quincena_payroll.errors import InvalidInputError
from quincena_payroll.integrations.base import StatutoryConfigStore

logger = logging.getLogger(__name__)

# Known concepts, in the order they appear on payslips
KNOWN_RATES: dict[str, tuple[str, str]] = {
    "tss_sfs": ("TSS_SFS", "TSS SFS"),
    "tss_afp": ("TSS_AFP", "TSS AFP"),
    "isr": ("ISR", "ISR"),
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalize_rate_key(key: str) -> str:
    """Normalize 'tssSfs', 'tss_sfs_rate' and 'TSS_SFS' to 'tss_sfs'."""
    snake = _CAMEL_BOUNDARY.sub("_", key.strip()).lower()
    if snake.endswith("_rate"):
        snake = snake[: -len("_rate")]
    return snake


def parse_rate(key: str, raw: Any) -> Decimal:
    """Parse one configured rate.

    Non-numeric values count as 0; negative rates are rejected.
    """
    if isinstance(raw, bool) or raw is None:
        return Decimal("0")
    if isinstance(raw, float):
        raw = repr(raw)
    try:
        rate = Decimal(raw)
    except (InvalidOperation, TypeError, ValueError):
        logger.warning("Ignoring non-numeric statutory rate %s=%r", key, raw)
        return Decimal("0")
    if not rate.is_finite():
        return Decimal("0")
    if rate < 0:
        raise InvalidInputError(f"Statutory rate '{key}' must not be negative", {"rate": key})
    return rate


def build_rates(raw_rates: dict[str, Any]) -> tuple[StatutoryRate, ...]:
    """Turn a raw rates mapping into ordered statutory rates.

    Known concepts come first in their fixed order; any other numeric
    entry follows in key order with a code derived from its key.
    """
    normalized: dict[str, Decimal] = {}
    for key, raw in raw_rates.items():
        if not isinstance(key, str):
            continue
        norm = normalize_rate_key(key)
        if not norm:
            continue
        normalized[norm] = parse_rate(key, raw)

    rates: list[StatutoryRate] = []
    for norm, (code, name) in KNOWN_RATES.items():
        if norm in normalized:
            rates.append(StatutoryRate(norm, code, name, normalized.pop(norm)))

    for norm in sorted(normalized):
        code = norm.upper()
        rates.append(StatutoryRate(norm, code, code.replace("_", " "), normalized[norm]))

    return tuple(rates)


class RateResolver:
    """Resolves the statutory rates in force for a company and year."""

    def __init__(self, config_store: StatutoryConfigStore):
        self.config_store = config_store

    async def resolve(self, company_id: UUID, year: int) -> ResolvedRates:
        """Resolve rates; a missing config means no statutory deductions."""
        config = await self.config_store.get_active_config(company_id, year)
        if config is None:
            logger.info(
                "No active statutory config for company %s year %s", company_id, year
            )
            return ResolvedRates(config_id=None, year=year)

        return ResolvedRates(
            config_id=config.config_id,
            year=year,
            rates=build_rates(config.rates or {}),
        )
