"""Tests for statutory rate resolution."""

from decimal import Decimal
from uuid import uuid4

import pytest

from quincena_payroll.calculators.rate_resolver import (
    RateResolver,
    build_rates,
    normalize_rate_key,
    parse_rate,
)
from quincena_payroll.errors import InvalidInputError
from quincena_payroll.integrations.base import StatutoryConfigRecord
from quincena_payroll.integrations.directory import SqlStatutoryConfigStore
from quincena_payroll.models import StatutoryConfig


class StaticConfigStore:
    def __init__(self, record):
        self.record = record
        self.calls = []

    async def get_active_config(self, company_id, year):
        self.calls.append((company_id, year))
        return self.record


class TestRateKeys:
    def test_normalize_rate_key(self):
        assert normalize_rate_key("tssSfs") == "tss_sfs"
        assert normalize_rate_key("tss_sfs_rate") == "tss_sfs"
        assert normalize_rate_key("TSS_AFP") == "tss_afp"
        assert normalize_rate_key("isrRate") == "isr"

    def test_parse_rate(self):
        assert parse_rate("isr", 0.15) == Decimal("0.15")
        assert parse_rate("isr", "0.0304") == Decimal("0.0304")
        assert parse_rate("isr", "n/a") == Decimal("0")
        assert parse_rate("isr", None) == Decimal("0")

        with pytest.raises(InvalidInputError):
            parse_rate("isr", -0.01)

    def test_build_rates_orders_known_concepts_first(self):
        rates = build_rates(
            {"infotep_rate": 0.005, "isr_rate": 0, "tssAfp": 0.0287, "tss_sfs_rate": 0.0304}
        )

        assert [r.concept_code for r in rates] == ["TSS_SFS", "TSS_AFP", "ISR", "INFOTEP"]
        assert rates[0].rate == Decimal("0.0304")


class TestRateResolver:
    async def test_missing_config_means_no_deductions(self):
        resolver = RateResolver(StaticConfigStore(None))
        resolved = await resolver.resolve(uuid4(), 2026)

        assert resolved.is_configured is False
        assert resolved.rates == ()

    async def test_resolves_config_rates(self):
        config_id = uuid4()
        store = StaticConfigStore(
            StatutoryConfigRecord(config_id=config_id, year=2026, rates={"tss_sfs_rate": 0.0304})
        )
        company_id = uuid4()
        resolved = await RateResolver(store).resolve(company_id, 2026)

        assert resolved.config_id == config_id
        assert len(resolved.rates) == 1
        assert store.calls == [(company_id, 2026)]

    async def test_sql_store_uses_active_config_for_year(self, db, company, statutory_config):
        db.add(
            StatutoryConfig(
                company_id=company.company_id,
                year=2026,
                rates={"isr_rate": 0.5},
                active=False,
            )
        )
        db.add(
            StatutoryConfig(
                company_id=company.company_id,
                year=2025,
                rates={"isr_rate": 0.25},
                active=True,
            )
        )
        await db.commit()

        record = await SqlStatutoryConfigStore(db).get_active_config(company.company_id, 2026)

        assert record is not None
        assert record.config_id == statutory_config.statutory_config_id
        assert record.rates["tss_sfs_rate"] == 0.0304

        assert await SqlStatutoryConfigStore(db).get_active_config(company.company_id, 2030) is None
