"""Tests for the daily/monthly earnings jobs (mocked and in-memory sessions)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid
from datetime import date, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from models.earnings_record import DriverDailyMetrics, DriverMonthlyPerformance
from models.driver import Driver
from models.franchise import Franchise
from services.errors import ConfigurationError
from services.earnings import DailyStats
from services.earnings_policy import ConfigScope
from services.earnings_jobs import record_daily_earnings, record_monthly_earnings, previous_month
from services.settlement import Settlement, SettlementBreakdown


def _session(existing=None):
    db = AsyncMock()
    db.add = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = existing
    db.execute.return_value = result
    return db


def _drivers(n):
    return [SimpleNamespace(id=uuid.uuid4(), franchise_id=None) for _ in range(n)]


def _daily(driver_id, day):
    return DailyStats(
        driver_id=driver_id, date=day, daily_target_amount=1250, amount_run_today=1400,
        trips_count_today=3, incentive_today=150, incentive_type="full_extra",
        remaining_to_achieve=0, config_scope=ConfigScope.DEFAULT,
    )


def _settlement(driver_id):
    return Settlement(
        driver_id=driver_id, year=2024, month=1, monthly_earnings=26000, trips_count=60,
        monthly_bonus=3000, total_penalties=500, monthly_deduction_policy_cut=6500,
        net_earnings=22000,
        breakdown=SettlementBreakdown(26000, 3000, -500, -6500, 22000),
    )


def test_previous_month_wraps_year():
    assert previous_month(date(2024, 1, 15)) == (2023, 12)
    assert previous_month(date(2024, 7, 1)) == (2024, 6)


@pytest.mark.asyncio
async def test_daily_job_inserts_metrics():
    db = _session()
    drivers = _drivers(2)
    day = date(2024, 3, 4)
    with patch("services.earnings_jobs.list_active_drivers", AsyncMock(return_value=drivers)), \
         patch("services.earnings_jobs.daily_stats", AsyncMock(side_effect=lambda _db, d, dy: _daily(d, dy))):
        summary = await record_daily_earnings(db, day)

    assert summary == {"period": "2024-03-04", "processed_count": 2, "error_count": 0, "failed_driver_ids": []}
    assert db.add.call_count == 2
    row = db.add.call_args_list[0].args[0]
    assert isinstance(row, DriverDailyMetrics)
    assert row.incentive == 150
    assert row.daily_limit == 1250
    assert db.commit.await_count == 2


@pytest.mark.asyncio
async def test_daily_job_updates_existing_row():
    existing = SimpleNamespace(number_of_trips=1, amount_run=300, daily_limit=1250, incentive=0)
    db = _session(existing)
    driver = _drivers(1)
    with patch("services.earnings_jobs.list_active_drivers", AsyncMock(return_value=driver)), \
         patch("services.earnings_jobs.daily_stats", AsyncMock(side_effect=lambda _db, d, dy: _daily(d, dy))):
        await record_daily_earnings(db, date(2024, 3, 4))

    db.add.assert_not_called()
    assert existing.number_of_trips == 3
    assert existing.amount_run == 1400


@pytest.mark.asyncio
async def test_daily_job_isolates_driver_failures():
    db = _session()
    drivers = _drivers(3)
    day = date(2024, 3, 4)
    stats = AsyncMock(side_effect=[_daily(drivers[0].id, day), RuntimeError("boom"), _daily(drivers[2].id, day)])
    with patch("services.earnings_jobs.list_active_drivers", AsyncMock(return_value=drivers)), \
         patch("services.earnings_jobs.daily_stats", stats):
        summary = await record_daily_earnings(db, day)

    assert summary["processed_count"] == 2
    assert summary["error_count"] == 1
    assert summary["failed_driver_ids"] == [str(drivers[1].id)]
    db.rollback.assert_awaited_once()
    assert db.commit.await_count == 2


@pytest.mark.asyncio
async def test_daily_job_defaults_to_yesterday():
    db = _session()
    stats = AsyncMock()
    with patch("services.earnings_jobs.today_local", return_value=date(2024, 3, 1)), \
         patch("services.earnings_jobs.list_active_drivers", AsyncMock(return_value=[])), \
         patch("services.earnings_jobs.daily_stats", stats):
        summary = await record_daily_earnings(db)

    assert summary["period"] == "2024-02-29"
    assert summary["processed_count"] == 0


@pytest.mark.asyncio
async def test_monthly_job_records_performance():
    db = _session()
    drivers = _drivers(1)
    with patch("services.earnings_jobs.list_active_drivers", AsyncMock(return_value=drivers)), \
         patch("services.earnings_jobs.settlement", AsyncMock(return_value=_settlement(drivers[0].id))), \
         patch("services.earnings_jobs.daily_incentive_total", AsyncMock(return_value=1800.0)) as incentive:
        summary = await record_monthly_earnings(db, 2024, 1)

    assert summary["period"] == "2024-01"
    assert summary["processed_count"] == 1
    row = db.add.call_args.args[0]
    assert isinstance(row, DriverMonthlyPerformance)
    assert row.total_incentive == 1800.0
    assert row.monthly_deduction == 6500
    assert row.net_earnings == 22000
    assert incentive.await_args.args[2:] == (date(2024, 1, 1), date(2024, 1, 31))


@pytest.mark.asyncio
async def test_monthly_job_defaults_to_previous_month():
    db = _session()
    with patch("services.earnings_jobs.today_local", return_value=date(2024, 1, 10)), \
         patch("services.earnings_jobs.list_active_drivers", AsyncMock(return_value=[])):
        summary = await record_monthly_earnings(db)
    assert summary["period"] == "2023-12"


# ── Real session ───────────────────────────────────────────

async def _sqlite_session(count):
    """In-memory database holding ``count`` active drivers, oldest first."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(lambda c: Driver.metadata.create_all(c, tables=[Franchise.__table__, Driver.__table__]))

    db = AsyncSession(engine, expire_on_commit=False)
    drivers = [
        Driver(full_name=f"Driver {i}", is_active=True, created_at=datetime(2024, 1, 1, i))
        for i in range(count)
    ]
    db.add_all(drivers)
    await db.commit()
    return engine, db, [d.id for d in drivers]


@pytest.mark.asyncio
async def test_daily_job_continues_after_rollback_on_real_session():
    engine, db, ids = await _sqlite_session(3)

    async def stats(_db, driver_id, day):
        if driver_id == ids[0]:
            raise ConfigurationError("DUPLICATE_ACTIVE_CONFIG")
        return _daily(driver_id, day)

    try:
        with patch("services.earnings_jobs.daily_stats", AsyncMock(side_effect=stats)), \
             patch("services.earnings_jobs._upsert_daily", AsyncMock()) as upsert:
            summary = await record_daily_earnings(db, date(2024, 3, 4))
    finally:
        await db.close()
        await engine.dispose()

    assert summary["processed_count"] == 2
    assert summary["error_count"] == 1
    assert summary["failed_driver_ids"] == [str(ids[0])]
    assert [c.args[1] for c in upsert.await_args_list] == ids[1:]


@pytest.mark.asyncio
async def test_monthly_job_continues_after_rollback_on_real_session():
    engine, db, ids = await _sqlite_session(3)

    async def monthly(_db, driver_id, year, month):
        if driver_id == ids[0]:
            raise ConfigurationError("DUPLICATE_ACTIVE_CONFIG")
        return _settlement(driver_id)

    try:
        with patch("services.earnings_jobs.settlement", AsyncMock(side_effect=monthly)), \
             patch("services.earnings_jobs.daily_incentive_total", AsyncMock(return_value=0.0)), \
             patch("services.earnings_jobs._upsert_monthly", AsyncMock()) as upsert:
            summary = await record_monthly_earnings(db, 2024, 1)
    finally:
        await db.close()
        await engine.dispose()

    assert summary["processed_count"] == 2
    assert summary["failed_driver_ids"] == [str(ids[0])]
    assert [c.args[1] for c in upsert.await_args_list] == ids[1:]
    assert all(c.args[4]["franchise_id"] is None for c in upsert.await_args_list)
