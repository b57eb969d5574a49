"""
Earnings Jobs — persist daily metrics and monthly performance for every
active driver.

Rules:
  - Daily job defaults to yesterday (local time), monthly to the previous month
  - Rows are upserted on (driver, date) / (driver, year, month)
  - Each driver commits on its own; a failure is rolled back, logged and
    counted while the remaining drivers are still processed
"""

import logging
import uuid
from datetime import date, timedelta

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from models.earnings_record import DriverDailyMetrics, DriverMonthlyPerformance
from services.earnings import daily_stats, month_bounds, today_local
from services.settlement import settlement
from services.sources import list_active_drivers, daily_incentive_total

logger = logging.getLogger(__name__)


def previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def _summary(period: str, processed: int, failed: list[uuid.UUID]) -> dict:
    return {
        "period": period,
        "processed_count": processed,
        "error_count": len(failed),
        "failed_driver_ids": [str(d) for d in failed],
    }


async def _upsert_daily(db: AsyncSession, driver_id: uuid.UUID, day: date, values: dict) -> None:
    row = (await db.execute(
        select(DriverDailyMetrics).where(and_(
            DriverDailyMetrics.driver_id == driver_id,
            DriverDailyMetrics.date == day,
        ))
    )).scalar_one_or_none()

    if row is None:
        db.add(DriverDailyMetrics(driver_id=driver_id, date=day, **values))
    else:
        for key, value in values.items():
            setattr(row, key, value)


async def _upsert_monthly(db: AsyncSession, driver_id: uuid.UUID, year: int, month: int, values: dict) -> None:
    row = (await db.execute(
        select(DriverMonthlyPerformance).where(and_(
            DriverMonthlyPerformance.driver_id == driver_id,
            DriverMonthlyPerformance.year == year,
            DriverMonthlyPerformance.month == month,
        ))
    )).scalar_one_or_none()

    if row is None:
        db.add(DriverMonthlyPerformance(driver_id=driver_id, year=year, month=month, **values))
    else:
        for key, value in values.items():
            setattr(row, key, value)


async def record_daily_earnings(db: AsyncSession, day: date | None = None) -> dict:
    """Compute and store one day's trips, revenue, target and incentive per driver."""
    day = day or today_local() - timedelta(days=1)
    drivers = await list_active_drivers(db)
    # plain values: a rollback expires the loaded Driver rows
    targets = [(d.id, d.franchise_id) for d in drivers]
    logger.info("Daily earnings job for %s: %d active drivers", day, len(drivers))

    processed, failed = 0, []
    for driver_id, franchise_id in targets:
        try:
            stats = await daily_stats(db, driver_id, day)
            await _upsert_daily(db, driver_id, day, {
                "number_of_trips": stats.trips_count_today,
                "amount_run": stats.amount_run_today,
                "daily_limit": stats.daily_target_amount,
                "incentive": stats.incentive_today,
            })
            await db.commit()
            processed += 1
        except Exception:
            await db.rollback()
            failed.append(driver_id)
            logger.error("Daily earnings failed for driver %s on %s", driver_id, day, exc_info=True)

    logger.info("Daily earnings job for %s done: %d processed, %d failed", day, processed, len(failed))
    return _summary(day.isoformat(), processed, failed)


async def record_monthly_earnings(
    db: AsyncSession,
    year: int | None = None,
    month: int | None = None,
) -> dict:
    """Compute and store the month's settlement figures per driver."""
    if year is None or month is None:
        year, month = previous_month(today_local())
    first_day, last_day = month_bounds(year, month)
    period = f"{year:04d}-{month:02d}"

    drivers = await list_active_drivers(db)
    # plain values: a rollback expires the loaded Driver rows
    targets = [(d.id, d.franchise_id) for d in drivers]
    logger.info("Monthly earnings job for %s: %d active drivers", period, len(drivers))

    processed, failed = 0, []
    for driver_id, franchise_id in targets:
        try:
            result = await settlement(db, driver_id, year, month)
            incentive = await daily_incentive_total(db, driver_id, first_day, last_day)
            await _upsert_monthly(db, driver_id, year, month, {
                "franchise_id": franchise_id,
                "total_trips": result.trips_count,
                "total_earnings": result.monthly_earnings,
                "total_incentive": incentive,
                "total_penalty": result.total_penalties,
                "monthly_bonus": result.monthly_bonus,
                "monthly_deduction": result.monthly_deduction_policy_cut,
                "net_earnings": result.net_earnings,
            })
            await db.commit()
            processed += 1
        except Exception:
            await db.rollback()
            failed.append(driver_id)
            logger.error("Monthly earnings failed for driver %s for %s", driver_id, period, exc_info=True)

    logger.info("Monthly earnings job for %s done: %d processed, %d failed", period, processed, len(failed))
    return _summary(period, processed, failed)
