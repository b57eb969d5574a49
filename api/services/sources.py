"""
Fact sources — read-only queries against records owned by other services
(drivers, trips, penalties) that the earnings engines aggregate.
"""

import uuid
from datetime import date, datetime

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from models.driver import Driver
from models.trip import Trip, REVENUE_TRIP_STATUSES
from models.penalty import DriverPenalty
from models.earnings_record import DriverDailyMetrics
from services.money import to_float


async def get_driver(db: AsyncSession, driver_id: uuid.UUID) -> Driver | None:
    result = await db.execute(select(Driver).where(Driver.id == driver_id))
    return result.scalar_one_or_none()


async def list_active_drivers(db: AsyncSession) -> list[Driver]:
    result = await db.execute(select(Driver).where(Driver.is_active.is_(True)).order_by(Driver.created_at))
    return list(result.scalars().all())


def realized_amount(final_amount, total_amount) -> float:
    """Final amount when set, else the quoted total, else nothing."""
    return to_float(final_amount or total_amount) or 0.0


async def completed_trip_amounts(
    db: AsyncSession,
    driver_id: uuid.UUID,
    start: datetime,
    end: datetime,
) -> list[float]:
    """Realized amount of every completed, fully-paid trip ended in [start, end]."""
    result = await db.execute(
        select(Trip.final_amount, Trip.total_amount).where(and_(
            Trip.driver_id == driver_id,
            Trip.status.in_(REVENUE_TRIP_STATUSES),
            Trip.payment_status == "COMPLETED",
            Trip.ended_at >= start,
            Trip.ended_at <= end,
        ))
    )
    return [realized_amount(row.final_amount, row.total_amount) for row in result]


async def driver_penalties(
    db: AsyncSession,
    driver_id: uuid.UUID,
    start: datetime,
    end: datetime,
) -> list[DriverPenalty]:
    result = await db.execute(
        select(DriverPenalty)
        .where(and_(
            DriverPenalty.driver_id == driver_id,
            DriverPenalty.violation_date >= start,
            DriverPenalty.violation_date <= end,
        ))
        .order_by(DriverPenalty.violation_date.asc())
    )
    return list(result.scalars().all())


async def daily_incentive_total(
    db: AsyncSession,
    driver_id: uuid.UUID,
    first_day: date,
    last_day: date,
) -> float:
    """Sum of incentives already recorded by the daily job for a date range."""
    total = (await db.execute(
        select(func.sum(DriverDailyMetrics.incentive)).where(and_(
            DriverDailyMetrics.driver_id == driver_id,
            DriverDailyMetrics.date >= first_day,
            DriverDailyMetrics.date <= last_day,
        ))
    )).scalar()
    return to_float(total) or 0.0
