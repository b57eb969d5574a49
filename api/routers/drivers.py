"""Driver earnings API endpoints — daily stats, monthly stats, settlement."""

import uuid
from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from schemas.earnings import DailyStatsEnvelope, MonthlyStatsEnvelope, SettlementEnvelope
from services.earnings import daily_stats, monthly_stats, DailyStats, MonthlyStats
from services.settlement import settlement

router = APIRouter()


def _scoped(stats: DailyStats | MonthlyStats) -> dict:
    return {**asdict(stats), "config_scope": stats.config_scope.value}


@router.get("/{driver_id}/earnings/daily", response_model=DailyStatsEnvelope)
async def get_daily_earnings(
    driver_id: uuid.UUID,
    day: date | None = Query(None, alias="date", description="Local date, defaults to today"),
    db: AsyncSession = Depends(get_db),
):
    stats = await daily_stats(db, driver_id, day)
    return {"data": _scoped(stats)}


@router.get("/{driver_id}/earnings/monthly", response_model=MonthlyStatsEnvelope)
async def get_monthly_earnings(
    driver_id: uuid.UUID,
    year: int = Query(..., ge=2000, le=9999),
    month: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    # month range is checked by the engine so it reports INVALID_MONTH
    stats = await monthly_stats(db, driver_id, year, month)
    return {"data": _scoped(stats)}


@router.get("/{driver_id}/settlement", response_model=SettlementEnvelope)
async def get_settlement(
    driver_id: uuid.UUID,
    year: int = Query(..., ge=2000, le=9999),
    month: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Month-end statement: gross + bonus − penalties − policy cut."""
    result = await settlement(db, driver_id, year, month)
    return {"data": asdict(result)}
