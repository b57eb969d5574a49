"""Admin API endpoints — manual triggers for the earnings batch jobs."""

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from schemas import JobSummary
from services.earnings_jobs import record_daily_earnings, record_monthly_earnings

router = APIRouter()


# ── Request Body Schemas (job-specific) ────────────────────

class DailyJobRequest(BaseModel):
    day: date | None = None


class MonthlyJobRequest(BaseModel):
    year: int | None = Field(None, ge=2000, le=9999)
    month: int | None = Field(None, ge=1, le=12)


@router.post("/jobs/daily-earnings", response_model=JobSummary)
async def run_daily_earnings(data: DailyJobRequest | None = None, db: AsyncSession = Depends(get_db)):
    """Record daily metrics for all active drivers (default: yesterday)."""
    return await record_daily_earnings(db, data.day if data else None)


@router.post("/jobs/monthly-earnings", response_model=JobSummary)
async def run_monthly_earnings(data: MonthlyJobRequest | None = None, db: AsyncSession = Depends(get_db)):
    """Record monthly performance for all active drivers (default: previous month)."""
    year = data.year if data else None
    month = data.month if data else None
    return await record_monthly_earnings(db, year, month)
