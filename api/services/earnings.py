"""
Earnings Engine — daily incentive and monthly bonus/deduction for a driver.

Daily incentive (against the resolved policy):
  - tier1_min ≤ revenue ≤ tier1_max, "full_extra" → revenue − daily target
  - revenue > tier2_min                          → tier2_percent of revenue
  - otherwise                                    → 0

Monthly:
  - bonus: highest qualifying min_earnings tier (tiers do not stack)
  - deduction: lowest max_earnings tier that still covers revenue

Revenue is the realized amount of completed, fully-paid trips in a window cut
in the configured local timezone. Nothing is cached; every call re-reads.
"""

from __future__ import annotations
import calendar
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from services import errors
from services.errors import NotFoundError, ValidationError
from services.config_resolver import resolve_earnings_config
from services.earnings_policy import (
    EarningsPolicy, ConfigScope, BonusTier, DeductionTier,
    INCENTIVE_TYPE_FULL_EXTRA, INCENTIVE_TYPE_PERCENTAGE,
)
from services.money import percent_of, to_float
from services.sources import get_driver, completed_trip_amounts

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)


# ── Data classes ───────────────────────────────────────────

@dataclass
class DailyStats:
    driver_id: uuid.UUID
    date: date
    daily_target_amount: float
    amount_run_today: float
    trips_count_today: int
    incentive_today: float
    incentive_type: str | None
    remaining_to_achieve: float
    config_scope: ConfigScope


@dataclass
class MonthlyStats:
    driver_id: uuid.UUID
    franchise_id: uuid.UUID | None
    year: int
    month: int
    monthly_earnings: float
    trips_count: int
    monthly_bonus: float
    bonus_tier: BonusTier | None
    monthly_deduction_policy_cut: int
    deduction_tier: DeductionTier | None
    config_scope: ConfigScope


# ── Windows ────────────────────────────────────────────────

def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.local_timezone)


def today_local() -> date:
    return datetime.now(local_tz()).date()


def day_window(day: date, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    """[00:00:00.000, 23:59:59.999] of ``day`` in local time."""
    tz = tz or local_tz()
    return (
        datetime.combine(day, time.min, tzinfo=tz),
        datetime.combine(day, END_OF_DAY, tzinfo=tz),
    )


def validate_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError(errors.INVALID_MONTH)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    validate_month(month)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_window(year: int, month: int, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    """First day 00:00:00.000 through last day 23:59:59.999, local time."""
    first_day, last_day = month_bounds(year, month)
    return day_window(first_day, tz)[0], day_window(last_day, tz)[1]


# ── Core Functions ─────────────────────────────────────────

def resolve_daily_target(policy: EarningsPolicy, scope: ConfigScope, driver_target) -> float:
    """
    A persisted policy's target wins (driver > franchise > global); otherwise
    the driver's individually assigned target, then the hard default.
    """
    if scope != ConfigScope.DEFAULT and policy.daily_target_default:
        return policy.daily_target_default
    return to_float(driver_target) or settings.default_daily_target


def evaluate_daily_incentive(
    revenue: float,
    policy: EarningsPolicy,
    daily_target: float,
) -> tuple[float, str | None]:
    """
    Returns:
        (incentive, incentive_type); incentive_type is None when no tier applies.
    """
    if policy.incentive_tier1_min <= revenue <= policy.incentive_tier1_max:
        if policy.incentive_tier1_type == INCENTIVE_TYPE_FULL_EXTRA:
            return max(0.0, revenue - daily_target), INCENTIVE_TYPE_FULL_EXTRA
        return 0.0, None
    if revenue > policy.incentive_tier2_min:
        return percent_of(revenue, policy.incentive_tier2_percent), INCENTIVE_TYPE_PERCENTAGE
    return 0.0, None


def select_bonus_tier(revenue: float, tiers: tuple[BonusTier, ...]) -> BonusTier | None:
    for tier in sorted(tiers, key=lambda t: t.min_earnings, reverse=True):
        if tier.min_earnings <= revenue:
            return tier
    return None


def select_deduction_tier(revenue: float, tiers: tuple[DeductionTier, ...]) -> DeductionTier | None:
    for tier in sorted(tiers, key=lambda t: t.max_earnings):
        if tier.max_earnings >= revenue:
            return tier
    return None


def evaluate_monthly(revenue: float, policy: EarningsPolicy) -> tuple[BonusTier | None, DeductionTier | None]:
    return (
        select_bonus_tier(revenue, policy.monthly_bonus_tiers),
        select_deduction_tier(revenue, policy.monthly_deduction_tiers),
    )


async def _require_driver(db: AsyncSession, driver_id: uuid.UUID):
    driver = await get_driver(db, driver_id)
    if driver is None:
        raise NotFoundError(errors.DRIVER_NOT_FOUND, f"Driver not found: {driver_id}")
    return driver


async def daily_stats(
    db: AsyncSession,
    driver_id: uuid.UUID,
    day: date | None = None,
) -> DailyStats:
    """Revenue, target and incentive for one driver over one local day."""
    driver = await _require_driver(db, driver_id)
    day = day or today_local()
    start, end = day_window(day)

    amounts = await completed_trip_amounts(db, driver_id, start, end)
    revenue = sum(amounts)

    policy, scope = await resolve_earnings_config(db, driver_id, driver.franchise_id)
    target = resolve_daily_target(policy, scope, driver.daily_target_amount)
    incentive, incentive_type = evaluate_daily_incentive(revenue, policy, target)

    logger.debug(
        "Daily stats driver=%s day=%s revenue=%s target=%s incentive=%s scope=%s",
        driver_id, day, revenue, target, incentive, scope.value,
    )
    return DailyStats(
        driver_id=driver_id,
        date=day,
        daily_target_amount=target,
        amount_run_today=revenue,
        trips_count_today=len(amounts),
        incentive_today=incentive,
        incentive_type=incentive_type,
        remaining_to_achieve=max(0.0, target - revenue),
        config_scope=scope,
    )


async def monthly_stats(
    db: AsyncSession,
    driver_id: uuid.UUID,
    year: int,
    month: int,
    config_as_of: datetime | None = None,
) -> MonthlyStats:
    """
    Monthly revenue with bonus and deduction tiers applied.

    Args:
        config_as_of: Evaluate against the policy version effective at this
            instant instead of the currently active one.
    """
    validate_month(month)
    driver = await _require_driver(db, driver_id)
    start, end = month_window(year, month)

    amounts = await completed_trip_amounts(db, driver_id, start, end)
    revenue = sum(amounts)

    policy, scope = await resolve_earnings_config(db, driver_id, driver.franchise_id, as_of=config_as_of)
    bonus_tier, deduction_tier = evaluate_monthly(revenue, policy)

    return MonthlyStats(
        driver_id=driver_id,
        franchise_id=driver.franchise_id,
        year=year,
        month=month,
        monthly_earnings=revenue,
        trips_count=len(amounts),
        monthly_bonus=bonus_tier.bonus if bonus_tier else 0.0,
        bonus_tier=bonus_tier,
        monthly_deduction_policy_cut=percent_of(revenue, deduction_tier.cut_percent) if deduction_tier else 0,
        deduction_tier=deduction_tier,
        config_scope=scope,
    )
