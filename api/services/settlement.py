"""
Settlement Calculator — month-end statement for one driver.

    net = monthly_earnings + monthly_bonus − total_penalties − policy_cut

Read-only: composes monthly stats with the penalties recorded in the month.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from services.earnings import MonthlyStats, monthly_stats, month_window, validate_month
from services.money import to_float
from services.sources import driver_penalties

logger = logging.getLogger(__name__)


@dataclass
class PenaltyLine:
    id: str
    penalty_name: str | None
    amount: float
    violation_date: datetime | None
    description: str | None


@dataclass
class SettlementBreakdown:
    gross_earnings: float
    bonus: float
    penalties: float      # negative
    policy_cut: float     # negative
    net: float


@dataclass
class Settlement:
    driver_id: uuid.UUID
    year: int
    month: int
    monthly_earnings: float
    trips_count: int
    monthly_bonus: float
    total_penalties: float
    monthly_deduction_policy_cut: int
    net_earnings: float
    breakdown: SettlementBreakdown
    penalties: list[PenaltyLine] = field(default_factory=list)
    penalties_count: int = 0
    config_scope: str | None = None


def penalty_line(record) -> PenaltyLine:
    return PenaltyLine(
        id=str(record.id),
        penalty_name=record.penalty.name if record.penalty is not None else None,
        amount=to_float(record.amount) or 0.0,
        violation_date=record.violation_date,
        description=record.description,
    )


def build_settlement(stats: MonthlyStats, penalties: list[PenaltyLine]) -> Settlement:
    total_penalties = sum(p.amount for p in penalties)
    net = (
        stats.monthly_earnings
        + stats.monthly_bonus
        - total_penalties
        - stats.monthly_deduction_policy_cut
    )
    return Settlement(
        driver_id=stats.driver_id,
        year=stats.year,
        month=stats.month,
        monthly_earnings=stats.monthly_earnings,
        trips_count=stats.trips_count,
        monthly_bonus=stats.monthly_bonus,
        total_penalties=total_penalties,
        monthly_deduction_policy_cut=stats.monthly_deduction_policy_cut,
        net_earnings=net,
        breakdown=SettlementBreakdown(
            gross_earnings=stats.monthly_earnings,
            bonus=stats.monthly_bonus,
            penalties=-total_penalties,
            policy_cut=-stats.monthly_deduction_policy_cut,
            net=net,
        ),
        penalties=penalties,
        penalties_count=len(penalties),
        config_scope=stats.config_scope.value,
    )


async def settlement(
    db: AsyncSession,
    driver_id: uuid.UUID,
    year: int,
    month: int,
    config_as_of: datetime | None = None,
) -> Settlement:
    validate_month(month)
    stats = await monthly_stats(db, driver_id, year, month, config_as_of=config_as_of)
    start, end = month_window(year, month)
    penalties = [penalty_line(p) for p in await driver_penalties(db, driver_id, start, end)]

    result = build_settlement(stats, penalties)
    logger.info(
        "Settlement driver=%s %04d-%02d gross=%s bonus=%s penalties=%s cut=%s net=%s",
        driver_id, year, month, result.monthly_earnings, result.monthly_bonus,
        result.total_penalties, result.monthly_deduction_policy_cut, result.net_earnings,
    )
    return result
