"""
Earnings policy — the tier tables behind daily incentives and monthly
bonus/deduction, detached from the ORM row they were loaded from.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum

from config import settings
from services.money import to_float


class ConfigScope(str, Enum):
    DRIVER = "DRIVER"
    FRANCHISE = "FRANCHISE"
    GLOBAL = "GLOBAL"
    DEFAULT = "DEFAULT"  # nothing persisted, hard-coded policy


INCENTIVE_TYPE_FULL_EXTRA = "full_extra"
INCENTIVE_TYPE_PERCENTAGE = "percentage"


@dataclass(frozen=True)
class BonusTier:
    min_earnings: float
    bonus: float


@dataclass(frozen=True)
class DeductionTier:
    max_earnings: float
    cut_percent: float


DEFAULT_BONUS_TIERS = (
    BonusTier(min_earnings=25000, bonus=3000),
    BonusTier(min_earnings=28000, bonus=500),
)

DEFAULT_DEDUCTION_TIERS = (
    DeductionTier(max_earnings=26000, cut_percent=25),
    DeductionTier(max_earnings=22000, cut_percent=20),
)


@dataclass(frozen=True)
class EarningsPolicy:
    daily_target_default: float = settings.default_daily_target
    incentive_tier1_min: float = 1250
    incentive_tier1_max: float = 1550
    incentive_tier1_type: str = INCENTIVE_TYPE_FULL_EXTRA
    incentive_tier2_min: float = 1550
    incentive_tier2_percent: float = 20
    monthly_bonus_tiers: tuple[BonusTier, ...] = DEFAULT_BONUS_TIERS
    monthly_deduction_tiers: tuple[DeductionTier, ...] = DEFAULT_DEDUCTION_TIERS
    config_id: str | None = field(default=None, compare=False)
    effective_from: datetime | None = field(default=None, compare=False)

    @classmethod
    def from_record(cls, record) -> EarningsPolicy:
        """Build from a DriverEarningsConfig row. Null tier tables mean no tiers."""
        return cls(
            daily_target_default=to_float(record.daily_target_default),
            incentive_tier1_min=to_float(record.incentive_tier1_min),
            incentive_tier1_max=to_float(record.incentive_tier1_max),
            incentive_tier1_type=record.incentive_tier1_type or INCENTIVE_TYPE_FULL_EXTRA,
            incentive_tier2_min=to_float(record.incentive_tier2_min),
            incentive_tier2_percent=to_float(record.incentive_tier2_percent),
            monthly_bonus_tiers=parse_bonus_tiers(record.monthly_bonus_tiers),
            monthly_deduction_tiers=parse_deduction_tiers(record.monthly_deduction_tiers),
            config_id=str(record.id),
            effective_from=record.effective_from,
        )

    def as_dict(self) -> dict:
        return asdict(self)


def parse_bonus_tiers(raw: list | None) -> tuple[BonusTier, ...]:
    return tuple(
        BonusTier(min_earnings=float(t["min_earnings"]), bonus=float(t.get("bonus") or 0))
        for t in (raw or [])
    )


def parse_deduction_tiers(raw: list | None) -> tuple[DeductionTier, ...]:
    return tuple(
        DeductionTier(max_earnings=float(t["max_earnings"]), cut_percent=float(t["cut_percent"]))
        for t in (raw or [])
    )


DEFAULT_POLICY = EarningsPolicy()
