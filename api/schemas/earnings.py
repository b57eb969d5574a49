import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


# ── Policy ─────────────────────────────────────────────────

class BonusTierSchema(BaseModel):
    min_earnings: float = Field(..., ge=0)
    bonus: float = Field(..., ge=0)

    class Config:
        from_attributes = True


class DeductionTierSchema(BaseModel):
    max_earnings: float = Field(..., ge=0)
    cut_percent: float = Field(..., ge=0, le=100)

    class Config:
        from_attributes = True


class EarningsConfigIn(BaseModel):
    """Omitted fields take the built-in defaults."""
    daily_target_default: Optional[float] = Field(None, ge=0)
    incentive_tier1_min: Optional[float] = Field(None, ge=0)
    incentive_tier1_max: Optional[float] = Field(None, ge=0)
    incentive_tier1_type: Optional[str] = Field(None, pattern="^(full_extra|none)$")
    incentive_tier2_min: Optional[float] = Field(None, ge=0)
    incentive_tier2_percent: Optional[float] = Field(None, ge=0, le=100)
    monthly_bonus_tiers: Optional[list[BonusTierSchema]] = None
    monthly_deduction_tiers: Optional[list[DeductionTierSchema]] = None
    updated_by: Optional[str] = Field(None, max_length=64)

    def to_config(self) -> dict:
        return self.model_dump(exclude={"updated_by", "driver_ids"})


class DriverEarningsConfigIn(EarningsConfigIn):
    driver_ids: list[uuid.UUID] = Field(..., min_length=1)


class EarningsConfigResponse(BaseModel):
    id: uuid.UUID
    scope: str
    franchise_id: Optional[uuid.UUID] = None
    driver_id: Optional[uuid.UUID] = None
    daily_target_default: float
    incentive_tier1_min: float
    incentive_tier1_max: float
    incentive_tier1_type: str
    incentive_tier2_min: float
    incentive_tier2_percent: float
    monthly_bonus_tiers: Optional[list[BonusTierSchema]] = None
    monthly_deduction_tiers: Optional[list[DeductionTierSchema]] = None
    is_active: bool
    version: int
    effective_from: datetime
    superseded_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    class Config:
        from_attributes = True


class EffectivePolicyResponse(BaseModel):
    """The policy that applies, with the level it came from (DEFAULT = nothing stored)."""
    scope: str
    config_id: Optional[str] = None
    effective_from: Optional[datetime] = None
    daily_target_default: float
    incentive_tier1_min: float
    incentive_tier1_max: float
    incentive_tier1_type: str
    incentive_tier2_min: float
    incentive_tier2_percent: float
    monthly_bonus_tiers: list[BonusTierSchema]
    monthly_deduction_tiers: list[DeductionTierSchema]


# ── Driver figures ─────────────────────────────────────────

class DailyStatsResponse(BaseModel):
    driver_id: uuid.UUID
    date: date
    daily_target_amount: float
    amount_run_today: float
    trips_count_today: int
    incentive_today: float
    incentive_type: Optional[str] = None
    remaining_to_achieve: float
    config_scope: str


class MonthlyStatsResponse(BaseModel):
    driver_id: uuid.UUID
    year: int
    month: int
    monthly_earnings: float
    trips_count: int
    monthly_bonus: float
    bonus_tier: Optional[BonusTierSchema] = None
    monthly_deduction_policy_cut: float
    deduction_tier: Optional[DeductionTierSchema] = None
    config_scope: str


class PenaltyLineResponse(BaseModel):
    id: str
    penalty_name: Optional[str] = None
    amount: float
    violation_date: Optional[datetime] = None
    description: Optional[str] = None


class SettlementBreakdownResponse(BaseModel):
    gross_earnings: float
    bonus: float
    penalties: float
    policy_cut: float
    net: float


class SettlementResponse(BaseModel):
    driver_id: uuid.UUID
    year: int
    month: int
    monthly_earnings: float
    trips_count: int
    monthly_bonus: float
    total_penalties: float
    monthly_deduction_policy_cut: float
    net_earnings: float
    breakdown: SettlementBreakdownResponse
    penalties: list[PenaltyLineResponse]
    penalties_count: int
    config_scope: Optional[str] = None


# ── Envelopes ──────────────────────────────────────────────

class DailyStatsEnvelope(BaseModel):
    data: DailyStatsResponse


class MonthlyStatsEnvelope(BaseModel):
    data: MonthlyStatsResponse


class SettlementEnvelope(BaseModel):
    data: SettlementResponse
