"""DriverEarningsConfig ORM model — tiered incentive/bonus/deduction policy."""

import uuid
from datetime import datetime
from sqlalchemy import (
    String, Integer, Numeric, Boolean, DateTime, ForeignKey, Index, CheckConstraint,
    Enum as PgEnum, text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class DriverEarningsConfig(Base):
    __tablename__ = "driver_earnings_configs"
    __table_args__ = (
        CheckConstraint(
            "(scope = 'GLOBAL' AND franchise_id IS NULL AND driver_id IS NULL)"
            " OR (scope = 'FRANCHISE' AND franchise_id IS NOT NULL AND driver_id IS NULL)"
            " OR (scope = 'DRIVER' AND driver_id IS NOT NULL)",
            name="ck_driver_earnings_configs_scope",
        ),
        # One active row per scope key
        Index(
            "uq_driver_earnings_configs_active_global", "scope",
            unique=True, postgresql_where=text("is_active AND scope = 'GLOBAL'"),
        ),
        Index(
            "uq_driver_earnings_configs_active_franchise", "franchise_id",
            unique=True, postgresql_where=text("is_active AND scope = 'FRANCHISE'"),
        ),
        Index(
            "uq_driver_earnings_configs_active_driver", "driver_id",
            unique=True, postgresql_where=text("is_active AND scope = 'DRIVER'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    scope: Mapped[str] = mapped_column(
        PgEnum("GLOBAL", "FRANCHISE", "DRIVER", name="earnings_config_scope", create_type=False),
        nullable=False,
    )
    franchise_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("franchises.id"))
    driver_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("drivers.id"))

    daily_target_default: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    incentive_tier1_min: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    incentive_tier1_max: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    incentive_tier1_type: Mapped[str] = mapped_column(String(20), default="full_extra")
    incentive_tier2_min: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    incentive_tier2_percent: Mapped[float] = mapped_column(Numeric(5, 2), nullable=False)
    monthly_bonus_tiers: Mapped[list | None] = mapped_column(JSONB)
    monthly_deduction_tiers: Mapped[list | None] = mapped_column(JSONB)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    version: Mapped[int] = mapped_column(Integer, default=1)
    effective_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    superseded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_by: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
